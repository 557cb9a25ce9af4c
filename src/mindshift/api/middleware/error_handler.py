"""
Error Handler Middleware

Correlation IDs for every request, and translation of the triage
exception taxonomy into JSON error bodies:

- ValidationError -> 422
- NotFoundError -> 404 (benign, logged at INFO)
- UpstreamUnavailable -> 503
- EscalationTimerError -> 500 (fatal, logged CRITICAL)
"""

import traceback
from uuid import uuid4

from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from mindshift.config.logging_config import bind_correlation_id, clear_context, get_logger
from mindshift.domain.exceptions import (
    EscalationTimerError,
    NotFoundError,
    TriageError,
    UpstreamUnavailable,
    ValidationError,
)

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Global error handling middleware.

    Provides:
    - Correlation ID tracking for all requests
    - Sanitized 500 responses for unexpected errors
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid4())
        bind_correlation_id(correlation_id)

        try:
            response = await call_next(request)
            response.headers[CORRELATION_HEADER] = correlation_id
            return response

        except Exception as e:
            logger.error(
                "Unhandled exception",
                path=request.url.path,
                method=request.method,
                error_type=type(e).__name__,
                error_message=str(e),
                traceback=traceback.format_exc(),
            )
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "error": "internal_error",
                    "correlation_id": correlation_id,
                    "message": "An unexpected error occurred. Please try again.",
                },
                headers={CORRELATION_HEADER: correlation_id},
            )

        finally:
            clear_context()


def _error_response(request: Request, status_code: int, error: TriageError) -> JSONResponse:
    body = error.to_dict()
    correlation_id = request.headers.get(CORRELATION_HEADER)
    if correlation_id:
        body["correlation_id"] = correlation_id
    return JSONResponse(status_code=status_code, content=body)


def register_exception_handlers(app: FastAPI) -> None:
    """Map triage exceptions onto HTTP responses."""

    @app.exception_handler(ValidationError)
    async def validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        logger.info("Request rejected", path=request.url.path, field=exc.field, error=exc.message)
        return _error_response(request, status.HTTP_422_UNPROCESSABLE_ENTITY, exc)

    @app.exception_handler(NotFoundError)
    async def not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        logger.info("Entity not found", path=request.url.path, error=exc.message)
        return _error_response(request, status.HTTP_404_NOT_FOUND, exc)

    @app.exception_handler(UpstreamUnavailable)
    async def upstream_unavailable(request: Request, exc: UpstreamUnavailable) -> JSONResponse:
        logger.warning("Upstream unavailable", path=request.url.path, upstream=exc.upstream)
        return _error_response(request, status.HTTP_503_SERVICE_UNAVAILABLE, exc)

    @app.exception_handler(EscalationTimerError)
    async def escalation_timer_error(request: Request, exc: EscalationTimerError) -> JSONResponse:
        logger.critical("Escalation unavailable", path=request.url.path, error=exc.message)
        return _error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, exc)

    @app.exception_handler(TriageError)
    async def triage_error(request: Request, exc: TriageError) -> JSONResponse:
        logger.warning("Triage error", path=request.url.path, code=exc.code, error=exc.message)
        return _error_response(request, status.HTTP_400_BAD_REQUEST, exc)
