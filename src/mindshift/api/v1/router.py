"""
API v1 Router

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter

from mindshift.api.v1.endpoints.alerts import router as alerts_router
from mindshift.api.v1.endpoints.handoffs import router as handoffs_router
from mindshift.api.v1.endpoints.health import router as health_router
from mindshift.api.v1.endpoints.sessions import router as sessions_router

api_router = APIRouter()

# Include endpoint routers
api_router.include_router(
    health_router,
    prefix="/health",
    tags=["Health"],
)

api_router.include_router(
    sessions_router,
    prefix="/sessions",
    tags=["Sessions"],
)

api_router.include_router(
    alerts_router,
    prefix="/alerts",
    tags=["Crisis Alerts"],
)

api_router.include_router(
    handoffs_router,
    tags=["Handoffs"],
)
