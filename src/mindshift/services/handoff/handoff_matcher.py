"""
Handoff Matcher

Transfers a session to a human responder.

Selection:
1. Keep responders with availability IMMEDIATE
2. Keep those matching the requested specialty and language
3. Pick the lowest estimated wait; directory order breaks ties

With no match the request is queued in its specialty bucket with
estimated_wait_minutes = queue_position * average_service_minutes.
Queued requests not assigned within queue_expiry_minutes expire; the
caller surfaces fallback resources at that point.

A failing directory does not fail the request. It is queued with a
directory_unavailable warning.

CLINICAL_REVIEW_REQUIRED: average_service_minutes (10) is a product
constant.
"""

from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional
from uuid import UUID

from mindshift.config.logging_config import get_logger
from mindshift.config.settings import HandoffSettings
from mindshift.domain.enums.lifecycle import HandoffStatus, ResponderAvailability
from mindshift.domain.exceptions import HandoffNotFoundError, UpstreamUnavailable
from mindshift.domain.models.handoff import HandoffCriteria, HandoffRequest, Responder
from mindshift.domain.models.session import utcnow
from mindshift.infrastructure.archive.archive_sink import ArchiveSink
from mindshift.infrastructure.metrics.prometheus_metrics import track_degraded, track_handoff
from mindshift.services.handoff.handoff_queue import HandoffQueue
from mindshift.services.handoff.responder_directory import ResponderDirectory
from mindshift.services.notifications.events import EventType, NotificationEvent
from mindshift.services.notifications.fanout import NotificationFanout
from mindshift.services.session.session_store import validate_session_id

logger = get_logger(__name__)

DIRECTORY_UNAVAILABLE = "directory_unavailable"

Clock = Callable[[], datetime]


class HandoffMatcher:
    """
    Assigns or queues handoff requests.

    Usage:
        matcher = HandoffMatcher(directory, fanout)
        request = await matcher.request_handoff("session-1", HandoffCriteria())
    """

    def __init__(
        self,
        directory: ResponderDirectory,
        fanout: NotificationFanout,
        archive: Optional[ArchiveSink] = None,
        settings: Optional[HandoffSettings] = None,
        clock: Clock = utcnow,
    ) -> None:
        self.settings = settings or HandoffSettings()
        self._directory = directory
        self._fanout = fanout
        self._archive = archive
        self._clock = clock
        self.queue = HandoffQueue(self.settings.average_service_minutes)
        self._requests: dict[UUID, HandoffRequest] = {}
        # Assigned by this matcher and not yet released
        self._reserved: set[str] = set()

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def bucket_for(self, specialty: Optional[str]) -> str:
        return specialty or self.settings.default_specialty

    def _specialty_filter(self, specialty: Optional[str]) -> Optional[str]:
        if specialty is None or specialty == self.settings.default_specialty:
            return None
        return specialty

    def select_responder(
        self,
        responders: Iterable[Responder],
        specialty: Optional[str],
        language: Optional[str],
    ) -> Optional[Responder]:
        """Lowest-wait available responder matching the criteria."""
        specialty = self._specialty_filter(specialty)
        best: Optional[Responder] = None
        for responder in responders:
            if responder.availability is not ResponderAvailability.IMMEDIATE:
                continue
            if responder.id in self._reserved:
                continue
            if not responder.matches(specialty, language):
                continue
            if best is None or responder.estimated_wait_minutes < best.estimated_wait_minutes:
                best = responder
        return best

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def request_handoff(self, session_id: str, criteria: HandoffCriteria) -> HandoffRequest:
        """
        File a handoff request and assign it or queue it.

        Args:
            session_id: Session to hand off
            criteria: Urgency, specialty, language and reason

        Returns:
            HandoffRequest with status ASSIGNED or QUEUED
        """
        session_id = validate_session_id(session_id)
        specialty = criteria.specialty.strip().lower() if criteria.specialty else None
        language = criteria.language.strip().lower() if criteria.language else None

        request = HandoffRequest(
            session_id=session_id,
            created_at=self._clock(),
            user_id=criteria.user_id,
            reason=criteria.reason,
            urgency=criteria.urgency,
            preferred_specialty=specialty,
            language=language,
            alert_id=criteria.alert_id,
            bucket=self.bucket_for(specialty),
        )
        self._requests[request.request_id] = request

        try:
            responders = await self._directory.list_responders()
        except UpstreamUnavailable as e:
            track_degraded("responder_directory")
            logger.warning(
                "Responder directory unavailable, queueing handoff",
                request_id=str(request.request_id),
                error=e.message,
            )
            request.warnings.append(DIRECTORY_UNAVAILABLE)
            responders = []

        responder = self.select_responder(responders, specialty, language)
        if responder is not None:
            await self._assign(request, responder)
        else:
            self._enqueue(request)
        return request

    def _enqueue(self, request: HandoffRequest) -> None:
        self.queue.enqueue(request)
        track_handoff(HandoffStatus.QUEUED.value)
        logger.info(
            "Handoff queued",
            request_id=str(request.request_id),
            session_id=request.session_id,
            bucket=request.bucket,
            urgency=request.urgency.value,
            queue_position=request.queue_position,
            estimated_wait_minutes=request.estimated_wait_minutes,
        )
        self._publish(EventType.HANDOFF_QUEUED, request)

    async def _assign(self, request: HandoffRequest, responder: Responder) -> None:
        self._reserved.add(responder.id)
        request.status = HandoffStatus.ASSIGNED
        request.assigned_responder_id = responder.id
        request.assigned_at = self._clock()
        request.queue_position = None
        request.estimated_wait_minutes = responder.estimated_wait_minutes

        try:
            await self._directory.set_availability(responder.id, ResponderAvailability.BUSY)
        except UpstreamUnavailable as e:
            track_degraded("responder_directory")
            logger.warning(
                "Could not mark responder busy",
                responder_id=responder.id,
                error=e.message,
            )

        track_handoff(HandoffStatus.ASSIGNED.value)
        logger.info(
            "Handoff assigned",
            request_id=str(request.request_id),
            session_id=request.session_id,
            responder_id=responder.id,
        )
        self._publish(EventType.HANDOFF_ASSIGNED, request)
        self._fanout.send_to(
            responder.id,
            NotificationEvent(
                event_type=EventType.HANDOFF_REQUESTED,
                session_id=request.session_id,
                specialty=request.bucket,
                payload=request.to_dict(),
            ),
        )
        await self._archive_request(request)

    async def release_responder(self, responder_id: str) -> Optional[HandoffRequest]:
        """
        Mark a responder available again and give them the oldest
        queued request they can serve, crisis bucket first.

        Returns:
            The request assigned to the responder, if any
        """
        self._reserved.discard(responder_id)
        responder = await self._directory.set_availability(
            responder_id, ResponderAvailability.IMMEDIATE
        )

        def servable(request: HandoffRequest) -> bool:
            return responder.matches(
                self._specialty_filter(request.preferred_specialty), request.language
            )

        buckets = self.queue.bucket_names()
        buckets.sort(key=lambda name: name != self.settings.crisis_specialty)
        for bucket in buckets:
            request = self.queue.pop_first(bucket, servable)
            if request is not None:
                await self._assign(request, responder)
                return request

        logger.info("Responder released with empty queue", responder_id=responder_id)
        return None

    async def cancel(self, request_id: UUID) -> HandoffRequest:
        """
        Cancel an open request. Cancelling a closed request is a no-op.

        Raises:
            HandoffNotFoundError: If the request is unknown
        """
        request = self.get(request_id)
        if not request.is_open:
            logger.info(
                "Cancel for closed handoff ignored",
                request_id=str(request_id),
                status=request.status.value,
            )
            return request

        await self._close(request, HandoffStatus.CANCELLED, self._clock())
        return request

    async def cancel_for_session(self, session_id: str) -> list[HandoffRequest]:
        """Cancel every open request of a session."""
        cancelled = []
        now = self._clock()
        for request in list(self._requests.values()):
            if request.session_id == session_id and request.is_open:
                await self._close(request, HandoffStatus.CANCELLED, now)
                cancelled.append(request)
        return cancelled

    async def expire_stale(
        self,
        now: Optional[datetime] = None,
        fallback: Optional[dict] = None,
    ) -> list[HandoffRequest]:
        """
        Expire queued requests older than the expiry bound.

        Args:
            now: Sweep time
            fallback: Extra payload for the expiry event (e.g. crisis resources)
        """
        now = now or self._clock()
        cutoff = now - timedelta(minutes=self.settings.queue_expiry_minutes)
        expired = []
        for request in self.queue.all_requests():
            if request.created_at <= cutoff:
                await self._close(request, HandoffStatus.EXPIRED, now, fallback)
                expired.append(request)
        if expired:
            logger.warning("Expired queued handoffs", count=len(expired))
        return expired

    async def _close(
        self,
        request: HandoffRequest,
        status: HandoffStatus,
        at: datetime,
        extra: Optional[dict] = None,
    ) -> None:
        self.queue.remove(request)
        request.status = status
        request.closed_at = at
        track_handoff(status.value)
        logger.info(
            "Handoff closed",
            request_id=str(request.request_id),
            session_id=request.session_id,
            status=status.value,
        )
        event_type = (
            EventType.HANDOFF_EXPIRED if status is HandoffStatus.EXPIRED else EventType.HANDOFF_CANCELLED
        )
        self._publish(event_type, request, extra)
        await self._archive_request(request)

    # ------------------------------------------------------------------
    # Queries and housekeeping
    # ------------------------------------------------------------------

    def get(self, request_id: UUID) -> HandoffRequest:
        request = self._requests.get(request_id)
        if request is None:
            raise HandoffNotFoundError(request_id)
        return request

    def requests_for_session(self, session_id: str) -> list[HandoffRequest]:
        return [r for r in self._requests.values() if r.session_id == session_id]

    def forget_closed(self, before: datetime) -> int:
        """Drop assigned and closed requests older than `before` from memory."""
        stale = []
        for request_id, request in self._requests.items():
            finished_at = request.closed_at or request.assigned_at
            if finished_at is not None and finished_at < before:
                stale.append(request_id)
        for request_id in stale:
            del self._requests[request_id]
        return len(stale)

    def _publish(
        self,
        event_type: EventType,
        request: HandoffRequest,
        extra: Optional[dict] = None,
    ) -> None:
        payload = request.to_dict()
        if extra:
            payload.update(extra)
        self._fanout.publish(
            NotificationEvent(
                event_type=event_type,
                session_id=request.session_id,
                specialty=request.bucket,
                payload=payload,
            )
        )

    async def _archive_request(self, request: HandoffRequest) -> None:
        if self._archive is None:
            return
        try:
            await self._archive.archive_handoff(request)
        except Exception as e:
            logger.error(
                "Handoff archive failed",
                request_id=str(request.request_id),
                error=str(e),
            )
