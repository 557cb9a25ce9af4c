"""
Maintenance Loop

Periodic background sweep. It backs up the per-alert escalation
countdowns, expires stale handoffs and evicts inactive sessions.
"""

import asyncio
from typing import Optional

from mindshift.config.logging_config import get_logger
from mindshift.services.orchestration.triage_service import TriageService

logger = get_logger(__name__)


class MaintenanceLoop:
    """Runs TriageService.run_maintenance every interval_seconds."""

    def __init__(self, service: TriageService, interval_seconds: float) -> None:
        self._service = service
        self._interval = interval_seconds
        self._task: Optional[asyncio.Task] = None
        self.failures = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the background sweep task."""
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="triage-maintenance")
        logger.info("Maintenance loop started", interval_seconds=self._interval)

    async def stop(self) -> None:
        """Stop the sweep task."""
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            await self.run_once()

    async def run_once(self) -> None:
        try:
            report = await self._service.run_maintenance()
        except Exception as e:
            # Next sweep retries whatever is still overdue
            self.failures += 1
            logger.critical("Maintenance sweep failed", error=str(e), failures=self.failures)
            return
        if report.escalated_alerts or report.expired_handoffs or report.expired_sessions:
            logger.info(
                "Maintenance sweep completed",
                escalated_alerts=report.escalated_alerts,
                expired_handoffs=report.expired_handoffs,
                expired_sessions=report.expired_sessions,
                forgotten=report.forgotten,
            )
