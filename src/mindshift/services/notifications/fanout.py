"""
Notification Fan-out

Broadcasts events to subscribed monitors and responders, and delivers
targeted events to one subscriber.

Each subscription owns a bounded queue and a worker task. publish()
only enqueues with put_nowait, so it never blocks the caller and a
slow subscriber cannot delay escalation-timer arming. When a
subscriber's queue is full the event is dropped for that subscriber.

Delivery is at-most-once per subscriber per event with no retry.
Notifications are advisory; the escalation countdown is the safety net.
"""

import asyncio
import dataclasses
from typing import Awaitable, Callable, Optional
from uuid import UUID, uuid4

from mindshift.config.logging_config import get_logger
from mindshift.config.settings import NotificationSettings
from mindshift.infrastructure.metrics.prometheus_metrics import (
    NOTIFICATIONS_DROPPED_TOTAL,
    NOTIFICATIONS_PUBLISHED_TOTAL,
)
from mindshift.services.notifications.events import NotificationEvent, SubscriptionFilter

logger = get_logger(__name__)

EventHandler = Callable[[NotificationEvent], Awaitable[None]]


class Subscription:
    """Handle returned by subscribe()."""

    def __init__(
        self,
        subscriber_id: str,
        handler: EventHandler,
        event_filter: SubscriptionFilter,
        queue_size: int,
    ) -> None:
        self.subscription_id: UUID = uuid4()
        self.subscriber_id = subscriber_id
        self.filter = event_filter
        self._handler = handler
        self._queue: asyncio.Queue[NotificationEvent] = asyncio.Queue(maxsize=queue_size)
        self._task: Optional[asyncio.Task] = None
        self.active = True
        self.delivered = 0
        self.dropped = 0

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def worker_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def offer(self, event: NotificationEvent) -> bool:
        """Enqueue without blocking. Returns False if dropped."""
        if not self.active:
            return False
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            NOTIFICATIONS_DROPPED_TOTAL.labels(reason="queue_full").inc()
            logger.warning(
                "Subscriber queue full, event dropped",
                subscriber_id=self.subscriber_id,
                event_type=event.event_type.value,
            )
            return False
        self._ensure_worker()
        return True

    def _ensure_worker(self) -> None:
        if self._task is not None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Started on the next offer made from inside the event loop
            return
        self._task = loop.create_task(self._run())

    async def _run(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self._handler(event)
                self.delivered += 1
            except Exception as e:
                NOTIFICATIONS_DROPPED_TOTAL.labels(reason="handler_error").inc()
                logger.error(
                    "Subscriber handler failed",
                    subscriber_id=self.subscriber_id,
                    event_type=event.event_type.value,
                    error=str(e),
                )
            finally:
                self._queue.task_done()

    async def drain(self) -> None:
        if self._task is None and self._queue.qsize():
            self._ensure_worker()
        await self._queue.join()

    def retire(self) -> Optional[asyncio.Task]:
        """
        Stop accepting events and let the worker finish what is queued.

        Returns:
            Task that waits for the queue to empty and then stops the
            worker, or None when no worker is running
        """
        self.active = False
        if self._task is None:
            self._discard_pending()
            return None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._task.cancel()
            self._task = None
            self._discard_pending()
            return None
        return loop.create_task(self._finish())

    async def _finish(self) -> None:
        try:
            await self._queue.join()
        finally:
            await self.cancel()

    async def cancel(self) -> None:
        self.active = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self._discard_pending()

    def _discard_pending(self) -> None:
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
            NOTIFICATIONS_DROPPED_TOTAL.labels(reason="closed").inc()


class NotificationFanout:
    """
    In-process publish/subscribe hub.

    One subscription per subscriber id; subscribing again replaces the
    previous subscription, so each subscriber gets an event at most once.
    The replaced subscription delivers what it already queued and then
    stops its worker.

    Usage:
        fanout = NotificationFanout()
        fanout.subscribe("monitor-1", handler, SubscriptionFilter())
        fanout.publish(NotificationEvent(EventType.CRISIS_ALERT_OPENED, ...))
    """

    def __init__(self, settings: Optional[NotificationSettings] = None) -> None:
        self.settings = settings or NotificationSettings()
        self._subscriptions: dict[str, Subscription] = {}
        self._retiring: dict[asyncio.Task, Subscription] = {}
        self._closed = False

    def subscribe(
        self,
        subscriber_id: str,
        handler: EventHandler,
        event_filter: Optional[SubscriptionFilter] = None,
    ) -> Subscription:
        if self._closed:
            raise RuntimeError("Notification fan-out is closed")

        subscription = Subscription(
            subscriber_id=subscriber_id,
            handler=handler,
            event_filter=event_filter or SubscriptionFilter(),
            queue_size=self.settings.subscriber_queue_size,
        )
        previous = self._subscriptions.get(subscriber_id)
        if previous is not None:
            finishing = previous.retire()
            if finishing is not None:
                self._retiring[finishing] = previous
                finishing.add_done_callback(self._forget_retired)
        self._subscriptions[subscriber_id] = subscription

        logger.info("Subscriber registered", subscriber_id=subscriber_id)
        return subscription

    async def unsubscribe(self, handle: Subscription | str) -> bool:
        subscriber_id = handle.subscriber_id if isinstance(handle, Subscription) else handle
        subscription = self._subscriptions.get(subscriber_id)
        if subscription is None:
            return False
        if isinstance(handle, Subscription) and handle is not subscription:
            return False

        del self._subscriptions[subscriber_id]
        await subscription.cancel()
        logger.info("Subscriber removed", subscriber_id=subscriber_id)
        return True

    def is_subscribed(self, subscriber_id: str) -> bool:
        return subscriber_id in self._subscriptions

    def publish(self, event: NotificationEvent) -> int:
        """
        Deliver an event to every matching subscriber.

        Never blocks. Targeted events go only to their target.

        Returns:
            Number of subscribers the event was queued for
        """
        if self._closed:
            NOTIFICATIONS_DROPPED_TOTAL.labels(reason="closed").inc()
            return 0

        NOTIFICATIONS_PUBLISHED_TOTAL.labels(event_type=event.event_type.value).inc()

        if event.target_subscriber_id is not None:
            subscription = self._subscriptions.get(event.target_subscriber_id)
            if subscription is None:
                logger.info(
                    "Targeted event has no subscriber",
                    subscriber_id=event.target_subscriber_id,
                    event_type=event.event_type.value,
                )
                return 0
            return int(subscription.offer(event))

        queued = 0
        for subscription in list(self._subscriptions.values()):
            if subscription.filter.matches(event) and subscription.offer(event):
                queued += 1
        return queued

    def send_to(self, subscriber_id: str, event: NotificationEvent) -> bool:
        """Targeted delivery to a single subscriber."""
        return self.publish(dataclasses.replace(event, target_subscriber_id=subscriber_id)) == 1

    async def drain(self) -> None:
        """Wait until every queued event has been handled."""
        for subscription in list(self._subscriptions.values()):
            await subscription.drain()
        if self._retiring:
            await asyncio.gather(*list(self._retiring), return_exceptions=True)

    def _forget_retired(self, task: asyncio.Task) -> None:
        self._retiring.pop(task, None)

    async def close(self) -> None:
        self._closed = True
        subscriptions = list(self._subscriptions.values()) + list(self._retiring.values())
        finishing = list(self._retiring)
        self._subscriptions.clear()
        for subscription in subscriptions:
            await subscription.cancel()
        # Retired queues are empty now, so their finishing tasks complete
        await asyncio.gather(*finishing, return_exceptions=True)
