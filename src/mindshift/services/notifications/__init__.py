"""Notification fan-out package."""

from mindshift.services.notifications.events import (
    EventType,
    NotificationEvent,
    SubscriptionFilter,
)
from mindshift.services.notifications.fanout import (
    EventHandler,
    NotificationFanout,
    Subscription,
)

__all__ = [
    "EventType",
    "NotificationEvent",
    "SubscriptionFilter",
    "EventHandler",
    "NotificationFanout",
    "Subscription",
]
