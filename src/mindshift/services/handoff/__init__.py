"""Human handoff package."""

from mindshift.services.handoff.handoff_matcher import DIRECTORY_UNAVAILABLE, HandoffMatcher
from mindshift.services.handoff.handoff_queue import HandoffQueue
from mindshift.services.handoff.responder_directory import (
    InMemoryResponderDirectory,
    ResponderDirectory,
)

__all__ = [
    "HandoffMatcher",
    "HandoffQueue",
    "ResponderDirectory",
    "InMemoryResponderDirectory",
    "DIRECTORY_UNAVAILABLE",
]
