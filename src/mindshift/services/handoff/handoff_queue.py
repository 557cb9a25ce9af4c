"""
Handoff Queue

Two-tier FIFO per specialty bucket. HIGH urgency requests go behind
the HIGH requests already queued and ahead of every NORMAL/LOW one.
Within a tier, arrival order is kept.

Enqueue, removal and position recomputation for a bucket happen under
one lock, so two requests can never compute the same position.
"""

import threading
from collections import deque
from typing import Callable, Iterator, Optional

from mindshift.domain.enums.lifecycle import HandoffStatus, QueueTier
from mindshift.domain.models.handoff import HandoffRequest
from mindshift.infrastructure.metrics.prometheus_metrics import HANDOFF_QUEUE_DEPTH


class _Bucket:
    __slots__ = ("tiers",)

    def __init__(self) -> None:
        self.tiers: dict[QueueTier, deque[HandoffRequest]] = {
            QueueTier.PRIORITY: deque(),
            QueueTier.STANDARD: deque(),
        }

    def ordered(self) -> Iterator[HandoffRequest]:
        for tier in sorted(self.tiers):
            yield from self.tiers[tier]

    def __len__(self) -> int:
        return sum(len(q) for q in self.tiers.values())


class HandoffQueue:
    """
    Queued handoff requests, bucketed by specialty.

    Usage:
        queue = HandoffQueue(average_service_minutes=10)
        position = queue.enqueue(request)
    """

    def __init__(self, average_service_minutes: int = 10) -> None:
        self.average_service_minutes = average_service_minutes
        self._buckets: dict[str, _Bucket] = {}
        self._lock = threading.Lock()

    def enqueue(self, request: HandoffRequest) -> int:
        """
        Queue a request and assign its position and wait estimate.

        Returns:
            1-based queue position within the request's bucket
        """
        with self._lock:
            bucket = self._buckets.setdefault(request.bucket, _Bucket())
            request.status = HandoffStatus.QUEUED
            bucket.tiers[request.urgency.tier].append(request)
            self._recompute(request.bucket, bucket)
            return request.queue_position

    def remove(self, request: HandoffRequest) -> bool:
        """Take a request out of its bucket. Returns False if it was not queued."""
        with self._lock:
            bucket = self._buckets.get(request.bucket)
            if bucket is None:
                return False
            tier = bucket.tiers[request.urgency.tier]
            if request not in tier:
                return False
            tier.remove(request)
            request.queue_position = None
            self._recompute(request.bucket, bucket)
            return True

    def pop_first(
        self,
        bucket_name: str,
        predicate: Callable[[HandoffRequest], bool],
    ) -> Optional[HandoffRequest]:
        """Remove and return the earliest request in a bucket accepted by predicate."""
        with self._lock:
            bucket = self._buckets.get(bucket_name)
            if bucket is None:
                return None
            for request in bucket.ordered():
                if predicate(request):
                    bucket.tiers[request.urgency.tier].remove(request)
                    request.queue_position = None
                    self._recompute(bucket_name, bucket)
                    return request
            return None

    def _recompute(self, bucket_name: str, bucket: _Bucket) -> None:
        for index, request in enumerate(bucket.ordered()):
            request.queue_position = index + 1
            request.estimated_wait_minutes = request.queue_position * self.average_service_minutes
        HANDOFF_QUEUE_DEPTH.labels(bucket=bucket_name).set(len(bucket))

    def depth(self, bucket_name: str) -> int:
        with self._lock:
            bucket = self._buckets.get(bucket_name)
            return len(bucket) if bucket else 0

    def bucket_names(self) -> list[str]:
        with self._lock:
            return list(self._buckets)

    def snapshot(self, bucket_name: str) -> list[HandoffRequest]:
        """Queued requests of a bucket in service order."""
        with self._lock:
            bucket = self._buckets.get(bucket_name)
            return list(bucket.ordered()) if bucket else []

    def all_requests(self) -> list[HandoffRequest]:
        with self._lock:
            return [r for bucket in self._buckets.values() for r in bucket.ordered()]
