"""Throttled publish channel from jobs to interested subscribers.

Events are keyed by owner. Progress events for a job are throttled: one
arriving within the throttle window of the previous emission for the same
job is dropped, unless it reports 100%. Status events are never throttled,
and a terminal status clears the job's throttle entry.

Delivery is best effort; a failing subscriber is logged and skipped.
"""

import asyncio
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union

import structlog

from src.domain.enums import JobStatus, ProgressEventKind, SensitivityStatus
from src.infrastructure.config import settings

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class BroadcastEvent:
    """One event delivered to subscribers."""

    owner_id: str
    kind: ProgressEventKind
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"event": self.kind.value, "data": self.payload}


Subscriber = Callable[[BroadcastEvent], Awaitable[None]]
Unsubscribe = Callable[[], None]


class ProgressBroadcaster:
    """Fans job events out to per-owner and global subscribers."""

    def __init__(
        self,
        throttle_ms: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.throttle_seconds = (
            throttle_ms if throttle_ms is not None else settings.analysis.progress_throttle_ms
        ) / 1000
        self._clock = clock
        self._last_emission: Dict[str, float] = {}
        self._lock = asyncio.Lock()
        self._subscribers: Dict[str, List[Subscriber]] = defaultdict(list)
        self._global_subscribers: List[Subscriber] = []

    @property
    def tracked_jobs(self) -> int:
        """Number of jobs with a live throttle entry."""
        return len(self._last_emission)

    def subscribe(self, owner_id: str, subscriber: Subscriber) -> Unsubscribe:
        """Register ``subscriber`` for one owner's events."""
        self._subscribers[owner_id].append(subscriber)

        def _unsubscribe() -> None:
            subscribers = self._subscribers.get(owner_id)
            if subscribers and subscriber in subscribers:
                subscribers.remove(subscriber)
                if not subscribers:
                    del self._subscribers[owner_id]

        return _unsubscribe

    def subscribe_all(self, subscriber: Subscriber) -> Unsubscribe:
        """Register ``subscriber`` for every owner's events."""
        self._global_subscribers.append(subscriber)

        def _unsubscribe() -> None:
            if subscriber in self._global_subscribers:
                self._global_subscribers.remove(subscriber)

        return _unsubscribe

    async def _should_emit(
        self, job_id: Optional[str], kind: ProgressEventKind, payload: Dict[str, Any]
    ) -> bool:
        if job_id is None or not kind.is_progress:
            return True

        # Completion is always delivered and leaves no throttle state behind
        if payload.get("progress", 0) >= 100:
            return True

        now = self._clock()
        async with self._lock:
            last = self._last_emission.get(job_id)
            if last is not None and now - last < self.throttle_seconds:
                return False
            self._last_emission[job_id] = now
        return True

    async def release_job(self, job_id: str) -> None:
        """Forget the job's throttle state."""
        async with self._lock:
            self._last_emission.pop(job_id, None)

    async def publish(
        self,
        owner_id: str,
        event_kind: Union[ProgressEventKind, str],
        payload: Dict[str, Any],
    ) -> bool:
        """Publish an event to the owner's subscribers.

        Args:
            owner_id: Owner the event is addressed to
            event_kind: One of the ``ProgressEventKind`` values
            payload: Event body; ``jobId`` keys the throttle

        Returns:
            False if the event was throttled, True if it was delivered
        """
        kind = ProgressEventKind(event_kind)
        job_id = payload.get("jobId")

        if not await self._should_emit(job_id, kind, payload):
            return False

        await self._deliver(BroadcastEvent(owner_id=owner_id, kind=kind, payload=payload))

        if kind is ProgressEventKind.STATUS and job_id is not None:
            status = payload.get("status")
            if status is not None and JobStatus(status).is_terminal:
                await self.release_job(job_id)
        return True

    async def _deliver(self, event: BroadcastEvent) -> None:
        subscribers: Sequence[Subscriber] = [
            *self._subscribers.get(event.owner_id, ()),
            *self._global_subscribers,
        ]
        if not subscribers:
            logger.debug(
                "No subscribers for owner",
                owner_id=event.owner_id,
                event=event.kind.value,
            )
            return

        for subscriber in subscribers:
            try:
                await subscriber(event)
            except Exception as e:
                logger.warning(
                    "Subscriber failed",
                    owner_id=event.owner_id,
                    event=event.kind.value,
                    error=str(e),
                )

    async def emit_upload_progress(self, owner_id: str, job_id: str, progress: int) -> bool:
        return await self.publish(
            owner_id,
            ProgressEventKind.UPLOAD_PROGRESS,
            {"jobId": job_id, "progress": progress},
        )

    async def emit_analysis_progress(
        self, owner_id: str, job_id: str, progress: int, labels: Sequence[str] = ()
    ) -> bool:
        return await self.publish(
            owner_id,
            ProgressEventKind.ANALYSIS_PROGRESS,
            {"jobId": job_id, "progress": progress, "labels": list(labels)},
        )

    async def emit_status(
        self,
        owner_id: str,
        job_id: str,
        status: JobStatus,
        sensitivity_status: SensitivityStatus,
    ) -> bool:
        return await self.publish(
            owner_id,
            ProgressEventKind.STATUS,
            {
                "jobId": job_id,
                "status": status.value,
                "sensitivityStatus": sensitivity_status.value,
            },
        )
