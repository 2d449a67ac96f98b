"""Recompute coordination.

Progress writes ask for a recompute by sending a RecomputeRequest.  The
coordinator runs requests for the same enrollment one at a time (an
asyncio.Lock per enrollment, dropped when nobody holds or waits on it)
and fires the completion trigger after the lock is released, only for
the recompute that moved the enrollment to completed.

Requests for different enrollments run concurrently.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Literal
from uuid import UUID

from progress_engine.core.metrics import RECOMPUTES
from progress_engine.models.progress import RecomputeResult
from progress_engine.services.aggregator import ProgressAggregator
from progress_engine.services.completion import CompletionTrigger

logger = logging.getLogger(__name__)

RecomputeReason = Literal["video_completed", "assessment_passed", "manual"]


@dataclass(frozen=True, slots=True)
class RecomputeRequest:
    enrollment_id: UUID
    reason: RecomputeReason = "manual"


class RecomputeCoordinator:
    def __init__(
        self, aggregator: ProgressAggregator, trigger: CompletionTrigger
    ) -> None:
        self._aggregator = aggregator
        self._trigger = trigger
        self._locks: dict[UUID, asyncio.Lock] = {}
        self._waiters: dict[UUID, int] = {}

    def pending(self) -> frozenset[UUID]:
        """Enrollment ids with a recompute running or queued."""
        return frozenset(self._locks)

    async def request(self, msg: RecomputeRequest) -> RecomputeResult:
        key = msg.enrollment_id
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                RECOMPUTES.labels(reason=msg.reason).inc()
                result = await self._aggregator.recalculate(key)
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                del self._locks[key]

        if result.transitioned:
            logger.info(
                "Enrollment completed (reason=%s)",
                msg.reason,
                extra={
                    "enrollment_id": str(result.enrollment_id),
                    "course_id": str(result.course_id),
                    "user_id": result.user_id,
                },
            )
            await self._trigger.on_completed(
                result.enrollment_id, result.user_id, result.course_id
            )
        return result
