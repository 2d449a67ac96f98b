"""Progress Aggregator: recomputes an enrollment's percentage and completion.

Weighting:
  - a VIDEO weighs its current duration in seconds (0 when unknown) and
    earns that weight once its progress row is completed
  - an ASSESSMENT weighs ASSESSMENT_WEIGHT and earns it once any attempt
    has passed
  - ARTICLE items are not counted

A course with no countable weight is reported at 0% and is never
completed.  Both sides of the ratio use the item's current duration; the
duration snapshot stored on each video row is informational only.

Writes go through the enrollment version (compare-and-set), so a
recompute that loses a race re-reads and tries again instead of
overwriting a newer result.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from uuid import UUID

from progress_engine.core.clock import epoch_seconds
from progress_engine.core.config import SETTINGS
from progress_engine.core.errors import NotFoundError, RecomputeConflictError
from progress_engine.core.metrics import RECOMPUTE_CONFLICTS, RECOMPUTE_DURATION
from progress_engine.models.course import ASSESSMENT, VIDEO, CourseContentTree
from progress_engine.models.progress import (
    AssessmentAttempt,
    RecomputeResult,
    VideoProgress,
)
from progress_engine.repos.content_repo import ContentRepo
from progress_engine.repos.progress_store import ProgressStore

logger = logging.getLogger(__name__)

ASSESSMENT_WEIGHT = 600  # seconds-equivalent

COMPLETION_EPSILON = 1e-6


@dataclass(frozen=True, slots=True)
class ProgressSnapshot:
    total_weight: int
    earned_weight: int
    progress_percentage: float
    completed: bool


def compute_progress(
    tree: CourseContentTree,
    videos: Iterable[VideoProgress],
    attempts: Iterable[AssessmentAttempt],
) -> ProgressSnapshot:
    completed_videos = {v.content_item_id for v in videos if v.completed}
    passed_assessments = {a.content_item_id for a in attempts if a.passed}

    total = 0
    earned = 0
    for item in tree.countable_items():
        if item.content_type == VIDEO:
            weight = item.duration_seconds or 0
            done = item.id in completed_videos
        elif item.content_type == ASSESSMENT:
            weight = ASSESSMENT_WEIGHT
            done = item.id in passed_assessments
        else:
            continue
        total += weight
        if done:
            earned += weight

    if total <= 0:
        return ProgressSnapshot(0, 0, 0.0, False)

    percentage = min(max(earned / total * 100, 0.0), 100.0)
    completed = percentage >= 100 - COMPLETION_EPSILON
    # An incomplete course never reports 100%, whatever the rounding.
    stored = 100.0 if completed else min(round(percentage, 2), 99.99)
    return ProgressSnapshot(
        total_weight=total,
        earned_weight=earned,
        progress_percentage=stored,
        completed=completed,
    )


class ProgressAggregator:
    def __init__(
        self,
        store: ProgressStore,
        content: ContentRepo,
        *,
        max_retries: int = SETTINGS.recompute_max_retries,
        clock: Callable[[], int] = epoch_seconds,
    ) -> None:
        self._store = store
        self._content = content
        self._max_retries = max_retries
        self._clock = clock

    async def recalculate(self, enrollment_id: UUID) -> RecomputeResult:
        start = time.perf_counter()
        try:
            return await self._recalculate(enrollment_id)
        finally:
            RECOMPUTE_DURATION.observe(time.perf_counter() - start)

    async def _recalculate(self, enrollment_id: UUID) -> RecomputeResult:
        for attempt in range(1, self._max_retries + 1):
            enrollment = await self._store.get_enrollment_by_id(enrollment_id)
            if enrollment is None:
                raise NotFoundError("Enrollment not found")

            tree = await self._content.get_course_content_tree(enrollment.course_id)
            if tree is None:
                raise NotFoundError("Course not found")

            videos = await self._store.list_video_progress(enrollment_id)
            attempts = await self._store.list_attempts(enrollment_id)
            snapshot = compute_progress(tree, videos, attempts)

            # Completion is sticky: later content changes never reopen it.
            completed = enrollment.completed or snapshot.completed
            if enrollment.completed:
                completed_at = enrollment.completed_at
            elif completed:
                completed_at = self._clock()
            else:
                completed_at = None

            unchanged = (
                enrollment.progress_percentage == snapshot.progress_percentage
                and enrollment.completed == completed
                and enrollment.completed_at == completed_at
            )
            if unchanged:
                return RecomputeResult(
                    enrollment_id=enrollment.id,
                    user_id=enrollment.user_id,
                    course_id=enrollment.course_id,
                    progress_percentage=enrollment.progress_percentage,
                    completed=enrollment.completed,
                    completed_at=enrollment.completed_at,
                )

            saved = await self._store.save_progress(
                enrollment_id,
                expected_version=enrollment.version,
                progress_percentage=snapshot.progress_percentage,
                completed=completed,
                completed_at=completed_at,
            )
            if saved is None:
                RECOMPUTE_CONFLICTS.inc()
                logger.info(
                    "Enrollment version conflict, retrying (%d/%d)",
                    attempt,
                    self._max_retries,
                    extra={"enrollment_id": str(enrollment_id)},
                )
                continue

            transitioned = saved.completed and not enrollment.completed
            logger.info(
                "Recomputed progress %.2f%% completed=%s",
                saved.progress_percentage,
                saved.completed,
                extra={
                    "enrollment_id": str(enrollment_id),
                    "course_id": str(saved.course_id),
                },
            )
            return RecomputeResult(
                enrollment_id=saved.id,
                user_id=saved.user_id,
                course_id=saved.course_id,
                progress_percentage=saved.progress_percentage,
                completed=saved.completed,
                completed_at=saved.completed_at,
                transitioned=transitioned,
            )

        logger.error(
            "Gave up recomputing after %d version conflicts",
            self._max_retries,
            extra={"enrollment_id": str(enrollment_id)},
        )
        raise RecomputeConflictError(
            f"Enrollment {enrollment_id} kept changing during recompute"
        )
