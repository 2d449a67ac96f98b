"""Video Progress Tracker.

Records playback position and completion for one (learner, video) pair.
The row is created on first write with the item's duration copied in as
its weight snapshot.

Completion is monotonic (see VideoProgress.apply): once a video is
completed, updates that do not re-assert completion are dropped whole,
so a late position update after completion is lost rather than allowed
to un-complete the video.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from uuid import UUID

from progress_engine.core.clock import epoch_seconds
from progress_engine.core.errors import InvalidInputError
from progress_engine.core.metrics import VIDEO_PROGRESS_UPDATES
from progress_engine.models.course import VIDEO
from progress_engine.models.progress import VideoProgress, VideoProgressUpdate
from progress_engine.repos.content_repo import ContentRepo
from progress_engine.repos.progress_store import ProgressStore
from progress_engine.services.recompute import RecomputeCoordinator, RecomputeRequest
from progress_engine.services.scope import resolve_item_scope

logger = logging.getLogger(__name__)


class VideoProgressTracker:
    def __init__(
        self,
        store: ProgressStore,
        content: ContentRepo,
        recompute: RecomputeCoordinator,
        *,
        clock: Callable[[], int] = epoch_seconds,
    ) -> None:
        self._store = store
        self._content = content
        self._recompute = recompute
        self._clock = clock

    async def record_video_progress(
        self,
        user_id: str,
        content_item_id: UUID,
        last_position_seconds: int,
        completed: bool | None = None,
        total_watch_time_seconds: int | None = None,
    ) -> VideoProgress:
        if last_position_seconds < 0:
            raise InvalidInputError("last_position_seconds must be >= 0")
        if total_watch_time_seconds is not None and total_watch_time_seconds < 0:
            raise InvalidInputError("total_watch_time_seconds must be >= 0")

        item, enrollment = await resolve_item_scope(
            self._store,
            self._content,
            user_id=user_id,
            content_item_id=content_item_id,
            expected_type=VIDEO,
        )

        progress, result = await self._store.upsert_video_progress(
            enrollment_id=enrollment.id,
            user_id=user_id,
            content_item_id=content_item_id,
            duration_seconds=item.duration_seconds,
            update=VideoProgressUpdate(
                last_position_seconds=last_position_seconds,
                total_watch_time_seconds=total_watch_time_seconds,
                completed=bool(completed),
                now=self._clock(),
            ),
        )
        VIDEO_PROGRESS_UPDATES.labels(result=result).inc()

        if result == "ignored_completed":
            logger.info(
                "Ignored update to completed video user=%s item=%s position=%d",
                user_id,
                content_item_id,
                last_position_seconds,
            )
            return progress

        # Re-assertions recompute too; the aggregator is idempotent.
        if progress.completed:
            await self._recompute.request(
                RecomputeRequest(enrollment.id, reason="video_completed")
            )

        return progress
