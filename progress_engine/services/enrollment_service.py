from __future__ import annotations

import logging
from collections.abc import Callable
from uuid import UUID

from progress_engine.core.clock import epoch_seconds
from progress_engine.core.errors import (
    AlreadyEnrolledError,
    InvalidInputError,
    NotFoundError,
)
from progress_engine.models.progress import Enrollment, VideoProgress
from progress_engine.repos.content_repo import ContentRepo
from progress_engine.repos.progress_store import ProgressStore

logger = logging.getLogger(__name__)


class EnrollmentService:
    def __init__(
        self,
        store: ProgressStore,
        content: ContentRepo,
        *,
        clock: Callable[[], int] = epoch_seconds,
    ) -> None:
        self._store = store
        self._content = content
        self._clock = clock

    async def enroll(self, user_id: str, course_id: UUID) -> Enrollment:
        """Enroll ``user_id`` in a published course.

        Creates the enrollment at 0% together with an empty progress row
        for every video in the course, each carrying the video's current
        duration as its weight snapshot.
        """
        tree = await self._content.get_course_content_tree(course_id)
        if tree is None:
            raise NotFoundError("Course not found")
        if not tree.course.is_published:
            raise InvalidInputError("Course is not open for enrollment")

        if await self._store.get_enrollment(user_id, course_id) is not None:
            raise AlreadyEnrolledError()

        enrollment = Enrollment.new(
            user_id=user_id, course_id=course_id, enrolled_at=self._clock()
        )
        video_rows = [
            VideoProgress.new(
                enrollment_id=enrollment.id,
                user_id=user_id,
                content_item_id=video.id,
                duration_seconds=video.duration_seconds,
            )
            for video in tree.videos()
        ]
        created = await self._store.create_enrollment(enrollment, video_rows)
        logger.info(
            "Enrolled user=%s with %d video rows",
            user_id,
            len(video_rows),
            extra={"enrollment_id": str(created.id), "course_id": str(course_id)},
        )
        return created
