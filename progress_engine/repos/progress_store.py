"""Progress Store: enrollments, video progress rows and assessment attempts.

Every method is one atomic unit of work.  The in-memory store gets that
for free: no method awaits between its read and its write, so on a
single event loop nothing can interleave.  PgProgressStore gets it from
one database transaction per call.

save_progress is the enrollment compare-and-set used by the aggregator:
it only writes if the stored version still equals ``expected_version``,
and returns None otherwise.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Literal, Protocol
from uuid import UUID, uuid4

from progress_engine.core.errors import AlreadyEnrolledError
from progress_engine.models.progress import (
    AssessmentAttempt,
    Enrollment,
    VideoProgress,
    VideoProgressUpdate,
)

VideoWriteResult = Literal["created", "updated", "ignored_completed"]


class ProgressStore(Protocol):
    async def get_enrollment(
        self, user_id: str, course_id: UUID
    ) -> Enrollment | None: ...
    async def get_enrollment_by_id(
        self, enrollment_id: UUID
    ) -> Enrollment | None: ...
    async def list_enrollments(self, user_id: str) -> list[Enrollment]: ...
    async def create_enrollment(
        self, enrollment: Enrollment, video_rows: list[VideoProgress]
    ) -> Enrollment: ...
    async def delete_enrollment(self, enrollment_id: UUID) -> bool: ...
    async def upsert_video_progress(
        self,
        *,
        enrollment_id: UUID,
        user_id: str,
        content_item_id: UUID,
        duration_seconds: int | None,
        update: VideoProgressUpdate,
    ) -> tuple[VideoProgress, VideoWriteResult]: ...
    async def list_video_progress(
        self, enrollment_id: UUID
    ) -> list[VideoProgress]: ...
    async def append_attempt(
        self,
        *,
        enrollment_id: UUID,
        user_id: str,
        content_item_id: UUID,
        score: float,
        passed: bool,
        answers: dict[str, str],
        now: int,
    ) -> tuple[AssessmentAttempt, bool]: ...
    async def list_attempts(self, enrollment_id: UUID) -> list[AssessmentAttempt]: ...
    async def save_progress(
        self,
        enrollment_id: UUID,
        *,
        expected_version: int,
        progress_percentage: float,
        completed: bool,
        completed_at: int | None,
    ) -> Enrollment | None: ...


class InMemoryProgressStore:
    def __init__(self) -> None:
        self._enrollments: dict[UUID, Enrollment] = {}
        self._by_pair: dict[tuple[str, UUID], UUID] = {}
        self._videos: dict[tuple[str, UUID], VideoProgress] = {}
        self._attempts: dict[tuple[str, UUID], list[AssessmentAttempt]] = {}

    async def get_enrollment(self, user_id: str, course_id: UUID) -> Enrollment | None:
        enrollment_id = self._by_pair.get((user_id, course_id))
        if enrollment_id is None:
            return None
        return self._enrollments.get(enrollment_id)

    async def get_enrollment_by_id(self, enrollment_id: UUID) -> Enrollment | None:
        return self._enrollments.get(enrollment_id)

    async def list_enrollments(self, user_id: str) -> list[Enrollment]:
        """Newest enrollment first."""
        owned = [e for e in self._enrollments.values() if e.user_id == user_id]
        owned.reverse()
        owned.sort(key=lambda e: e.enrolled_at, reverse=True)
        return owned

    async def create_enrollment(
        self, enrollment: Enrollment, video_rows: list[VideoProgress]
    ) -> Enrollment:
        pair = (enrollment.user_id, enrollment.course_id)
        if pair in self._by_pair:
            raise AlreadyEnrolledError()
        self._enrollments[enrollment.id] = enrollment
        self._by_pair[pair] = enrollment.id
        for row in video_rows:
            self._videos.setdefault((row.user_id, row.content_item_id), row)
        return enrollment

    async def delete_enrollment(self, enrollment_id: UUID) -> bool:
        enrollment = self._enrollments.pop(enrollment_id, None)
        if enrollment is None:
            return False
        del self._by_pair[(enrollment.user_id, enrollment.course_id)]
        # cascade
        owned = [k for k, v in self._videos.items() if v.enrollment_id == enrollment_id]
        for key in owned:
            del self._videos[key]
        for key in list(self._attempts):
            self._attempts[key] = [
                a for a in self._attempts[key] if a.enrollment_id != enrollment_id
            ]
            if not self._attempts[key]:
                del self._attempts[key]
        return True

    async def upsert_video_progress(
        self,
        *,
        enrollment_id: UUID,
        user_id: str,
        content_item_id: UUID,
        duration_seconds: int | None,
        update: VideoProgressUpdate,
    ) -> tuple[VideoProgress, VideoWriteResult]:
        key = (user_id, content_item_id)
        existing = self._videos.get(key)
        result: VideoWriteResult = "updated"
        if existing is None:
            existing = VideoProgress.new(
                enrollment_id=enrollment_id,
                user_id=user_id,
                content_item_id=content_item_id,
                duration_seconds=duration_seconds,
            )
            result = "created"

        updated = existing.apply(update)
        if updated is None:
            return existing, "ignored_completed"

        self._videos[key] = updated
        return updated, result

    async def list_video_progress(self, enrollment_id: UUID) -> list[VideoProgress]:
        return [v for v in self._videos.values() if v.enrollment_id == enrollment_id]

    async def append_attempt(
        self,
        *,
        enrollment_id: UUID,
        user_id: str,
        content_item_id: UUID,
        score: float,
        passed: bool,
        answers: dict[str, str],
        now: int,
    ) -> tuple[AssessmentAttempt, bool]:
        history = self._attempts.setdefault((user_id, content_item_id), [])
        had_passed = any(a.passed for a in history)
        attempt = AssessmentAttempt(
            id=uuid4(),
            enrollment_id=enrollment_id,
            user_id=user_id,
            content_item_id=content_item_id,
            attempt_number=len(history) + 1,
            score=score,
            passed=passed,
            answers=dict(answers),
            created_at=now,
        )
        history.append(attempt)
        return attempt, passed and not had_passed

    async def list_attempts(self, enrollment_id: UUID) -> list[AssessmentAttempt]:
        return [
            a
            for history in self._attempts.values()
            for a in history
            if a.enrollment_id == enrollment_id
        ]

    async def save_progress(
        self,
        enrollment_id: UUID,
        *,
        expected_version: int,
        progress_percentage: float,
        completed: bool,
        completed_at: int | None,
    ) -> Enrollment | None:
        current = self._enrollments.get(enrollment_id)
        if current is None or current.version != expected_version:
            return None
        saved = replace(
            current,
            progress_percentage=progress_percentage,
            completed=completed,
            completed_at=completed_at,
            version=expected_version + 1,
        )
        self._enrollments[enrollment_id] = saved
        return saved

    def clear(self) -> None:
        self._enrollments.clear()
        self._by_pair.clear()
        self._videos.clear()
        self._attempts.clear()
