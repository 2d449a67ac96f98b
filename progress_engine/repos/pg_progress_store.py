"""PostgreSQL implementation of ProgressStore.

One transaction per method, opened from the session factory.  Leaf writes
lock only the row they touch; attempt numbering locks the owning
enrollment row so two concurrent submissions cannot share a number.
"""

from __future__ import annotations

from uuid import UUID, uuid4

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from progress_engine.core.errors import AlreadyEnrolledError
from progress_engine.db.tables import (
    AssessmentAttemptRow,
    EnrollmentRow,
    VideoProgressRow,
)
from progress_engine.models.progress import (
    AssessmentAttempt,
    Enrollment,
    VideoProgress,
    VideoProgressUpdate,
)
from progress_engine.repos.progress_store import VideoWriteResult


class PgProgressStore:
    """Satisfies the ProgressStore Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_enrollment(self, user_id: str, course_id: UUID) -> Enrollment | None:
        stmt = select(EnrollmentRow).where(
            EnrollmentRow.user_id == user_id, EnrollmentRow.course_id == course_id
        )
        async with self._session_factory() as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
        return None if row is None else _row_to_enrollment(row)

    async def get_enrollment_by_id(self, enrollment_id: UUID) -> Enrollment | None:
        async with self._session_factory() as session:
            row = await session.get(EnrollmentRow, enrollment_id)
        return None if row is None else _row_to_enrollment(row)

    async def list_enrollments(self, user_id: str) -> list[Enrollment]:
        stmt = (
            select(EnrollmentRow)
            .where(EnrollmentRow.user_id == user_id)
            .order_by(EnrollmentRow.enrolled_at.desc())
        )
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [_row_to_enrollment(r) for r in rows]

    async def create_enrollment(
        self, enrollment: Enrollment, video_rows: list[VideoProgress]
    ) -> Enrollment:
        try:
            async with self._session_factory() as session, session.begin():
                session.add(
                    EnrollmentRow(
                        id=enrollment.id,
                        user_id=enrollment.user_id,
                        course_id=enrollment.course_id,
                        enrolled_at=enrollment.enrolled_at,
                        progress_percentage=enrollment.progress_percentage,
                        completed=enrollment.completed,
                        completed_at=enrollment.completed_at,
                        version=enrollment.version,
                    )
                )
                await session.flush()
                session.add_all(_video_to_row(v) for v in video_rows)
        except IntegrityError:
            raise AlreadyEnrolledError() from None
        return enrollment

    async def delete_enrollment(self, enrollment_id: UUID) -> bool:
        # video_progress and assessment_attempts go with it (ON DELETE CASCADE)
        stmt = delete(EnrollmentRow).where(EnrollmentRow.id == enrollment_id)
        async with self._session_factory() as session, session.begin():
            result = await session.execute(stmt)
        return result.rowcount > 0

    async def upsert_video_progress(
        self,
        *,
        enrollment_id: UUID,
        user_id: str,
        content_item_id: UUID,
        duration_seconds: int | None,
        update: VideoProgressUpdate,
    ) -> tuple[VideoProgress, VideoWriteResult]:
        insert_stmt = (
            pg_insert(VideoProgressRow)
            .values(
                id=uuid4(),
                enrollment_id=enrollment_id,
                user_id=user_id,
                content_item_id=content_item_id,
                duration_seconds=duration_seconds,
                last_position_seconds=0,
                total_watch_time_seconds=0,
                completed=False,
            )
            .on_conflict_do_nothing(index_elements=["user_id", "content_item_id"])
        )
        lock_stmt = (
            select(VideoProgressRow)
            .where(
                VideoProgressRow.user_id == user_id,
                VideoProgressRow.content_item_id == content_item_id,
            )
            .with_for_update()
        )

        async with self._session_factory() as session, session.begin():
            inserted = await session.execute(insert_stmt)
            row = (await session.execute(lock_stmt)).scalar_one()
            current = _row_to_video(row)

            updated = current.apply(update)
            if updated is None:
                return current, "ignored_completed"

            row.last_position_seconds = updated.last_position_seconds
            row.total_watch_time_seconds = updated.total_watch_time_seconds
            row.completed = updated.completed
            row.completed_at = updated.completed_at
            row.updated_at = updated.updated_at

        result: VideoWriteResult = "created" if inserted.rowcount else "updated"
        return updated, result

    async def list_video_progress(self, enrollment_id: UUID) -> list[VideoProgress]:
        stmt = select(VideoProgressRow).where(
            VideoProgressRow.enrollment_id == enrollment_id
        )
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [_row_to_video(r) for r in rows]

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
        pair = (
            AssessmentAttemptRow.user_id == user_id,
            AssessmentAttemptRow.content_item_id == content_item_id,
        )
        async with self._session_factory() as session, session.begin():
            await session.execute(
                select(EnrollmentRow.id)
                .where(EnrollmentRow.id == enrollment_id)
                .with_for_update()
            )
            prior = (
                await session.execute(
                    select(
                        func.count(AssessmentAttemptRow.id),
                        func.bool_or(AssessmentAttemptRow.passed),
                    ).where(*pair)
                )
            ).one()
            attempt = AssessmentAttempt(
                id=uuid4(),
                enrollment_id=enrollment_id,
                user_id=user_id,
                content_item_id=content_item_id,
                attempt_number=prior[0] + 1,
                score=score,
                passed=passed,
                answers=dict(answers),
                created_at=now,
            )
            session.add(
                AssessmentAttemptRow(
                    id=attempt.id,
                    enrollment_id=enrollment_id,
                    user_id=user_id,
                    content_item_id=content_item_id,
                    attempt_number=attempt.attempt_number,
                    score=score,
                    passed=passed,
                    answers_json=attempt.answers,
                    created_at=now,
                )
            )
        return attempt, passed and not bool(prior[1])

    async def list_attempts(self, enrollment_id: UUID) -> list[AssessmentAttempt]:
        stmt = select(AssessmentAttemptRow).where(
            AssessmentAttemptRow.enrollment_id == enrollment_id
        )
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [_row_to_attempt(r) for r in rows]

    async def save_progress(
        self,
        enrollment_id: UUID,
        *,
        expected_version: int,
        progress_percentage: float,
        completed: bool,
        completed_at: int | None,
    ) -> Enrollment | None:
        stmt = (
            update(EnrollmentRow)
            .where(
                EnrollmentRow.id == enrollment_id,
                EnrollmentRow.version == expected_version,
            )
            .values(
                progress_percentage=progress_percentage,
                completed=completed,
                completed_at=completed_at,
                version=expected_version + 1,
            )
            .returning(EnrollmentRow)
        )
        async with self._session_factory() as session, session.begin():
            row = (await session.execute(stmt)).scalar_one_or_none()
            return None if row is None else _row_to_enrollment(row)


def _row_to_enrollment(row: EnrollmentRow) -> Enrollment:
    return Enrollment(
        id=row.id,
        user_id=row.user_id,
        course_id=row.course_id,
        enrolled_at=row.enrolled_at,
        progress_percentage=float(row.progress_percentage),
        completed=row.completed,
        completed_at=row.completed_at,
        version=row.version,
    )


def _row_to_video(row: VideoProgressRow) -> VideoProgress:
    return VideoProgress(
        id=row.id,
        enrollment_id=row.enrollment_id,
        user_id=row.user_id,
        content_item_id=row.content_item_id,
        duration_seconds=row.duration_seconds,
        last_position_seconds=row.last_position_seconds,
        total_watch_time_seconds=row.total_watch_time_seconds,
        completed=row.completed,
        completed_at=row.completed_at,
        updated_at=row.updated_at,
    )


def _video_to_row(video: VideoProgress) -> VideoProgressRow:
    return VideoProgressRow(
        id=video.id,
        enrollment_id=video.enrollment_id,
        user_id=video.user_id,
        content_item_id=video.content_item_id,
        duration_seconds=video.duration_seconds,
        last_position_seconds=video.last_position_seconds,
        total_watch_time_seconds=video.total_watch_time_seconds,
        completed=video.completed,
        completed_at=video.completed_at,
        updated_at=video.updated_at,
    )


def _row_to_attempt(row: AssessmentAttemptRow) -> AssessmentAttempt:
    return AssessmentAttempt(
        id=row.id,
        enrollment_id=row.enrollment_id,
        user_id=row.user_id,
        content_item_id=row.content_item_id,
        attempt_number=row.attempt_number,
        score=float(row.score),
        passed=row.passed,
        answers=dict(row.answers_json or {}),
        created_at=row.created_at,
    )
