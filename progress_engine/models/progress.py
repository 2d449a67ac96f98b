from __future__ import annotations

from dataclasses import dataclass, field, replace
from uuid import UUID, uuid4

from progress_engine.models.course import Course


@dataclass(frozen=True, slots=True)
class Enrollment:
    """One learner in one course; owns the aggregate completion state.

    ``version`` is the optimistic-concurrency token: every aggregator write
    must name the version it read and bumps it by one.
    """

    id: UUID
    user_id: str
    course_id: UUID
    enrolled_at: int
    progress_percentage: float = 0.0
    completed: bool = False
    completed_at: int | None = None
    version: int = 1

    @staticmethod
    def new(*, user_id: str, course_id: UUID, enrolled_at: int) -> Enrollment:
        return Enrollment(
            id=uuid4(), user_id=user_id, course_id=course_id, enrolled_at=enrolled_at
        )


@dataclass(frozen=True, slots=True)
class VideoProgress:
    id: UUID
    enrollment_id: UUID
    user_id: str
    content_item_id: UUID
    duration_seconds: int | None = None  # weight snapshot at creation
    last_position_seconds: int = 0
    total_watch_time_seconds: int = 0
    completed: bool = False
    completed_at: int | None = None
    updated_at: int | None = None

    @staticmethod
    def new(
        *,
        enrollment_id: UUID,
        user_id: str,
        content_item_id: UUID,
        duration_seconds: int | None,
    ) -> VideoProgress:
        return VideoProgress(
            id=uuid4(),
            enrollment_id=enrollment_id,
            user_id=user_id,
            content_item_id=content_item_id,
            duration_seconds=duration_seconds,
        )

    def apply(self, update: VideoProgressUpdate) -> VideoProgress | None:
        """Return the row after ``update``, or None if it must be ignored.

        Completion is monotonic: once completed, only an update that also
        asserts completion is applied, and it keeps the first
        completed_at.  Any other update leaves the whole row untouched,
        position and watch time included.
        """
        if self.completed and not update.completed:
            return None

        if update.completed:
            completed_at = self.completed_at if self.completed else update.now
        else:
            completed_at = None

        watch_time = update.total_watch_time_seconds
        return replace(
            self,
            last_position_seconds=update.last_position_seconds,
            total_watch_time_seconds=(
                self.total_watch_time_seconds if watch_time is None else watch_time
            ),
            completed=update.completed,
            completed_at=completed_at,
            updated_at=update.now,
        )


@dataclass(frozen=True, slots=True)
class VideoProgressUpdate:
    """Fields a tracker write applies to an existing or new row."""

    last_position_seconds: int
    total_watch_time_seconds: int | None
    completed: bool
    now: int


@dataclass(frozen=True, slots=True)
class AssessmentAttempt:
    """Immutable record of one scored submission."""

    id: UUID
    enrollment_id: UUID
    user_id: str
    content_item_id: UUID
    attempt_number: int
    score: float
    passed: bool
    answers: dict[str, str] = field(default_factory=dict)
    created_at: int = 0


@dataclass(frozen=True, slots=True)
class AttemptResult:
    attempt: AssessmentAttempt
    correct_count: int
    total_questions: int
    earned_points: int
    total_points: int
    first_pass: bool = False


@dataclass(frozen=True, slots=True)
class RecomputeResult:
    enrollment_id: UUID
    user_id: str
    course_id: UUID
    progress_percentage: float
    completed: bool
    completed_at: int | None
    transitioned: bool = False


@dataclass(frozen=True, slots=True)
class CourseProgress:
    """Read model returned by get_course_progress."""

    enrollment_id: UUID
    course_id: UUID
    progress_percentage: float
    completed: bool
    completed_at: int | None
    video_progress: tuple[VideoProgress, ...] = ()
    assessment_attempts: tuple[AssessmentAttempt, ...] = ()  # newest first


@dataclass(frozen=True, slots=True)
class EnrolledCourse:
    """A course as seen from one learner's enrollment in it."""

    course: Course
    enrollment: Enrollment
