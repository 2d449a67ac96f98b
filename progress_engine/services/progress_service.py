"""Course progress engine facade.

Wires the tracker, grader, aggregator, recompute coordinator, completion
trigger and certificate service around one set of stores, and exposes
the operations the HTTP layer and the worker call.

The module-level ``progress_service`` uses PostgreSQL when DATABASE_URL
is set and in-memory stores otherwise.  With REDIS_URL set, certificate
issuance after completion is handed to the worker through the task
queue; without it the certificate is issued in-process.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from uuid import UUID

from progress_engine.core.clock import epoch_millis, epoch_seconds
from progress_engine.core.config import SETTINGS
from progress_engine.core.errors import NotEnrolledError
from progress_engine.db.engine import async_session_factory
from progress_engine.db.redis import redis_pool
from progress_engine.models.certificate import Certificate, CertificateVerification
from progress_engine.models.progress import (
    AttemptResult,
    CourseProgress,
    EnrolledCourse,
    Enrollment,
    RecomputeResult,
    VideoProgress,
)
from progress_engine.repos.certificate_repo import (
    CertificateRepo,
    InMemoryCertificateRepo,
)
from progress_engine.repos.content_repo import ContentRepo, InMemoryContentRepo
from progress_engine.repos.progress_store import InMemoryProgressStore, ProgressStore
from progress_engine.services.aggregator import ProgressAggregator
from progress_engine.services.certificate_service import (
    CertificateService,
    DirectCertificateIssuer,
    QueuedCertificateIssuer,
)
from progress_engine.services.completion import CertificateIssuer, CompletionTrigger
from progress_engine.services.enrollment_service import EnrollmentService
from progress_engine.services.grader import AssessmentGrader
from progress_engine.services.recompute import RecomputeCoordinator, RecomputeRequest
from progress_engine.services.task_queue import task_queue
from progress_engine.services.video_tracker import VideoProgressTracker

logger = logging.getLogger(__name__)


class ProgressService:
    def __init__(
        self,
        *,
        store: ProgressStore,
        content: ContentRepo,
        certificates: CertificateRepo,
        issuer: CertificateIssuer | None = None,
        max_retries: int = SETTINGS.recompute_max_retries,
        clock: Callable[[], int] = epoch_seconds,
        clock_ms: Callable[[], int] = epoch_millis,
    ) -> None:
        self.store = store
        self.content = content
        self.certificate_repo = certificates

        self.certificates = CertificateService(
            store, certificates, content, clock_ms=clock_ms
        )
        self.trigger = CompletionTrigger(
            issuer if issuer is not None else DirectCertificateIssuer(self.certificates)
        )
        self.aggregator = ProgressAggregator(
            store, content, max_retries=max_retries, clock=clock
        )
        self.recompute = RecomputeCoordinator(self.aggregator, self.trigger)
        self.tracker = VideoProgressTracker(store, content, self.recompute, clock=clock)
        self.grader = AssessmentGrader(store, content, self.recompute, clock=clock)
        self.enrollments = EnrollmentService(store, content, clock=clock)

    async def enroll(self, user_id: str, course_id: UUID) -> Enrollment:
        return await self.enrollments.enroll(user_id, course_id)

    async def update_video_progress(
        self,
        user_id: str,
        content_item_id: UUID,
        last_position_seconds: int,
        completed: bool | None = None,
        total_watch_time_seconds: int | None = None,
    ) -> VideoProgress:
        return await self.tracker.record_video_progress(
            user_id,
            content_item_id,
            last_position_seconds,
            completed=completed,
            total_watch_time_seconds=total_watch_time_seconds,
        )

    async def submit_assessment(
        self, user_id: str, content_item_id: UUID, answers: Mapping[str, str]
    ) -> AttemptResult:
        return await self.grader.submit_assessment(user_id, content_item_id, answers)

    async def get_course_progress(
        self, user_id: str, course_id: UUID
    ) -> CourseProgress:
        enrollment = await self.store.get_enrollment(user_id, course_id)
        if enrollment is None:
            raise NotEnrolledError()

        videos = await self.store.list_video_progress(enrollment.id)
        attempts = await self.store.list_attempts(enrollment.id)
        attempts.sort(key=lambda a: (a.created_at, a.attempt_number), reverse=True)

        return CourseProgress(
            enrollment_id=enrollment.id,
            course_id=enrollment.course_id,
            progress_percentage=enrollment.progress_percentage,
            completed=enrollment.completed,
            completed_at=enrollment.completed_at,
            video_progress=tuple(videos),
            assessment_attempts=tuple(attempts),
        )

    async def get_enrollment(self, enrollment_id: UUID) -> Enrollment | None:
        return await self.store.get_enrollment_by_id(enrollment_id)

    async def list_enrolled_courses(self, user_id: str) -> list[EnrolledCourse]:
        """The learner's courses with their progress, newest enrollment first."""
        enrolled = []
        for enrollment in await self.store.list_enrollments(user_id):
            course = await self.content.get_course(enrollment.course_id)
            if course is None:
                logger.warning(
                    "Enrollment points at a missing course",
                    extra={
                        "enrollment_id": str(enrollment.id),
                        "course_id": str(enrollment.course_id),
                    },
                )
                continue
            enrolled.append(EnrolledCourse(course=course, enrollment=enrollment))
        return enrolled

    async def delete_enrollment(self, enrollment_id: UUID) -> bool:
        """Delete an enrollment with its progress, attempts and certificate."""
        removed = await self.certificate_repo.delete_for_enrollment(enrollment_id)
        deleted = await self.store.delete_enrollment(enrollment_id)
        if deleted:
            logger.info(
                "Deleted enrollment (%d certificates)",
                removed,
                extra={"enrollment_id": str(enrollment_id)},
            )
        return deleted

    async def recalculate(self, enrollment_id: UUID) -> RecomputeResult:
        """Operator-initiated recompute; same path as write-triggered ones."""
        return await self.recompute.request(
            RecomputeRequest(enrollment_id, reason="manual")
        )

    async def issue_certificate(self, user_id: str, course_id: UUID) -> Certificate:
        return await self.certificates.issue_certificate(user_id, course_id)

    async def verify_certificate(
        self, certificate_number: str
    ) -> CertificateVerification:
        return await self.certificates.verify_certificate(certificate_number)


def build_progress_service() -> ProgressService:
    if async_session_factory is not None:
        from progress_engine.repos.pg_certificate_repo import PgCertificateRepo
        from progress_engine.repos.pg_content_repo import PgContentRepo
        from progress_engine.repos.pg_progress_store import PgProgressStore

        store: ProgressStore = PgProgressStore(async_session_factory)
        content: ContentRepo = PgContentRepo(async_session_factory)
        certificates: CertificateRepo = PgCertificateRepo(async_session_factory)
        logger.info("Progress engine using PostgreSQL stores")
    else:
        store = InMemoryProgressStore()
        content = InMemoryContentRepo()
        certificates = InMemoryCertificateRepo()
        logger.info("Progress engine using in-memory stores")

    issuer: CertificateIssuer | None = None
    if redis_pool is not None:
        issuer = QueuedCertificateIssuer(task_queue)

    return ProgressService(
        store=store, content=content, certificates=certificates, issuer=issuer
    )


progress_service = build_progress_service()
