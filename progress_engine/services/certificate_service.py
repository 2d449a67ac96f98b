"""Certificate issuance and public verification.

At most one certificate exists per (learner, course); issuing again
returns the one already stored.  Certificates are only issued for a
completed enrollment.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from uuid import UUID

from progress_engine.core.clock import epoch_millis
from progress_engine.core.errors import (
    InvalidInputError,
    NotEnrolledError,
    NotFoundError,
)
from progress_engine.models.certificate import Certificate, CertificateVerification
from progress_engine.repos.certificate_repo import CertificateRepo
from progress_engine.repos.content_repo import ContentRepo
from progress_engine.repos.progress_store import ProgressStore
from progress_engine.services.task_queue import TaskQueue

logger = logging.getLogger(__name__)

CERTIFICATE_QUEUE = "certificate_issuance"


class CertificateService:
    def __init__(
        self,
        store: ProgressStore,
        certificates: CertificateRepo,
        content: ContentRepo,
        *,
        clock_ms: Callable[[], int] = epoch_millis,
    ) -> None:
        self._store = store
        self._certificates = certificates
        self._content = content
        self._clock_ms = clock_ms

    async def issue_certificate(self, user_id: str, course_id: UUID) -> Certificate:
        enrollment = await self._store.get_enrollment(user_id, course_id)
        if enrollment is None:
            raise NotEnrolledError()
        if not enrollment.completed:
            raise InvalidInputError("Course not completed yet")

        existing = await self._certificates.get_for_pair(user_id, course_id)
        if existing is not None:
            return existing

        certificate = await self._certificates.add_if_absent(
            Certificate.new(
                user_id=user_id,
                course_id=course_id,
                enrollment_id=enrollment.id,
                now_ms=self._clock_ms(),
            )
        )
        logger.info(
            "Issued certificate %s",
            certificate.certificate_number,
            extra={
                "user_id": user_id,
                "course_id": str(course_id),
                "enrollment_id": str(enrollment.id),
            },
        )
        return certificate

    async def verify_certificate(
        self, certificate_number: str
    ) -> CertificateVerification:
        certificate = await self._certificates.get_by_number(certificate_number)
        if certificate is None:
            raise NotFoundError("Certificate not found")

        course = await self._content.get_course(certificate.course_id)
        return CertificateVerification(
            valid=True,
            certificate_number=certificate.certificate_number,
            user_id=certificate.user_id,
            course_id=certificate.course_id,
            course_title=course.title if course is not None else "",
            issued_at=certificate.issued_at,
        )


class DirectCertificateIssuer:
    """Issues in-process, right after the completing recompute releases its lock."""

    def __init__(self, service: CertificateService) -> None:
        self._service = service

    async def issue(self, user_id: str, course_id: UUID) -> None:
        await self._service.issue_certificate(user_id, course_id)


class QueuedCertificateIssuer:
    """Hands issuance to the background worker via the task queue."""

    def __init__(self, queue: TaskQueue) -> None:
        self._queue = queue

    async def issue(self, user_id: str, course_id: UUID) -> None:
        task = await self._queue.enqueue(
            CERTIFICATE_QUEUE, {"user_id": user_id, "course_id": str(course_id)}
        )
        logger.info(
            "Queued certificate issuance task=%s",
            task.id,
            extra={"user_id": user_id, "course_id": str(course_id)},
        )
