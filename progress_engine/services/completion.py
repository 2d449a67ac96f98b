"""Completion Trigger: reacts once to an enrollment becoming completed.

Issuance is best-effort: a failing issuer is logged and counted, and the
learner can still request the certificate explicitly later.  Nothing
here retries.
"""

from __future__ import annotations

import logging
from typing import Protocol
from uuid import UUID

from progress_engine.core.metrics import (
    CERTIFICATE_ISSUANCE_FAILURES,
    COURSE_COMPLETIONS,
)

logger = logging.getLogger(__name__)


class CertificateIssuer(Protocol):
    async def issue(self, user_id: str, course_id: UUID) -> None: ...


class CompletionTrigger:
    def __init__(self, issuer: CertificateIssuer) -> None:
        self._issuer = issuer

    async def on_completed(
        self, enrollment_id: UUID, user_id: str, course_id: UUID
    ) -> None:
        COURSE_COMPLETIONS.inc()
        try:
            await self._issuer.issue(user_id, course_id)
        except Exception:
            CERTIFICATE_ISSUANCE_FAILURES.inc()
            logger.exception(
                "Certificate issuance failed after completion",
                extra={
                    "enrollment_id": str(enrollment_id),
                    "course_id": str(course_id),
                    "user_id": user_id,
                },
            )
