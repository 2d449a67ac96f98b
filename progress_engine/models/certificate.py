from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from uuid import UUID, uuid4


def make_certificate_number(now_ms: int) -> str:
    return f"CERT-{now_ms}-{secrets.token_hex(4).upper()}"


def make_verification_hash(user_id: str, course_id: UUID, number: str) -> str:
    return hashlib.sha256(f"{user_id}-{course_id}-{number}".encode()).hexdigest()


@dataclass(frozen=True, slots=True)
class Certificate:
    """Issued completion certificate, one per (learner, course)."""

    id: UUID
    user_id: str
    course_id: UUID
    enrollment_id: UUID
    certificate_number: str
    verification_hash: str
    issued_at: int

    @staticmethod
    def new(
        *, user_id: str, course_id: UUID, enrollment_id: UUID, now_ms: int
    ) -> Certificate:
        number = make_certificate_number(now_ms)
        return Certificate(
            id=uuid4(),
            user_id=user_id,
            course_id=course_id,
            enrollment_id=enrollment_id,
            certificate_number=number,
            verification_hash=make_verification_hash(user_id, course_id, number),
            issued_at=now_ms // 1000,
        )


@dataclass(frozen=True, slots=True)
class CertificateVerification:
    valid: bool
    certificate_number: str
    user_id: str
    course_id: UUID
    course_title: str
    issued_at: int
