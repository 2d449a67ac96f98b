"""Certificate endpoints.

Verification is public: anyone holding a certificate number can check
it, so that route takes no token.
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from progress_engine.api.dependencies import require_user
from progress_engine.api.errors import http_error
from progress_engine.core.errors import ProgressError
from progress_engine.models.principal import Principal
from progress_engine.services.progress_service import progress_service

router = APIRouter(prefix="/v1/certificates", tags=["certificates"])


class CertificateOut(BaseModel):
    id: UUID
    user_id: str
    course_id: UUID
    certificate_number: str
    verification_hash: str
    issued_at: int


class CertificateVerificationOut(BaseModel):
    valid: bool
    certificate_number: str
    user_id: str
    course_id: UUID
    course_title: str
    issued_at: int


@router.post(
    "/generate/{course_id}",
    response_model=CertificateOut,
    status_code=status.HTTP_201_CREATED,
)
async def generate_certificate(
    course_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
) -> CertificateOut:
    try:
        cert = await progress_service.issue_certificate(principal.user_id, course_id)
    except ProgressError as e:
        raise http_error(e) from None

    return CertificateOut(
        id=cert.id,
        user_id=cert.user_id,
        course_id=cert.course_id,
        certificate_number=cert.certificate_number,
        verification_hash=cert.verification_hash,
        issued_at=cert.issued_at,
    )


@router.get(
    "/verify/{certificate_number}", response_model=CertificateVerificationOut
)
async def verify_certificate(certificate_number: str) -> CertificateVerificationOut:
    try:
        result = await progress_service.verify_certificate(certificate_number)
    except ProgressError as e:
        raise http_error(e) from None

    return CertificateVerificationOut(
        valid=result.valid,
        certificate_number=result.certificate_number,
        user_id=result.user_id,
        course_id=result.course_id,
        course_title=result.course_title,
        issued_at=result.issued_at,
    )
