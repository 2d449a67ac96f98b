from __future__ import annotations

from typing import Protocol
from uuid import UUID

from progress_engine.models.certificate import Certificate


class CertificateRepo(Protocol):
    async def get_for_pair(
        self, user_id: str, course_id: UUID
    ) -> Certificate | None: ...
    async def get_by_number(self, certificate_number: str) -> Certificate | None: ...
    async def add_if_absent(self, certificate: Certificate) -> Certificate: ...
    async def delete_for_enrollment(self, enrollment_id: UUID) -> int: ...


class InMemoryCertificateRepo:
    def __init__(self) -> None:
        self._by_pair: dict[tuple[str, UUID], Certificate] = {}
        self._by_number: dict[str, Certificate] = {}

    async def get_for_pair(self, user_id: str, course_id: UUID) -> Certificate | None:
        return self._by_pair.get((user_id, course_id))

    async def get_by_number(self, certificate_number: str) -> Certificate | None:
        return self._by_number.get(certificate_number)

    async def add_if_absent(self, certificate: Certificate) -> Certificate:
        """Store ``certificate`` unless the pair already has one; return the winner."""
        pair = (certificate.user_id, certificate.course_id)
        existing = self._by_pair.get(pair)
        if existing is not None:
            return existing
        self._by_pair[pair] = certificate
        self._by_number[certificate.certificate_number] = certificate
        return certificate

    async def delete_for_enrollment(self, enrollment_id: UUID) -> int:
        owned = [c for c in self._by_pair.values() if c.enrollment_id == enrollment_id]
        for certificate in owned:
            del self._by_pair[(certificate.user_id, certificate.course_id)]
            del self._by_number[certificate.certificate_number]
        return len(owned)

    def clear(self) -> None:
        self._by_pair.clear()
        self._by_number.clear()
