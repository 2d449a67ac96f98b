"""PostgreSQL implementation of CertificateRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from progress_engine.db.tables import CertificateRow
from progress_engine.models.certificate import Certificate


class PgCertificateRepo:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_for_pair(self, user_id: str, course_id: UUID) -> Certificate | None:
        stmt = select(CertificateRow).where(
            CertificateRow.user_id == user_id, CertificateRow.course_id == course_id
        )
        async with self._session_factory() as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
        return None if row is None else _row_to_certificate(row)

    async def get_by_number(self, certificate_number: str) -> Certificate | None:
        stmt = select(CertificateRow).where(
            CertificateRow.certificate_number == certificate_number
        )
        async with self._session_factory() as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
        return None if row is None else _row_to_certificate(row)

    async def add_if_absent(self, certificate: Certificate) -> Certificate:
        stmt = (
            pg_insert(CertificateRow)
            .values(
                id=certificate.id,
                user_id=certificate.user_id,
                course_id=certificate.course_id,
                enrollment_id=certificate.enrollment_id,
                certificate_number=certificate.certificate_number,
                verification_hash=certificate.verification_hash,
                issued_at=certificate.issued_at,
            )
            .on_conflict_do_nothing(index_elements=["user_id", "course_id"])
        )
        async with self._session_factory() as session, session.begin():
            await session.execute(stmt)
        stored = await self.get_for_pair(certificate.user_id, certificate.course_id)
        return stored if stored is not None else certificate

    async def delete_for_enrollment(self, enrollment_id: UUID) -> int:
        stmt = delete(CertificateRow).where(
            CertificateRow.enrollment_id == enrollment_id
        )
        async with self._session_factory() as session, session.begin():
            result = await session.execute(stmt)
        return result.rowcount


def _row_to_certificate(row: CertificateRow) -> Certificate:
    return Certificate(
        id=row.id,
        user_id=row.user_id,
        course_id=row.course_id,
        enrollment_id=row.enrollment_id,
        certificate_number=row.certificate_number,
        verification_hash=row.verification_hash,
        issued_at=row.issued_at,
    )
