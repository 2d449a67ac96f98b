"""PostgreSQL implementation of ContentRepo (read-only)."""

from __future__ import annotations

from collections import defaultdict
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from progress_engine.db.tables import (
    AssessmentQuestionRow,
    ContentItemRow,
    CourseModuleRow,
    CourseRow,
)
from progress_engine.models.course import (
    ContentItem,
    Course,
    CourseContentTree,
    CourseModule,
    Question,
)


class PgContentRepo:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_course(self, course_id: UUID) -> Course | None:
        async with self._session_factory() as session:
            row = await session.get(CourseRow, course_id)
        return None if row is None else _row_to_course(row)

    async def list_courses(self) -> list[Course]:
        async with self._session_factory() as session:
            rows = (await session.execute(select(CourseRow))).scalars().all()
        return [_row_to_course(r) for r in rows]

    async def get_course_content_tree(
        self, course_id: UUID
    ) -> CourseContentTree | None:
        async with self._session_factory() as session:
            course_row = await session.get(CourseRow, course_id)
            if course_row is None:
                return None
            module_rows = (
                (
                    await session.execute(
                        select(CourseModuleRow).where(
                            CourseModuleRow.course_id == course_id
                        )
                    )
                )
                .scalars()
                .all()
            )
            item_rows = (
                (
                    await session.execute(
                        select(ContentItemRow)
                        .join(
                            CourseModuleRow,
                            ContentItemRow.module_id == CourseModuleRow.id,
                        )
                        .where(CourseModuleRow.course_id == course_id)
                    )
                )
                .scalars()
                .all()
            )
            questions = await self._questions_for(
                session, [r.id for r in item_rows if r.content_type == "ASSESSMENT"]
            )

        items_by_module: dict[UUID, list[ContentItem]] = defaultdict(list)
        for r in item_rows:
            items_by_module[r.module_id].append(
                _row_to_item(r, course_id, questions.get(r.id, ()))
            )

        modules = tuple(
            CourseModule(
                id=m.id,
                course_id=course_id,
                position=m.position,
                title=m.title,
                items=tuple(items_by_module.get(m.id, ())),
            )
            for m in module_rows
        )
        return CourseContentTree(course=_row_to_course(course_row), modules=modules)

    async def get_content_item(self, content_item_id: UUID) -> ContentItem | None:
        async with self._session_factory() as session:
            row = await session.get(ContentItemRow, content_item_id)
            if row is None:
                return None
            module = await session.get(CourseModuleRow, row.module_id)
            questions = await self._questions_for(session, [row.id])
        if module is None:
            return None
        return _row_to_item(row, module.course_id, questions.get(row.id, ()))

    @staticmethod
    async def _questions_for(
        session: AsyncSession, item_ids: list[UUID]
    ) -> dict[UUID, tuple[Question, ...]]:
        if not item_ids:
            return {}
        stmt = select(AssessmentQuestionRow).where(
            AssessmentQuestionRow.content_item_id.in_(item_ids)
        )
        rows = (await session.execute(stmt)).scalars().all()
        grouped: dict[UUID, list[Question]] = defaultdict(list)
        for q in rows:
            grouped[q.content_item_id].append(
                Question(
                    id=q.id,
                    correct_answer=q.correct_answer,
                    points=q.points,
                    order_index=q.order_index,
                    question_type=q.question_type,
                )
            )
        return {
            item_id: tuple(sorted(qs, key=lambda q: q.order_index))
            for item_id, qs in grouped.items()
        }


def _row_to_course(row: CourseRow) -> Course:
    return Course(id=row.id, slug=row.slug, title=row.title, status=row.status)


def _row_to_item(
    row: ContentItemRow, course_id: UUID, questions: tuple[Question, ...]
) -> ContentItem:
    return ContentItem(
        id=row.id,
        module_id=row.module_id,
        course_id=course_id,
        content_type=row.content_type,  # type: ignore[arg-type]
        title=row.title,
        position=row.position,
        duration_seconds=row.duration_seconds,
        pass_percentage=row.pass_percentage,
        questions=questions,
    )
