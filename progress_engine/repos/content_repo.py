"""Read access to the course content tree.

Authoring lives in another service; this Protocol is the engine's only
view of it.  The in-memory implementation also offers write helpers so
dev seeding and tests can build trees.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID, uuid4

from progress_engine.models.course import (
    ContentItem,
    ContentType,
    Course,
    CourseContentTree,
    CourseModule,
    Question,
)


class ContentRepo(Protocol):
    async def get_course(self, course_id: UUID) -> Course | None: ...
    async def list_courses(self) -> list[Course]: ...
    async def get_course_content_tree(
        self, course_id: UUID
    ) -> CourseContentTree | None: ...
    async def get_content_item(self, content_item_id: UUID) -> ContentItem | None: ...


class InMemoryContentRepo:
    def __init__(self) -> None:
        self._courses: dict[UUID, Course] = {}
        self._modules: dict[UUID, CourseModule] = {}
        self._items: dict[UUID, ContentItem] = {}

    async def get_course(self, course_id: UUID) -> Course | None:
        return self._courses.get(course_id)

    async def list_courses(self) -> list[Course]:
        return list(self._courses.values())

    async def get_course_content_tree(
        self, course_id: UUID
    ) -> CourseContentTree | None:
        course = self._courses.get(course_id)
        if course is None:
            return None
        modules = tuple(
            replace(
                m,
                items=tuple(i for i in self._items.values() if i.module_id == m.id),
            )
            for m in self._modules.values()
            if m.course_id == course_id
        )
        return CourseContentTree(course=course, modules=modules)

    async def get_content_item(self, content_item_id: UUID) -> ContentItem | None:
        return self._items.get(content_item_id)

    # --- write helpers (seeding / tests) ---

    def add_course(self, course: Course) -> Course:
        if course.id in self._courses:
            raise ValueError("course already exists")
        self._courses[course.id] = course
        return course

    def add_module(
        self, course_id: UUID, *, title: str = "", position: int = 0
    ) -> CourseModule:
        if course_id not in self._courses:
            raise KeyError("course not found")
        module = CourseModule(
            id=uuid4(), course_id=course_id, position=position, title=title
        )
        self._modules[module.id] = module
        return module

    def add_item(
        self,
        module_id: UUID,
        content_type: ContentType,
        *,
        title: str = "",
        position: int = 0,
        duration_seconds: int | None = None,
        pass_percentage: int = 70,
        questions: tuple[Question, ...] = (),
    ) -> ContentItem:
        module = self._modules.get(module_id)
        if module is None:
            raise KeyError("module not found")
        item = ContentItem(
            id=uuid4(),
            module_id=module_id,
            course_id=module.course_id,
            content_type=content_type,
            title=title,
            position=position,
            duration_seconds=duration_seconds,
            pass_percentage=pass_percentage,
            questions=questions,
        )
        self._items[item.id] = item
        return item

    def replace_item(self, item: ContentItem) -> None:
        if item.id not in self._items:
            raise KeyError("content item not found")
        self._items[item.id] = item

    def clear(self) -> None:
        self._courses.clear()
        self._modules.clear()
        self._items.clear()
