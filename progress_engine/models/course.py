"""Course content tree, as read from the authoring collaborator.

The engine never mutates these; they are snapshots of whatever the
content repository returned.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal
from uuid import UUID, uuid4

ContentType = Literal["VIDEO", "ARTICLE", "ASSESSMENT"]

VIDEO: ContentType = "VIDEO"
ARTICLE: ContentType = "ARTICLE"
ASSESSMENT: ContentType = "ASSESSMENT"

COUNTABLE_TYPES: frozenset[str] = frozenset({VIDEO, ASSESSMENT})

DEFAULT_PASS_PERCENTAGE = 70


@dataclass(frozen=True, slots=True)
class Course:
    id: UUID
    slug: str
    title: str
    status: str = "draft"  # draft|published|retired

    @property
    def is_published(self) -> bool:
        return self.status == "published"

    @staticmethod
    def new(*, slug: str, title: str, status: str = "draft") -> Course:
        return Course(id=uuid4(), slug=slug, title=title, status=status)


@dataclass(frozen=True, slots=True)
class Question:
    id: UUID
    correct_answer: str
    points: int = 1
    order_index: int = 0
    question_type: str = "MCQ"  # MCQ|TRUE_FALSE

    @staticmethod
    def new(
        *,
        correct_answer: str,
        points: int = 1,
        order_index: int = 0,
        question_type: str = "MCQ",
    ) -> Question:
        return Question(
            id=uuid4(),
            correct_answer=correct_answer,
            points=points,
            order_index=order_index,
            question_type=question_type,
        )


@dataclass(frozen=True, slots=True)
class ContentItem:
    id: UUID
    module_id: UUID
    course_id: UUID
    content_type: ContentType
    title: str = ""
    position: int = 0
    duration_seconds: int | None = None  # VIDEO only
    pass_percentage: int = DEFAULT_PASS_PERCENTAGE  # ASSESSMENT only
    questions: tuple[Question, ...] = ()  # ASSESSMENT only

    @property
    def is_countable(self) -> bool:
        return self.content_type in COUNTABLE_TYPES

    def ordered_questions(self) -> tuple[Question, ...]:
        return tuple(sorted(self.questions, key=lambda q: q.order_index))


@dataclass(frozen=True, slots=True)
class CourseModule:
    id: UUID
    course_id: UUID
    position: int
    title: str
    items: tuple[ContentItem, ...] = ()


@dataclass(frozen=True, slots=True)
class CourseContentTree:
    """All modules of one course, each with its content items."""

    course: Course
    modules: tuple[CourseModule, ...] = field(default_factory=tuple)

    @property
    def course_id(self) -> UUID:
        return self.course.id

    def items(self) -> list[ContentItem]:
        ordered = sorted(self.modules, key=lambda m: m.position)
        return [
            item
            for module in ordered
            for item in sorted(module.items, key=lambda i: i.position)
        ]

    def videos(self) -> list[ContentItem]:
        return [i for i in self.items() if i.content_type == VIDEO]

    def assessments(self) -> list[ContentItem]:
        return [i for i in self.items() if i.content_type == ASSESSMENT]

    def countable_items(self) -> list[ContentItem]:
        return [i for i in self.items() if i.is_countable]
