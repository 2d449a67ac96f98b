"""Course catalogue and enrollment endpoints.

In dev without a database the in-memory content repo is seeded with a
small published course so the progress flow can be exercised by hand.
"""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from progress_engine.api.dependencies import require_user
from progress_engine.api.errors import http_error
from progress_engine.core.config import SETTINGS
from progress_engine.core.errors import ProgressError
from progress_engine.models.course import ARTICLE, ASSESSMENT, VIDEO, Course, Question
from progress_engine.models.principal import Principal
from progress_engine.repos.content_repo import InMemoryContentRepo
from progress_engine.services.cache import cache_service
from progress_engine.services.progress_service import progress_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/courses", tags=["courses"])

SAMPLE_COURSE_ID = UUID("00000000-0000-0000-0000-000000000001")


class CourseOut(BaseModel):
    id: UUID
    slug: str
    title: str
    status: str


class EnrollmentOut(BaseModel):
    id: UUID
    user_id: str
    course_id: UUID
    enrolled_at: int
    progress_percentage: float
    completed: bool


class EnrolledCourseOut(BaseModel):
    id: UUID
    slug: str
    title: str
    status: str
    enrollment_id: UUID
    enrolled_at: int
    progress_percentage: float
    completed: bool
    completed_at: int | None


def seed_sample_course(content: InMemoryContentRepo) -> Course:
    """Seed a published sample course: two videos, an article, one quiz."""
    course = content.add_course(
        Course(
            id=SAMPLE_COURSE_ID,
            slug="intro-to-progress",
            title="Introduction to Course Progress",
            status="published",
        )
    )
    basics = content.add_module(course.id, title="Basics", position=1)
    content.add_item(
        basics.id, VIDEO, title="Welcome", position=1, duration_seconds=300
    )
    content.add_item(basics.id, ARTICLE, title="Reading list", position=2)
    content.add_item(
        basics.id, VIDEO, title="How progress works", position=3, duration_seconds=420
    )
    quiz = content.add_module(course.id, title="Check your understanding", position=2)
    content.add_item(
        quiz.id,
        ASSESSMENT,
        title="Quiz",
        position=1,
        questions=(
            Question.new(correct_answer="B", order_index=1),
            Question.new(
                correct_answer="TRUE", order_index=2, question_type="TRUE_FALSE"
            ),
            Question.new(correct_answer="C", points=2, order_index=3),
        ),
    )
    return course


if SETTINGS.is_dev and isinstance(progress_service.content, InMemoryContentRepo):
    seed_sample_course(progress_service.content)
    logger.info("Seeded sample course %s", SAMPLE_COURSE_ID)


@router.get("", response_model=list[CourseOut])
async def list_courses(
    _principal: Annotated[Principal, Depends(require_user)],
) -> list[CourseOut]:
    courses = await progress_service.content.list_courses()
    return [
        CourseOut(id=c.id, slug=c.slug, title=c.title, status=c.status)
        for c in courses
    ]


@router.get("/mine", response_model=list[EnrolledCourseOut])
async def list_my_courses(
    principal: Annotated[Principal, Depends(require_user)],
) -> list[EnrolledCourseOut]:
    enrolled = await progress_service.list_enrolled_courses(principal.user_id)
    return [
        EnrolledCourseOut(
            id=e.course.id,
            slug=e.course.slug,
            title=e.course.title,
            status=e.course.status,
            enrollment_id=e.enrollment.id,
            enrolled_at=e.enrollment.enrolled_at,
            progress_percentage=e.enrollment.progress_percentage,
            completed=e.enrollment.completed,
            completed_at=e.enrollment.completed_at,
        )
        for e in enrolled
    ]


@router.post(
    "/{course_id}/enroll",
    response_model=EnrollmentOut,
    status_code=status.HTTP_201_CREATED,
)
async def enroll_in_course(
    course_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
) -> EnrollmentOut:
    try:
        enrollment = await progress_service.enroll(principal.user_id, course_id)
    except ProgressError as e:
        raise http_error(e) from None

    await cache_service.delete_pattern(f"progress:{principal.user_id}:*")
    return EnrollmentOut(
        id=enrollment.id,
        user_id=enrollment.user_id,
        course_id=enrollment.course_id,
        enrolled_at=enrollment.enrolled_at,
        progress_percentage=enrollment.progress_percentage,
        completed=enrollment.completed,
    )
