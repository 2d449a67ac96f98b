"""Learner progress endpoints.

Writes (video progress, assessment submissions, operator recalculation)
invalidate the learner's cached progress views.  Reads go through the
cache: hit -> return, miss -> build from the stores -> populate -> return.
"""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from progress_engine.api.dependencies import require_role, require_user
from progress_engine.api.errors import http_error
from progress_engine.core.config import SETTINGS
from progress_engine.core.errors import ProgressError
from progress_engine.models.principal import Principal
from progress_engine.models.progress import AssessmentAttempt, VideoProgress
from progress_engine.services.cache import cache_service, progress_cache_key
from progress_engine.services.progress_service import progress_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/progress", tags=["progress"])


class VideoProgressIn(BaseModel):
    last_position_seconds: int
    completed: bool | None = None
    total_watch_time_seconds: int | None = None


class VideoProgressOut(BaseModel):
    id: UUID
    content_item_id: UUID
    last_position_seconds: int
    total_watch_time_seconds: int
    completed: bool
    completed_at: int | None
    duration_seconds: int | None
    updated_at: int | None

    @classmethod
    def from_domain(cls, v: VideoProgress) -> VideoProgressOut:
        return cls(
            id=v.id,
            content_item_id=v.content_item_id,
            last_position_seconds=v.last_position_seconds,
            total_watch_time_seconds=v.total_watch_time_seconds,
            completed=v.completed,
            completed_at=v.completed_at,
            duration_seconds=v.duration_seconds,
            updated_at=v.updated_at,
        )


class AssessmentSubmitIn(BaseModel):
    answers: dict[str, str]


class AttemptOut(BaseModel):
    id: UUID
    content_item_id: UUID
    attempt_number: int
    score: float
    passed: bool
    created_at: int

    @classmethod
    def from_domain(cls, a: AssessmentAttempt) -> AttemptOut:
        return cls(
            id=a.id,
            content_item_id=a.content_item_id,
            attempt_number=a.attempt_number,
            score=a.score,
            passed=a.passed,
            created_at=a.created_at,
        )


class AssessmentResultOut(AttemptOut):
    correct_count: int
    total_questions: int
    earned_points: int
    total_points: int


class CourseProgressOut(BaseModel):
    enrollment_id: UUID
    course_id: UUID
    progress_percentage: float
    completed: bool
    completed_at: int | None
    video_progress: list[VideoProgressOut]
    assessment_attempts: list[AttemptOut]


class RecalculateOut(BaseModel):
    enrollment_id: UUID
    progress_percentage: float
    completed: bool
    completed_at: int | None


async def _invalidate(user_id: str) -> None:
    await cache_service.delete_pattern(f"progress:{user_id}:*")


@router.put("/video/{content_item_id}", response_model=VideoProgressOut)
async def update_video_progress(
    content_item_id: UUID,
    body: VideoProgressIn,
    principal: Annotated[Principal, Depends(require_user)],
) -> VideoProgressOut:
    try:
        progress = await progress_service.update_video_progress(
            principal.user_id,
            content_item_id,
            body.last_position_seconds,
            completed=body.completed,
            total_watch_time_seconds=body.total_watch_time_seconds,
        )
    except ProgressError as e:
        raise http_error(e) from None

    await _invalidate(principal.user_id)
    return VideoProgressOut.from_domain(progress)


@router.post(
    "/assessment/{content_item_id}/submit",
    response_model=AssessmentResultOut,
    status_code=status.HTTP_201_CREATED,
)
async def submit_assessment(
    content_item_id: UUID,
    body: AssessmentSubmitIn,
    principal: Annotated[Principal, Depends(require_user)],
) -> AssessmentResultOut:
    try:
        result = await progress_service.submit_assessment(
            principal.user_id, content_item_id, body.answers
        )
    except ProgressError as e:
        raise http_error(e) from None

    await _invalidate(principal.user_id)
    return AssessmentResultOut(
        **AttemptOut.from_domain(result.attempt).model_dump(),
        correct_count=result.correct_count,
        total_questions=result.total_questions,
        earned_points=result.earned_points,
        total_points=result.total_points,
    )


@router.get("/course/{course_id}", response_model=CourseProgressOut)
async def get_course_progress(
    course_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
) -> CourseProgressOut:
    cache_key = progress_cache_key(principal.user_id, course_id)
    cached = await cache_service.get(cache_key)
    if cached is not None:
        return CourseProgressOut.model_validate_json(cached)

    try:
        progress = await progress_service.get_course_progress(
            principal.user_id, course_id
        )
    except ProgressError as e:
        raise http_error(e) from None

    out = CourseProgressOut(
        enrollment_id=progress.enrollment_id,
        course_id=progress.course_id,
        progress_percentage=progress.progress_percentage,
        completed=progress.completed,
        completed_at=progress.completed_at,
        video_progress=[
            VideoProgressOut.from_domain(v) for v in progress.video_progress
        ],
        assessment_attempts=[
            AttemptOut.from_domain(a) for a in progress.assessment_attempts
        ],
    )
    if SETTINGS.progress_cache_ttl > 0:
        await cache_service.set(
            cache_key, out.model_dump_json(), SETTINGS.progress_cache_ttl
        )
    return out


@router.post(
    "/enrollments/{enrollment_id}/recalculate", response_model=RecalculateOut
)
async def recalculate_enrollment(
    enrollment_id: UUID,
    principal: Annotated[Principal, Depends(require_role("admin"))],
) -> RecalculateOut:
    try:
        result = await progress_service.recalculate(enrollment_id)
    except ProgressError as e:
        raise http_error(e) from None

    logger.info(
        "Manual recalculation by user=%s",
        principal.user_id,
        extra={"enrollment_id": str(enrollment_id)},
    )
    await _invalidate(result.user_id)
    return RecalculateOut(
        enrollment_id=result.enrollment_id,
        progress_percentage=result.progress_percentage,
        completed=result.completed,
        completed_at=result.completed_at,
    )
