from __future__ import annotations

import asyncio
from uuid import uuid4

import pytest

from progress_engine.core.errors import (
    AlreadyEnrolledError,
    InvalidInputError,
    NotFoundError,
)
from tests.conftest import build_course, make_service


def test_enroll_starts_at_zero() -> None:
    svc = make_service(clock=lambda: 1234)
    course = build_course(svc.content)
    enrollment = asyncio.run(svc.enroll("u1", course.id))
    assert enrollment.progress_percentage == 0
    assert enrollment.completed is False
    assert enrollment.enrolled_at == 1234


def test_enroll_twice_conflicts() -> None:
    svc = make_service()
    course = build_course(svc.content)
    asyncio.run(svc.enroll("u1", course.id))
    with pytest.raises(AlreadyEnrolledError):
        asyncio.run(svc.enroll("u1", course.id))


def test_enroll_unknown_course() -> None:
    svc = make_service()
    with pytest.raises(NotFoundError):
        asyncio.run(svc.enroll("u1", uuid4()))


def test_enroll_draft_course_rejected() -> None:
    svc = make_service()
    course = build_course(svc.content, status="draft")
    with pytest.raises(InvalidInputError):
        asyncio.run(svc.enroll("u1", course.id))


def test_delete_enrollment_cascades() -> None:
    svc = make_service()
    course = build_course(svc.content, video_durations=(100, 200))
    enrollment = asyncio.run(svc.enroll("u1", course.id))
    asyncio.run(svc.update_video_progress("u1", course.videos[0].id, 10))

    assert asyncio.run(svc.store.delete_enrollment(enrollment.id)) is True
    assert asyncio.run(svc.store.list_video_progress(enrollment.id)) == []
    assert asyncio.run(svc.store.get_enrollment("u1", course.id)) is None


def test_enrolled_courses_newest_first() -> None:
    ticks = iter(range(1000, 2000))
    svc = make_service(clock=lambda: next(ticks))
    first = build_course(svc.content, video_durations=(100,), assessments=0)
    second = build_course(svc.content)
    other = build_course(svc.content)
    asyncio.run(svc.enroll("u1", first.id))
    asyncio.run(svc.enroll("u1", second.id))
    asyncio.run(svc.enroll("u2", other.id))
    asyncio.run(
        svc.update_video_progress("u1", first.videos[0].id, 100, completed=True)
    )

    enrolled = asyncio.run(svc.list_enrolled_courses("u1"))

    assert [e.course.id for e in enrolled] == [second.id, first.id]
    assert enrolled[0].enrollment.enrolled_at > enrolled[1].enrollment.enrolled_at
    assert enrolled[1].enrollment.completed is True
    assert enrolled[1].enrollment.progress_percentage == 100
    assert asyncio.run(svc.list_enrolled_courses("nobody")) == []
