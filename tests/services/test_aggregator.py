from __future__ import annotations

import asyncio
from dataclasses import replace
from uuid import UUID, uuid4

import pytest
from prometheus_client import REGISTRY

from progress_engine.core.errors import NotFoundError, RecomputeConflictError
from progress_engine.models.progress import Enrollment, VideoProgressUpdate
from progress_engine.repos.progress_store import InMemoryProgressStore
from progress_engine.services.aggregator import ASSESSMENT_WEIGHT, compute_progress
from tests.conftest import answers_for, build_course, make_service


def _get_sample(name: str, labels: dict | None = None) -> float:
    value = REGISTRY.get_sample_value(name, labels=labels or {})
    return value if value is not None else 0.0


class ConflictingStore(InMemoryProgressStore):
    """Loses the next ``conflicts`` version checks to a simulated writer."""

    def __init__(self, conflicts: int) -> None:
        super().__init__()
        self.conflicts = conflicts

    async def save_progress(
        self, enrollment_id: UUID, *, expected_version: int, **fields
    ) -> Enrollment | None:
        if self.conflicts > 0:
            self.conflicts -= 1
            current = self._enrollments[enrollment_id]
            self._enrollments[enrollment_id] = replace(
                current, version=current.version + 1
            )
            return None
        return await super().save_progress(
            enrollment_id, expected_version=expected_version, **fields
        )


# ---- weighting ----


def test_weighting_video_and_assessment() -> None:
    svc = make_service()
    course = build_course(svc.content, video_durations=(100,))
    enrollment = asyncio.run(svc.enroll("u1", course.id))
    assert enrollment.progress_percentage == 0

    asyncio.run(
        svc.update_video_progress("u1", course.videos[0].id, 100, completed=True)
    )
    progress = asyncio.run(svc.get_course_progress("u1", course.id))
    assert progress.progress_percentage == pytest.approx(14.29)
    assert progress.completed is False

    quiz = course.assessments[0]
    asyncio.run(svc.submit_assessment("u1", quiz.id, answers_for(quiz, 1)))
    progress = asyncio.run(svc.get_course_progress("u1", course.id))
    assert progress.progress_percentage == 100
    assert progress.completed is True
    assert progress.completed_at is not None


def test_nearly_complete_course_stays_below_100() -> None:
    svc = make_service()
    course = build_course(svc.content, video_durations=(19999, 1), assessments=0)
    asyncio.run(svc.enroll("u1", course.id))
    asyncio.run(
        svc.update_video_progress("u1", course.videos[0].id, 19999, completed=True)
    )

    progress = asyncio.run(svc.get_course_progress("u1", course.id))
    assert progress.completed is False
    assert progress.progress_percentage == 99.99
    assert progress.completed_at is None


def test_articles_do_not_count() -> None:
    svc = make_service()
    course = build_course(
        svc.content, video_durations=(300,), assessments=0, articles=3
    )
    asyncio.run(svc.enroll("u1", course.id))
    asyncio.run(
        svc.update_video_progress("u1", course.videos[0].id, 300, completed=True)
    )
    progress = asyncio.run(svc.get_course_progress("u1", course.id))
    assert progress.progress_percentage == 100
    assert progress.completed is True


def test_zero_content_course_is_never_completed() -> None:
    svc = make_service()
    course = build_course(svc.content, video_durations=(), assessments=0, articles=2)
    enrollment = asyncio.run(svc.enroll("u1", course.id))
    result = asyncio.run(svc.recalculate(enrollment.id))
    assert result.progress_percentage == 0
    assert result.completed is False


def test_video_without_duration_weighs_nothing() -> None:
    svc = make_service()
    course = build_course(svc.content, video_durations=(None,), assessments=1)
    tree = asyncio.run(svc.content.get_course_content_tree(course.id))
    snapshot = compute_progress(tree, [], [])
    assert snapshot.total_weight == ASSESSMENT_WEIGHT


# ---- recalculate ----


def test_recalculate_is_idempotent() -> None:
    svc = make_service()
    course = build_course(svc.content, video_durations=(100, 200))
    enrollment = asyncio.run(svc.enroll("u1", course.id))
    asyncio.run(
        svc.update_video_progress("u1", course.videos[1].id, 200, completed=True)
    )

    first = asyncio.run(svc.recalculate(enrollment.id))
    version = asyncio.run(svc.store.get_enrollment_by_id(enrollment.id)).version
    second = asyncio.run(svc.recalculate(enrollment.id))

    assert second == first
    assert asyncio.run(svc.store.get_enrollment_by_id(enrollment.id)).version == version


def test_recalculate_unknown_enrollment() -> None:
    svc = make_service()
    with pytest.raises(NotFoundError):
        asyncio.run(svc.recalculate(uuid4()))


def test_completion_is_sticky_when_content_is_added() -> None:
    svc = make_service(clock=lambda: 1_700_000_000)
    course = build_course(svc.content, video_durations=(100,), assessments=0)
    enrollment = asyncio.run(svc.enroll("u1", course.id))
    asyncio.run(
        svc.update_video_progress("u1", course.videos[0].id, 100, completed=True)
    )

    svc.content.add_item(  # type: ignore[attr-defined]
        course.videos[0].module_id, "VIDEO", position=5, duration_seconds=100
    )
    result = asyncio.run(svc.recalculate(enrollment.id))

    assert result.progress_percentage == 50
    assert result.completed is True
    assert result.completed_at == 1_700_000_000
    assert result.transitioned is False


def test_current_duration_is_used_for_weighting() -> None:
    svc = make_service()
    course = build_course(svc.content, video_durations=(100, 100), assessments=0)
    enrollment = asyncio.run(svc.enroll("u1", course.id))
    asyncio.run(
        svc.update_video_progress("u1", course.videos[0].id, 100, completed=True)
    )

    svc.content.replace_item(  # type: ignore[attr-defined]
        replace(course.videos[0], duration_seconds=300)
    )
    result = asyncio.run(svc.recalculate(enrollment.id))
    assert result.progress_percentage == 75


def test_version_conflict_is_retried() -> None:
    store = ConflictingStore(conflicts=0)
    svc = make_service(store=store)
    course = build_course(svc.content, video_durations=(100,), assessments=0)
    enrollment = asyncio.run(svc.enroll("u1", course.id))
    asyncio.run(
        svc.store.upsert_video_progress(
            enrollment_id=enrollment.id,
            user_id="u1",
            content_item_id=course.videos[0].id,
            duration_seconds=100,
            update=_completed_update(),
        )
    )

    store.conflicts = 2
    before = _get_sample("progress_recompute_conflicts_total")
    result = asyncio.run(svc.recalculate(enrollment.id))
    after = _get_sample("progress_recompute_conflicts_total")

    assert after - before == 2
    assert result.completed is True
    assert result.transitioned is True


def test_version_conflicts_exhaust_retries() -> None:
    store = ConflictingStore(conflicts=0)
    svc = make_service(store=store, max_retries=3)
    course = build_course(svc.content, video_durations=(100,), assessments=0)
    enrollment = asyncio.run(svc.enroll("u1", course.id))
    asyncio.run(
        svc.store.upsert_video_progress(
            enrollment_id=enrollment.id,
            user_id="u1",
            content_item_id=course.videos[0].id,
            duration_seconds=100,
            update=_completed_update(),
        )
    )

    store.conflicts = 10
    with pytest.raises(RecomputeConflictError):
        asyncio.run(svc.recalculate(enrollment.id))
    assert store.conflicts == 7


def _completed_update() -> VideoProgressUpdate:
    return VideoProgressUpdate(
        last_position_seconds=100,
        total_watch_time_seconds=None,
        completed=True,
        now=1,
    )
