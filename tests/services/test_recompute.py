"""Completion trigger fires exactly once per enrollment."""

from __future__ import annotations

import asyncio
from uuid import UUID

from prometheus_client import REGISTRY

from progress_engine.models.progress import VideoProgressUpdate
from progress_engine.services.recompute import RecomputeRequest
from tests.conftest import answers_for, build_course, make_service


def _get_sample(name: str, labels: dict | None = None) -> float:
    value = REGISTRY.get_sample_value(name, labels=labels or {})
    return value if value is not None else 0.0


class RecordingIssuer:
    def __init__(self, *, fail: bool = False) -> None:
        self.calls: list[tuple[str, UUID]] = []
        self.fail = fail

    async def issue(self, user_id: str, course_id: UUID) -> None:
        self.calls.append((user_id, course_id))
        await asyncio.sleep(0)
        if self.fail:
            raise RuntimeError("issuer unavailable")


def test_trigger_fires_once_across_repeated_completions() -> None:
    issuer = RecordingIssuer()
    svc = make_service(issuer=issuer)
    course = build_course(svc.content, video_durations=(100,), assessments=0)
    enrollment = asyncio.run(svc.enroll("u1", course.id))
    video = course.videos[0]

    asyncio.run(svc.update_video_progress("u1", video.id, 100, completed=True))
    asyncio.run(svc.update_video_progress("u1", video.id, 100, completed=True))
    asyncio.run(svc.recalculate(enrollment.id))

    assert issuer.calls == [("u1", course.id)]


def test_trigger_fires_once_under_concurrent_recomputes() -> None:
    issuer = RecordingIssuer()
    svc = make_service(issuer=issuer)
    course = build_course(svc.content, video_durations=(100,), assessments=0)
    enrollment = asyncio.run(svc.enroll("u1", course.id))
    asyncio.run(
        svc.store.upsert_video_progress(
            enrollment_id=enrollment.id,
            user_id="u1",
            content_item_id=course.videos[0].id,
            duration_seconds=100,
            update=VideoProgressUpdate(
                last_position_seconds=100,
                total_watch_time_seconds=None,
                completed=True,
                now=1,
            ),
        )
    )

    async def burst():
        return await asyncio.gather(
            *(svc.recalculate(enrollment.id) for _ in range(8))
        )

    results = asyncio.run(burst())

    assert sum(r.transitioned for r in results) == 1
    assert all(r.completed for r in results)
    assert len(issuer.calls) == 1
    assert svc.recompute.pending() == frozenset()


def test_failing_pass_after_completion_does_not_retrigger() -> None:
    issuer = RecordingIssuer()
    svc = make_service(issuer=issuer)
    course = build_course(svc.content, video_durations=(), questions_per_assessment=2)
    asyncio.run(svc.enroll("u1", course.id))
    quiz = course.assessments[0]

    asyncio.run(svc.submit_assessment("u1", quiz.id, answers_for(quiz, 2)))
    asyncio.run(svc.submit_assessment("u1", quiz.id, answers_for(quiz, 0)))
    asyncio.run(svc.submit_assessment("u1", quiz.id, answers_for(quiz, 2)))

    assert len(issuer.calls) == 1


def test_trigger_failure_does_not_fail_the_write() -> None:
    issuer = RecordingIssuer(fail=True)
    svc = make_service(issuer=issuer)
    course = build_course(svc.content, video_durations=(100,), assessments=0)
    asyncio.run(svc.enroll("u1", course.id))

    failures_before = _get_sample("certificate_issuance_failures_total")
    completions_before = _get_sample("course_completions_total")
    row = asyncio.run(
        svc.update_video_progress("u1", course.videos[0].id, 100, completed=True)
    )

    assert row.completed is True
    assert _get_sample("certificate_issuance_failures_total") - failures_before == 1
    assert _get_sample("course_completions_total") - completions_before == 1
    progress = asyncio.run(svc.get_course_progress("u1", course.id))
    assert progress.completed is True


def test_recompute_counts_reason() -> None:
    svc = make_service()
    course = build_course(svc.content)
    enrollment = asyncio.run(svc.enroll("u1", course.id))

    before = _get_sample("progress_recomputes_total", {"reason": "manual"})
    asyncio.run(svc.recompute.request(RecomputeRequest(enrollment.id)))
    after = _get_sample("progress_recomputes_total", {"reason": "manual"})
    assert after - before == 1


def test_position_only_update_does_not_recompute() -> None:
    svc = make_service()
    course = build_course(svc.content)
    asyncio.run(svc.enroll("u1", course.id))

    before = _get_sample("progress_recomputes_total", {"reason": "video_completed"})
    asyncio.run(svc.update_video_progress("u1", course.videos[0].id, 30))
    after = _get_sample("progress_recomputes_total", {"reason": "video_completed"})
    assert after == before
