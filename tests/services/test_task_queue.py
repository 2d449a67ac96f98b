from __future__ import annotations

import asyncio

from prometheus_client import REGISTRY

from progress_engine import worker
from progress_engine.services.certificate_service import CERTIFICATE_QUEUE
from progress_engine.services.progress_service import progress_service
from progress_engine.services.task_queue import InMemoryTaskQueue, task_queue
from tests.conftest import build_course


def test_queue_is_fifo() -> None:
    queue = InMemoryTaskQueue()

    async def scenario():
        await queue.enqueue("q", {"n": 1})
        await queue.enqueue("q", {"n": 2})
        return [(await queue.dequeue("q")).payload["n"] for _ in range(2)]

    assert asyncio.run(scenario()) == [1, 2]


def test_dequeue_empty_returns_none() -> None:
    assert asyncio.run(InMemoryTaskQueue().dequeue("empty")) is None


def test_queue_depth_gauge_tracks_length() -> None:
    queue = InMemoryTaskQueue()
    asyncio.run(queue.enqueue("depth-test", {}))
    asyncio.run(queue.enqueue("depth-test", {}))
    depth = REGISTRY.get_sample_value(
        "task_queue_depth", labels={"queue_name": "depth-test"}
    )
    assert depth == 2


def test_worker_issues_certificate_from_task() -> None:
    course = build_course(
        progress_service.content,  # type: ignore[arg-type]
        video_durations=(100,),
        assessments=0,
    )

    async def scenario():
        await progress_service.enroll("u1", course.id)
        await progress_service.update_video_progress(
            "u1", course.videos[0].id, 100, completed=True
        )
        # In-process issuance already ran; the queued task must be a no-op.
        existing = await progress_service.certificate_repo.get_for_pair(
            "u1", course.id
        )
        await task_queue.enqueue(
            CERTIFICATE_QUEUE, {"user_id": "u1", "course_id": str(course.id)}
        )
        handled = await worker.process_one(CERTIFICATE_QUEUE, timeout=0)
        after = await progress_service.certificate_repo.get_for_pair("u1", course.id)
        return existing, handled, after

    existing, handled, after = asyncio.run(scenario())
    assert handled is True
    assert existing is not None
    assert after == existing


def test_worker_survives_failing_task() -> None:
    async def scenario():
        await task_queue.enqueue(
            CERTIFICATE_QUEUE, {"user_id": "nobody", "course_id": "not-a-uuid"}
        )
        return await worker.process_one(CERTIFICATE_QUEUE, timeout=0)

    assert asyncio.run(scenario()) is True
