"""Background worker process.

RUN:  python -m progress_engine.worker

Same image as the API, different command.  Polls every registered queue
round-robin, one task at a time, and dispatches to its handler.  A
failing task is logged and dropped; certificate issuance is idempotent
and can always be requested again through the API.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any
from uuid import UUID

from progress_engine.core.config import SETTINGS
from progress_engine.core.logging import setup_logging
from progress_engine.services.certificate_service import CERTIFICATE_QUEUE
from progress_engine.services.progress_service import progress_service
from progress_engine.services.task_queue import task_queue

TaskHandler = Callable[[dict], Coroutine[Any, Any, None]]

logger = logging.getLogger("worker")

HANDLERS: dict[str, TaskHandler] = {}


def register_handler(queue: str):
    """Decorator: register a coroutine as the handler for a queue."""

    def decorator(func):
        HANDLERS[queue] = func
        return func

    return decorator


@register_handler(CERTIFICATE_QUEUE)
async def handle_certificate_issuance(payload: dict) -> None:
    user_id = payload["user_id"]
    course_id = UUID(payload["course_id"])
    cert = await progress_service.issue_certificate(user_id, course_id)
    logger.info(
        "Certificate %s ready",
        cert.certificate_number,
        extra={"user_id": user_id, "course_id": str(course_id)},
    )


async def process_one(queue_name: str, timeout: int = 1) -> bool:
    """Dequeue and handle a single task.  Returns False if the queue was empty."""
    task = await task_queue.dequeue(queue_name, timeout=timeout)
    if task is None:
        return False

    try:
        await HANDLERS[queue_name](task.payload)
        logger.info("Task %s on [%s] completed", task.id, queue_name)
    except Exception:
        logger.exception("Task %s on [%s] failed", task.id, queue_name)
    return True


async def run_worker() -> None:
    queues = list(HANDLERS.keys())
    logger.info("Worker started, listening on queues: %s", queues)

    while True:
        for queue_name in queues:
            await process_one(queue_name)


if __name__ == "__main__":
    setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
    asyncio.run(run_worker())
