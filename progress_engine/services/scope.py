from __future__ import annotations

import logging
from uuid import UUID

from progress_engine.core.errors import (
    InvalidInputError,
    NotEnrolledError,
    NotFoundError,
)
from progress_engine.models.course import ContentItem, ContentType
from progress_engine.models.progress import Enrollment
from progress_engine.repos.content_repo import ContentRepo
from progress_engine.repos.progress_store import ProgressStore

logger = logging.getLogger(__name__)


async def resolve_item_scope(
    store: ProgressStore,
    content: ContentRepo,
    *,
    user_id: str,
    content_item_id: UUID,
    expected_type: ContentType,
) -> tuple[ContentItem, Enrollment]:
    """Load a content item of ``expected_type`` and the learner's enrollment.

    Raises NotFoundError for unknown items, InvalidInputError for the wrong
    content type, NotEnrolledError when the learner is not enrolled in the
    course that owns the item.
    """
    item = await content.get_content_item(content_item_id)
    if item is None:
        raise NotFoundError("Content item not found")

    if item.content_type != expected_type:
        logger.warning(
            "Rejected %s operation on %s item=%s",
            expected_type,
            item.content_type,
            content_item_id,
        )
        raise InvalidInputError(f"Invalid {expected_type.lower()} content item")

    enrollment = await store.get_enrollment(user_id, item.course_id)
    if enrollment is None:
        logger.warning(
            "Rejected write from unenrolled user=%s course=%s",
            user_id,
            item.course_id,
        )
        raise NotEnrolledError()

    return item, enrollment
