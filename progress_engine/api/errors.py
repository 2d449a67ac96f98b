from __future__ import annotations

import logging

from fastapi import HTTPException, status

from progress_engine.core.errors import (
    AlreadyEnrolledError,
    InvalidInputError,
    NotEnrolledError,
    NotFoundError,
    ProgressError,
    RecomputeConflictError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: dict[type[ProgressError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidInputError: status.HTTP_400_BAD_REQUEST,
    NotEnrolledError: status.HTTP_403_FORBIDDEN,
    AlreadyEnrolledError: status.HTTP_409_CONFLICT,
    RecomputeConflictError: status.HTTP_409_CONFLICT,
}


def http_error(exc: ProgressError) -> HTTPException:
    """Translate an engine error into the HTTPException a router raises."""
    status_code = _STATUS_BY_ERROR.get(
        type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR
    )
    logger.warning("Request rejected: %s (%s)", exc.message, exc.code)
    return HTTPException(status_code=status_code, detail=exc.message)
