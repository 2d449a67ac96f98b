"""Domain errors raised by the progress engine.

Routers translate these into HTTP responses; the engine itself never
retries them.  Each carries a short machine-readable ``code``.
"""

from __future__ import annotations


class ProgressError(Exception):
    """Base class for every engine error."""

    code = "progress_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NotFoundError(ProgressError):
    """Content item, course, enrollment or certificate does not exist."""

    code = "not_found"


class InvalidInputError(ProgressError):
    """Request is well-formed but not valid for this operation."""

    code = "invalid_input"


class NotEnrolledError(ProgressError):
    """Learner has no enrollment in the course that owns the item."""

    code = "not_enrolled"

    def __init__(self, message: str = "Not enrolled in this course") -> None:
        super().__init__(message)


class AlreadyEnrolledError(ProgressError):
    code = "already_enrolled"

    def __init__(self, message: str = "Already enrolled in this course") -> None:
        super().__init__(message)


class RecomputeConflictError(ProgressError):
    """Optimistic version check kept failing for one enrollment."""

    code = "recompute_conflict"
