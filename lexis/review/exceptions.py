"""
Error taxonomy for the review core.

ValidationError is raised synchronously and leaves session state untouched.
PersistenceError is raised by stores and only ever logged by the
persistence worker; it never interrupts a session.
"""

from __future__ import annotations


class ReviewError(Exception):
    """Base class for review-core errors."""


class ValidationError(ReviewError):
    """Raised when a grade or submission is rejected."""


class SessionStateError(ValidationError):
    """Raised when an action is not allowed in the session's current phase."""


class PersistenceError(ReviewError):
    """Raised when a schedule state cannot be written to the store."""

    def __init__(self, message: str, item_id: str | None = None):
        super().__init__(message)
        self.item_id = item_id
