"""Domain errors raised by the services and mapped to HTTP responses in app.main."""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError


class WorkoutTrackerError(Exception):
    """Base for every error the services raise on purpose."""

    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(WorkoutTrackerError):
    """Caller-supplied draft breaks a precondition. Raised before touching the store."""

    status_code = 422


class NotFoundError(WorkoutTrackerError):
    """Requested workout / exercise / set does not exist (or belongs to someone else)."""

    status_code = 404


class StoreError(WorkoutTrackerError):
    """A database call failed. Carries the original SQLAlchemy error as __cause__."""

    status_code = 503


class PartialCompositionError(StoreError):
    """Workout creation failed after the header row was written and could not be undone."""

    status_code = 500

    def __init__(self, detail: str, workout_id: uuid.UUID | None):
        super().__init__(detail)
        self.workout_id = workout_id


class CompletionGateError(WorkoutTrackerError):
    """Workout cannot be marked complete: it has no sets or some are still open."""

    status_code = 409


@contextmanager
def store_errors(action: str) -> Iterator[None]:
    """Re-raise SQLAlchemy failures inside the block as StoreError ("Could not <action>.")."""
    try:
        yield
    except SQLAlchemyError as exc:
        raise StoreError(f"Could not {action}.") from exc
