"""Previous performance: what the user did for an exercise in their last earlier workout."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from app.core.config import get_settings
from app.core.constants import NO_PREVIOUS_PLACEHOLDER
from app.models.workout import Workout, WorkoutExercise, WorkoutSet
from app.schemas.workout import PreviousSet

logger = logging.getLogger(__name__)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (SQLite) as UTC; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def set_sort_key(s: WorkoutSet):
    """Index order inside one exercise: creation time, id as tie-break."""
    return (as_utc(s.created_at), str(s.id))


def _to_previous(s: WorkoutSet) -> PreviousSet:
    return PreviousSet(
        weight=float(s.weight) if s.weight is not None else None,
        reps=s.reps,
    )


async def previous_sets(
    db: AsyncSession,
    user_id: uuid.UUID,
    exercise_id: uuid.UUID,
    before: datetime,
) -> list[PreviousSet]:
    """
    Sets of `exercise_id` from the user's most recent workout created before
    `before`, in set order. Empty list if there is no such workout.
    """
    result = await db.execute(
        select(WorkoutExercise)
        .join(Workout, Workout.id == WorkoutExercise.workout_id)
        .where(
            WorkoutExercise.exercise_id == exercise_id,
            Workout.user_id == user_id,
            Workout.created_at < as_utc(before),
        )
        .order_by(Workout.created_at.desc())
        .limit(1)
        .options(selectinload(WorkoutExercise.sets))
    )
    we = result.scalar_one_or_none()
    if we is None:
        return []
    return [_to_previous(s) for s in sorted(we.sets, key=set_sort_key)]


async def previous_sets_by_exercise(
    session_factory: async_sessionmaker[AsyncSession],
    user_id: uuid.UUID,
    exercise_ids: Iterable[uuid.UUID],
    before: datetime,
    concurrency: int | None = None,
) -> dict[uuid.UUID, list[PreviousSet]]:
    """
    Run previous_sets for every exercise, at most `concurrency` at a time, each in
    its own session. A failed lookup is logged and maps to [] so the rest of the
    view still renders.
    """
    if concurrency is None:
        concurrency = get_settings().previous_lookup_concurrency
    limit = asyncio.Semaphore(max(1, concurrency))

    async def lookup(exercise_id: uuid.UUID) -> tuple[uuid.UUID, list[PreviousSet]]:
        async with limit:
            try:
                async with session_factory() as session:
                    return exercise_id, await previous_sets(session, user_id, exercise_id, before)
            except (SQLAlchemyError, OSError):
                logger.warning(
                    "Previous-session lookup failed for exercise %s", exercise_id, exc_info=True
                )
                return exercise_id, []

    pairs = await asyncio.gather(*(lookup(eid) for eid in exercise_ids))
    return dict(pairs)


def align_previous(current_count: int, previous: Sequence[PreviousSet]) -> list[PreviousSet | None]:
    """Pair set k of the current workout with previous[k]; None past the end. Purely positional."""
    return [previous[k] if k < len(previous) else None for k in range(current_count)]


def _format_weight(weight: float) -> str:
    return f"{weight:g}"


def format_previous(prev: PreviousSet | None) -> str:
    """'100x8' style text, or '-' when there is nothing (or only half a value) to show."""
    if prev is None or prev.weight is None or prev.reps is None:
        return NO_PREVIOUS_PLACEHOLDER
    return f"{_format_weight(prev.weight)}x{prev.reps}"
