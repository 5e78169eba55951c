"""Workout reads and point updates: detail view, history, set edits, completion."""

from __future__ import annotations

import logging
import math
import uuid
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from app.core.constants import RECENT_WORKOUTS_LIMIT
from app.core.enums import HistoryStatus
from app.core.exceptions import CompletionGateError, NotFoundError, store_errors
from app.models.exercise import Exercise
from app.models.workout import Workout, WorkoutExercise, WorkoutSet
from app.schemas.workout import (
    DetailSetRead,
    ExerciseRef,
    HistoryStats,
    WorkoutDetail,
    WorkoutExerciseDetail,
    WorkoutSetUpdate,
    WorkoutSummary,
)
from app.services.performance_matcher import (
    align_previous,
    format_previous,
    previous_sets_by_exercise,
    set_sort_key,
)
from app.services.progress import (
    can_complete,
    history_stats,
    summarize_workout,
    workout_progress,
)
from app.services.workout_composer import check_weight

logger = logging.getLogger(__name__)


def _with_sets(stmt):
    return stmt.options(selectinload(Workout.exercises).selectinload(WorkoutExercise.sets))


async def list_exercises(db: AsyncSession, skip: int = 0, limit: int = 100) -> list[Exercise]:
    with store_errors("load exercises"):
        result = await db.execute(select(Exercise).order_by(Exercise.name).offset(skip).limit(limit))
    return list(result.scalars().all())


async def get_exercise(db: AsyncSession, exercise_id: uuid.UUID) -> Exercise:
    with store_errors("load exercise"):
        result = await db.execute(select(Exercise).where(Exercise.id == exercise_id))
    exercise = result.scalar_one_or_none()
    if not exercise:
        raise NotFoundError("Exercise not found")
    return exercise


async def get_workout(db: AsyncSession, user_id: uuid.UUID, workout_id: uuid.UUID) -> Workout:
    """Workout with exercises (by order), their exercise rows and sets loaded. Owner-scoped."""
    with store_errors("load workout"):
        result = await db.execute(
            _with_sets(select(Workout))
            .options(selectinload(Workout.exercises).selectinload(WorkoutExercise.exercise))
            .where(Workout.id == workout_id, Workout.user_id == user_id)
        )
    workout = result.scalar_one_or_none()
    if not workout:
        raise NotFoundError("Workout not found")
    return workout


async def get_workout_detail(
    db: AsyncSession,
    session_factory: async_sessionmaker[AsyncSession],
    user_id: uuid.UUID,
    workout_id: uuid.UUID,
    concurrency: int | None = None,
) -> WorkoutDetail:
    """
    Workout for the detail screen: exercises in order, sets in index order, each set
    next to the same-index set from the last earlier workout with that exercise.
    """
    workout = await get_workout(db, user_id, workout_id)
    progress = workout_progress(workout)
    previous = await previous_sets_by_exercise(
        session_factory,
        workout.user_id,
        [we.exercise_id for we in workout.exercises],
        workout.created_at,
        concurrency=concurrency,
    )

    exercises: list[WorkoutExerciseDetail] = []
    for we in sorted(workout.exercises, key=lambda e: e.order):
        sets = sorted(we.sets, key=set_sort_key)
        aligned = align_previous(len(sets), previous.get(we.exercise_id, []))
        exercises.append(
            WorkoutExerciseDetail(
                workout_exercise_id=we.id,
                order=we.order,
                exercise=ExerciseRef.model_validate(we.exercise),
                sets=[
                    DetailSetRead(
                        id=s.id,
                        workout_exercise_id=s.workout_exercise_id,
                        weight=float(s.weight) if s.weight is not None else None,
                        reps=s.reps,
                        completed=s.completed,
                        created_at=s.created_at,
                        index=k,
                        previous=prev,
                        previous_display=format_previous(prev),
                    )
                    for k, (s, prev) in enumerate(zip(sets, aligned))
                ],
            )
        )

    return WorkoutDetail(
        id=workout.id,
        user_id=workout.user_id,
        name=workout.name,
        description=workout.description,
        created_at=workout.created_at,
        completed_at=workout.completed_at,
        progress=progress,
        can_complete=workout.completed_at is None and can_complete(progress),
        exercises=exercises,
    )


async def list_workout_history(
    db: AsyncSession,
    user_id: uuid.UUID,
    status: HistoryStatus = HistoryStatus.ALL,
    skip: int = 0,
    limit: int | None = None,
) -> list[WorkoutSummary]:
    """User's workouts, newest first. The status filter is part of the query."""
    stmt = _with_sets(select(Workout)).where(Workout.user_id == user_id)
    if status == HistoryStatus.COMPLETED:
        stmt = stmt.where(Workout.completed_at.isnot(None))
    elif status == HistoryStatus.INCOMPLETE:
        stmt = stmt.where(Workout.completed_at.is_(None))
    stmt = stmt.order_by(Workout.created_at.desc()).offset(skip)
    if limit is not None:
        stmt = stmt.limit(limit)
    with store_errors("load workout history"):
        result = await db.execute(stmt)
    return [summarize_workout(w) for w in result.scalars().all()]


async def workout_history_stats(
    db: AsyncSession,
    user_id: uuid.UUID,
    status: HistoryStatus = HistoryStatus.ALL,
) -> HistoryStats:
    return history_stats(await list_workout_history(db, user_id, status))


async def recent_workouts(db: AsyncSession, user_id: uuid.UUID, limit: int = RECENT_WORKOUTS_LIMIT) -> list[Workout]:
    with store_errors("load recent workouts"):
        result = await db.execute(
            select(Workout)
            .where(Workout.user_id == user_id)
            .order_by(Workout.created_at.desc())
            .limit(limit)
        )
    return list(result.scalars().all())


async def _get_owned_set(db: AsyncSession, user_id: uuid.UUID, set_id: uuid.UUID) -> WorkoutSet:
    with store_errors("load set"):
        result = await db.execute(
            select(WorkoutSet)
            .join(WorkoutExercise, WorkoutExercise.id == WorkoutSet.workout_exercise_id)
            .join(Workout, Workout.id == WorkoutExercise.workout_id)
            .where(WorkoutSet.id == set_id, Workout.user_id == user_id)
        )
    set_ = result.scalar_one_or_none()
    if not set_:
        raise NotFoundError("Set not found")
    return set_


async def update_set(
    db: AsyncSession,
    user_id: uuid.UUID,
    set_id: uuid.UUID,
    changes: WorkoutSetUpdate,
) -> WorkoutSet:
    """
    Point update of weight / reps / completed. Only fields present in `changes`
    are written; an explicit weight=None clears the weight (stored as NULL).
    Reps are floored and clamped at 0, and a missing reps value counts as 0.
    Weights that do not fit the column raise ValidationError.
    """
    data = changes.model_dump(exclude_unset=True)
    if "reps" in data:
        data["reps"] = max(0, math.floor(data["reps"] or 0))
    if "weight" in data and data["weight"] is not None:
        data["weight"] = float(data["weight"])
        check_weight(data["weight"])
    set_ = await _get_owned_set(db, user_id, set_id)
    if data.get("completed", False) is None:
        del data["completed"]
    for k, v in data.items():
        setattr(set_, k, v)
    with store_errors("update set"):
        await db.flush()
        await db.refresh(set_)
    return set_


async def toggle_set(db: AsyncSession, user_id: uuid.UUID, set_id: uuid.UUID) -> WorkoutSet:
    """Flip a set's completed flag."""
    set_ = await _get_owned_set(db, user_id, set_id)
    set_.completed = not set_.completed
    with store_errors("update set"):
        await db.flush()
        await db.refresh(set_)
    return set_


async def complete_workout(db: AsyncSession, user_id: uuid.UUID, workout_id: uuid.UUID) -> Workout:
    """
    Set completed_at once every set is done. Blocked (CompletionGateError) when the
    workout has no sets or any set is open. Already completed workouts are returned
    as they are; nothing ever clears completed_at.
    """
    workout = await get_workout(db, user_id, workout_id)
    if workout.completed_at is not None:
        return workout
    progress = workout_progress(workout)
    if not can_complete(progress):
        raise CompletionGateError(
            f"{progress.completed_sets}/{progress.total_sets} sets completed; "
            "finish every set before completing the workout."
        )
    workout.completed_at = datetime.now(timezone.utc)
    with store_errors("complete workout"):
        await db.flush()
    logger.info("Workout %s completed", workout.id)
    return workout


async def delete_workout(db: AsyncSession, user_id: uuid.UUID, workout_id: uuid.UUID) -> None:
    """Delete a workout; its exercise links and sets go with it."""
    workout = await get_workout(db, user_id, workout_id)
    with store_errors("delete workout"):
        await db.delete(workout)
        await db.flush()
