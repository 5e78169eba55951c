"""Build a workout (header + exercise links + sets) from a client draft."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.constants import MAX_SET_WEIGHT
from app.core.exceptions import PartialCompositionError, StoreError, ValidationError
from app.models.workout import Workout, WorkoutExercise, WorkoutSet
from app.schemas.workout import ExerciseSelection, WorkoutDraft

logger = logging.getLogger(__name__)


def check_weight(weight: float | None) -> None:
    if weight is not None and abs(weight) >= MAX_SET_WEIGHT:
        raise ValidationError(f"Weight must be below {MAX_SET_WEIGHT}.")


def validate_draft(draft: WorkoutDraft) -> None:
    """Reject drafts the store would half-accept. Runs before any DB call."""
    if not draft.name or not draft.name.strip():
        raise ValidationError("Please enter a workout name.")
    if not draft.exercises:
        raise ValidationError("Please add at least one exercise.")
    seen: set[uuid.UUID] = set()
    for i, selection in enumerate(draft.exercises):
        if selection.exercise_id in seen:
            raise ValidationError(f"Exercise {selection.exercise_id} is selected more than once.")
        seen.add(selection.exercise_id)
        if not selection.sets:
            raise ValidationError(f"Exercise #{i + 1} needs at least one set.")
        if any(s.reps < 0 for s in selection.sets):
            raise ValidationError(f"Exercise #{i + 1} has a set with negative reps.")
        for s in selection.sets:
            check_weight(s.weight)


def _clean_description(description: str | None) -> str | None:
    if description is None:
        return None
    return description.strip() or None


def _build_sets(workout_exercise_id: uuid.UUID, selection: ExerciseSelection) -> list[WorkoutSet]:
    # Sets are ordered by created_at; stamp the batch so draft order survives one INSERT.
    stamp = datetime.now(timezone.utc)
    return [
        WorkoutSet(
            workout_exercise_id=workout_exercise_id,
            weight=s.weight,
            reps=s.reps,
            completed=False,
            created_at=stamp + timedelta(microseconds=k),
        )
        for k, s in enumerate(selection.sets)
    ]


async def create_workout(
    db: AsyncSession,
    user_id: uuid.UUID,
    draft: WorkoutDraft,
) -> Workout:
    """
    Insert the workout, then each exercise link in draft order (order = index),
    then that exercise's sets in one batch. Steps are sequential: each needs the
    id generated by the step before it.

    Everything runs in a SAVEPOINT, so a failure leaves nothing behind and is
    raised as StoreError. If the savepoint cannot be rolled back once the header
    exists, PartialCompositionError (with the workout id) is raised instead.
    Returns the workout header; its relationships are not loaded.
    """
    validate_draft(draft)

    workout_id: uuid.UUID | None = None
    savepoint = await db.begin_nested()
    try:
        workout = Workout(
            user_id=user_id,
            name=draft.name.strip(),
            description=_clean_description(draft.description),
            completed_at=None,
        )
        db.add(workout)
        await db.flush()
        workout_id = workout.id
        logger.debug("Created workout %s for user %s", workout_id, user_id)

        for i, selection in enumerate(draft.exercises):
            we = WorkoutExercise(workout_id=workout.id, exercise_id=selection.exercise_id, order=i)
            db.add(we)
            await db.flush()
            db.add_all(_build_sets(we.id, selection))
            await db.flush()
            logger.debug(
                "Workout %s: exercise %s at position %d with %d sets",
                workout_id,
                selection.exercise_id,
                i,
                len(selection.sets),
            )

        await savepoint.commit()
    except SQLAlchemyError as exc:
        logger.exception("Creating workout for user %s failed", user_id)
        try:
            await savepoint.rollback()
        except SQLAlchemyError as rollback_exc:
            if workout_id is not None:
                raise PartialCompositionError(
                    "Workout was only partially created.", workout_id=workout_id
                ) from rollback_exc
            raise StoreError("Could not create workout.") from rollback_exc
        raise StoreError("Could not create workout.") from exc

    logger.info("Workout %s created with %d exercises", workout_id, len(draft.exercises))
    return workout
