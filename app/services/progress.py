"""Completion progress for one workout and statistics across a workout history."""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from app.models.workout import Workout
from app.schemas.workout import HistoryStats, WorkoutProgress, WorkoutSummary


def percentage(part: int, whole: int) -> int:
    """100 * part / whole rounded half up; 0 when whole is 0."""
    if whole <= 0:
        return 0
    value = Decimal(100 * part) / Decimal(whole)
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def workout_progress(workout: Workout) -> WorkoutProgress:
    """
    Sum sets over all of the workout's exercises. Expects workout.exercises and
    each exercise's sets to be loaded already (selectinload); never queries.
    """
    total = 0
    completed = 0
    for we in workout.exercises:
        total += len(we.sets)
        completed += sum(1 for s in we.sets if s.completed)
    return WorkoutProgress(
        total_sets=total,
        completed_sets=completed,
        percent=percentage(completed, total),
    )


def can_complete(progress: WorkoutProgress) -> bool:
    """Completion gate: at least one set, and every set done."""
    return progress.total_sets > 0 and progress.completed_sets == progress.total_sets


def summarize_workout(workout: Workout) -> WorkoutSummary:
    progress = workout_progress(workout)
    return WorkoutSummary(
        id=workout.id,
        user_id=workout.user_id,
        name=workout.name,
        description=workout.description,
        created_at=workout.created_at,
        completed_at=workout.completed_at,
        total_exercises=len(workout.exercises),
        total_sets=progress.total_sets,
        completed_sets=progress.completed_sets,
        percent=progress.percent,
    )


def history_stats(workouts: Iterable[WorkoutSummary]) -> HistoryStats:
    """Totals across already summarized workouts (see summarize_workout)."""
    total_workouts = 0
    completed_workouts = 0
    total_sets = 0
    completed_sets = 0
    for w in workouts:
        total_workouts += 1
        if w.completed_at is not None:
            completed_workouts += 1
        total_sets += w.total_sets
        completed_sets += w.completed_sets
    return HistoryStats(
        total_workouts=total_workouts,
        completed_workouts=completed_workouts,
        total_sets=total_sets,
        completed_sets=completed_sets,
        completion_rate=percentage(completed_sets, total_sets),
    )
