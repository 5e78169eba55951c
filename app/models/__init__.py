"""ORM models - import all so Base.metadata is complete for migrations."""

from app.models.exercise import Exercise
from app.models.workout import Workout, WorkoutExercise, WorkoutSet

__all__ = [
    "Exercise",
    "Workout",
    "WorkoutExercise",
    "WorkoutSet",
]
