"""Workout draft, set, progress and history schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _blank_to_none(value):
    # Form inputs send "" for an emptied field.
    if isinstance(value, str) and not value.strip():
        return None
    return value


class ExerciseRef(BaseModel):
    """Minimal exercise info for embedding in workout responses."""

    id: UUID
    name: str
    description: str | None = None

    model_config = ConfigDict(from_attributes=True)


# --- Draft (input to the composer) ---


class SetDraft(BaseModel):
    weight: float | None = None
    reps: int

    blank_weight = field_validator("weight", mode="before")(_blank_to_none)


class ExerciseSelection(BaseModel):
    exercise_id: UUID
    sets: list[SetDraft] = []


class WorkoutDraft(BaseModel):
    """Unsaved workout as built by the client. Checked by validate_draft, not here,
    so programmatic callers get the same ValidationError as API callers."""

    name: str
    description: str | None = None
    exercises: list[ExerciseSelection] = []


# --- Sets ---


class WorkoutSetUpdate(BaseModel):
    """
    Partial set update. Sending weight=null (or "") clears it; omitting it leaves it
    untouched. Reps may arrive fractional or blank; update_set floors and clamps them.
    """

    weight: float | None = None
    reps: float | None = None
    completed: bool | None = None

    blank_fields = field_validator("weight", "reps", mode="before")(_blank_to_none)


class WorkoutSetRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: UUID
    workout_exercise_id: UUID
    weight: float | None = None
    reps: int
    completed: bool = False
    created_at: datetime


# --- Progress / matcher ---


class PreviousSet(BaseModel):
    weight: float | None = None
    reps: int | None = None


class WorkoutProgress(BaseModel):
    total_sets: int = 0
    completed_sets: int = 0
    percent: int = 0


class HistoryStats(BaseModel):
    total_workouts: int = 0
    completed_workouts: int = 0
    total_sets: int = 0
    completed_sets: int = 0
    completion_rate: int = 0


# --- Workouts ---


class WorkoutRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: UUID
    user_id: UUID
    name: str
    description: str | None = None
    created_at: datetime
    completed_at: datetime | None = None


class WorkoutSummary(WorkoutRead):
    """History row: workout plus its counts."""

    total_exercises: int = 0
    total_sets: int = 0
    completed_sets: int = 0
    percent: int = 0


class DetailSetRead(WorkoutSetRead):
    """Current set next to what was done at the same index last time."""

    index: int
    previous: PreviousSet | None = None
    previous_display: str = "-"


class WorkoutExerciseDetail(BaseModel):
    workout_exercise_id: UUID
    order: int
    exercise: ExerciseRef
    sets: list[DetailSetRead] = []


class WorkoutDetail(WorkoutRead):
    """Workout with ordered exercises, aligned previous performance and progress."""

    progress: WorkoutProgress = Field(default_factory=WorkoutProgress)
    can_complete: bool = False
    exercises: list[WorkoutExerciseDetail] = []
