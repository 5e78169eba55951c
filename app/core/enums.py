"""Shared enums for models and API."""

from enum import Enum


class ExerciseCategory(str, Enum):
    """Body region an exercise belongs to."""

    CHEST = "chest"
    BACK = "back"
    LEGS = "legs"
    SHOULDERS = "shoulders"
    ARMS = "arms"
    CORE = "core"
    CARDIO = "cardio"
    OTHER = "other"


class HistoryStatus(str, Enum):
    """Which workouts a history query returns."""

    ALL = "all"
    COMPLETED = "completed"  # completed_at is set
    INCOMPLETE = "incomplete"  # still in progress
