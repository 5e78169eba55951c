"""Workout endpoints: compose, history, detail, set edits, completion."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import get_settings
from app.core.constants import RECENT_WORKOUTS_LIMIT
from app.core.deps import get_current_user_id
from app.core.enums import HistoryStatus
from app.db.session import get_db, get_session_factory
from app.schemas.workout import (
    HistoryStats,
    WorkoutDetail,
    WorkoutDraft,
    WorkoutProgress,
    WorkoutRead,
    WorkoutSetRead,
    WorkoutSetUpdate,
    WorkoutSummary,
)
from app.services import workouts as workout_service
from app.services.progress import workout_progress
from app.services.workout_composer import create_workout as compose_workout

router = APIRouter()
settings = get_settings()


@router.post("", response_model=WorkoutRead, status_code=201)
async def create_workout(
    payload: WorkoutDraft,
    db: AsyncSession = Depends(get_db),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    """Create a workout with its exercises (in the given order) and their sets."""
    workout = await compose_workout(db, user_id, payload)
    return WorkoutRead.model_validate(workout)


@router.get("", response_model=list[WorkoutSummary])
async def list_workouts(
    status: HistoryStatus = HistoryStatus.ALL,
    skip: int = Query(0, ge=0),
    limit: int = Query(settings.history_page_size, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    """Workout history, newest first, with per-workout set counts."""
    return await workout_service.list_workout_history(db, user_id, status, skip=skip, limit=limit)


@router.get("/stats", response_model=HistoryStats)
async def get_history_stats(
    status: HistoryStatus = HistoryStatus.ALL,
    db: AsyncSession = Depends(get_db),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    """Totals across the (filtered) history: workouts, completed workouts, sets, completion rate."""
    return await workout_service.workout_history_stats(db, user_id, status)


@router.get("/recent", response_model=list[WorkoutRead])
async def list_recent_workouts(
    limit: int = Query(RECENT_WORKOUTS_LIMIT, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    """Latest workouts (headers only) for the home screen."""
    return await workout_service.recent_workouts(db, user_id, limit=limit)


@router.patch("/sets/{set_id}", response_model=WorkoutSetRead)
async def update_set(
    set_id: uuid.UUID,
    payload: WorkoutSetUpdate,
    db: AsyncSession = Depends(get_db),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    """Update weight, reps and/or completed on one set. weight=null clears it."""
    return await workout_service.update_set(db, user_id, set_id, payload)


@router.post("/sets/{set_id}/toggle", response_model=WorkoutSetRead)
async def toggle_set(
    set_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    """Flip a set between done and not done."""
    return await workout_service.toggle_set(db, user_id, set_id)


@router.get("/{workout_id}", response_model=WorkoutDetail)
async def get_workout(
    workout_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    """Workout with exercises, sets, progress and last session's sets next to each set."""
    return await workout_service.get_workout_detail(db, session_factory, user_id, workout_id)


@router.get("/{workout_id}/progress", response_model=WorkoutProgress)
async def get_workout_progress(
    workout_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    workout = await workout_service.get_workout(db, user_id, workout_id)
    return workout_progress(workout)


@router.post("/{workout_id}/complete", response_model=WorkoutRead)
async def complete_workout(
    workout_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    """Mark the workout completed. 409 unless every set is completed."""
    workout = await workout_service.complete_workout(db, user_id, workout_id)
    return WorkoutRead.model_validate(workout)


@router.delete("/{workout_id}", status_code=204)
async def delete_workout(
    workout_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    """Delete a workout with its exercises and sets."""
    await workout_service.delete_workout(db, user_id, workout_id)
    return None
