"""Previous session context - what you did last time for an exercise (progressive overload)."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import get_current_user_id
from app.core.exceptions import store_errors
from app.db.session import get_db
from app.services.performance_matcher import format_previous, previous_sets

router = APIRouter()


@router.get("/exercises/{exercise_id}")
async def get_previous_session_sets(
    exercise_id: uuid.UUID,
    before: datetime | None = None,
    db: AsyncSession = Depends(get_db),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    """
    Sets for this exercise from the user's most recent workout created before
    `before` (default: now), in set order. Pass the current workout's created_at
    to get the session prior to it.
    """
    before = before or datetime.now(timezone.utc)
    with store_errors("load previous session"):
        sets = await previous_sets(db, user_id, exercise_id, before)
    if not sets:
        return {"sets": [], "message": "No previous session for this exercise."}
    return {
        "sets": [
            {"index": k, "weight": s.weight, "reps": s.reps, "display": format_previous(s)}
            for k, s in enumerate(sets)
        ],
    }
