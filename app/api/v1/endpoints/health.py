"""Liveness and readiness checks."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.db.session import get_db
from app.models.exercise import Exercise

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("")
async def health():
    settings = get_settings()
    return {"status": "ok", "service": settings.app_name, "environment": settings.environment}


@router.get("/ready")
async def readiness(db: AsyncSession = Depends(get_db)):
    """Ready once the database answers; reports how many catalogue exercises are seeded."""
    try:
        seeded = (await db.execute(select(func.count()).select_from(Exercise))).scalar_one()
    except SQLAlchemyError:
        logger.warning("Readiness check failed", exc_info=True)
        return JSONResponse(status_code=503, content={"status": "unavailable", "database": "unreachable"})
    return {"status": "ok", "database": "connected", "exercises": seeded}
