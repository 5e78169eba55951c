"""Shared fixtures: a throwaway SQLite database with the real schema and a few exercises."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.enums import ExerciseCategory
from app.db.base import Base
from app.models import Exercise
from app.schemas.workout import ExerciseSelection, SetDraft, WorkoutDraft
from app.services.workout_composer import create_workout

BASE_TIME = datetime(2026, 1, 5, 18, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def engine(tmp_path):
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'workouts.db'}")

    @event.listens_for(eng.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # SQLAlchemy emits BEGIN itself (see _on_begin) so SAVEPOINT works; enforce FKs
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(eng.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def exercises(db):
    """Bench, squat and deadlift, keyed by short name."""
    rows = {
        "bench": Exercise(name="Bench Press", category=ExerciseCategory.CHEST),
        "squat": Exercise(name="Squat", category=ExerciseCategory.LEGS),
        "deadlift": Exercise(name="Deadlift", category=ExerciseCategory.BACK),
    }
    db.add_all(rows.values())
    await db.commit()
    return rows


@pytest.fixture
def user_id():
    return uuid.uuid4()


def make_draft(name="Push day", description=None, **sets_by_exercise_id):
    """Draft from {exercise_id_str: [(weight, reps), ...]} keeping insertion order."""
    return WorkoutDraft(
        name=name,
        description=description,
        exercises=[
            ExerciseSelection(
                exercise_id=uuid.UUID(eid),
                sets=[SetDraft(weight=w, reps=r) for w, r in sets],
            )
            for eid, sets in sets_by_exercise_id.items()
        ],
    )


async def compose_at(db, user_id, selections, created_at, name="Workout"):
    """
    Create a workout through the composer, then pin its created_at so tests control
    which workout counts as "previous". selections: [(exercise, [(weight, reps), ...])].
    """
    draft = make_draft(name=name, **{str(ex.id): sets for ex, sets in selections})
    workout = await create_workout(db, user_id, draft)
    workout.created_at = created_at
    await db.commit()
    return workout


def days(n: int) -> datetime:
    return BASE_TIME + timedelta(days=n)
