"""Print row counts and list workouts that have no exercises (left by an interrupted create)."""

import asyncio
import os
import sys

# Add parent directory to path so we can import app modules
sys.path.append(os.path.join(os.path.dirname(__file__), ".."))

from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError

from app.db.session import async_session_maker, engine
from app.models import Workout, WorkoutExercise

TABLES = ["exercises", "workouts", "workout_exercises", "sets"]


async def main():
    async with async_session_maker() as session:
        for table in TABLES:
            try:
                count = (await session.execute(text(f"SELECT count(*) FROM {table}"))).scalar()
                print(f"Table '{table}' row count: {count}")
            except SQLAlchemyError as e:
                print(f"Error querying {table}: {e}")

        # Workouts without any exercise link are leftovers of a failed composition
        orphans = await session.execute(
            select(Workout.id, Workout.user_id, Workout.created_at)
            .outerjoin(WorkoutExercise, WorkoutExercise.workout_id == Workout.id)
            .group_by(Workout.id, Workout.user_id, Workout.created_at)
            .having(func.count(WorkoutExercise.id) == 0)
        )
        rows = orphans.all()
        print(f"Workouts without exercises: {len(rows)}")
        for workout_id, user_id, created_at in rows:
            print(f"  {workout_id} (user {user_id}, created {created_at.isoformat()})")
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
