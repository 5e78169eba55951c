import uuid

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from app.core.exceptions import PartialCompositionError, StoreError, ValidationError
from app.models import Workout, WorkoutExercise, WorkoutSet
from app.schemas.workout import ExerciseSelection, SetDraft, WorkoutDraft
from app.services.workout_composer import create_workout, validate_draft
from conftest import make_draft


async def _count(db, model):
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()


@pytest.mark.asyncio
async def test_create_workout_builds_header_links_and_sets(db, exercises, user_id):
    bench, squat = exercises["bench"], exercises["squat"]
    draft = make_draft(
        name="  Push day  ",
        description="   ",
        **{
            str(squat.id): [(100.0, 5), (None, 5)],
            str(bench.id): [(60.0, 10), (62.5, 8), (65.0, 6)],
        },
    )

    workout = await create_workout(db, user_id, draft)
    await db.commit()

    assert workout.name == "Push day"
    assert workout.description is None
    assert workout.user_id == user_id
    assert workout.completed_at is None
    assert await _count(db, Workout) == 1

    links = (
        await db.execute(
            select(WorkoutExercise)
            .where(WorkoutExercise.workout_id == workout.id)
            .order_by(WorkoutExercise.order)
        )
    ).scalars().all()
    assert [we.order for we in links] == [0, 1]
    assert [we.exercise_id for we in links] == [squat.id, bench.id]

    for we, expected in zip(links, [[(100.0, 5), (None, 5)], [(60.0, 10), (62.5, 8), (65.0, 6)]]):
        sets = (
            await db.execute(
                select(WorkoutSet)
                .where(WorkoutSet.workout_exercise_id == we.id)
                .order_by(WorkoutSet.created_at, WorkoutSet.id)
            )
        ).scalars().all()
        assert [(None if s.weight is None else float(s.weight), s.reps) for s in sets] == expected
        assert all(s.completed is False for s in sets)


@pytest.mark.asyncio
async def test_description_is_trimmed(db, exercises, user_id):
    draft = make_draft(description="  heavy  ", **{str(exercises["bench"].id): [(80.0, 5)]})
    workout = await create_workout(db, user_id, draft)
    assert workout.description == "heavy"


@pytest.mark.parametrize(
    "draft",
    [
        WorkoutDraft(name="   ", exercises=[ExerciseSelection(exercise_id=uuid.uuid4(), sets=[SetDraft(reps=5)])]),
        WorkoutDraft(name="Legs", exercises=[]),
        WorkoutDraft(name="Legs", exercises=[ExerciseSelection(exercise_id=uuid.uuid4(), sets=[])]),
        WorkoutDraft(name="Legs", exercises=[ExerciseSelection(exercise_id=uuid.uuid4(), sets=[SetDraft(reps=-1)])]),
        WorkoutDraft(name="Legs", exercises=[ExerciseSelection(exercise_id=uuid.uuid4(), sets=[SetDraft(weight=1000, reps=5)])]),
    ],
)
def test_validate_draft_rejects_bad_drafts(draft):
    with pytest.raises(ValidationError):
        validate_draft(draft)


def test_validate_draft_rejects_duplicate_exercise():
    eid = uuid.uuid4()
    draft = WorkoutDraft(
        name="Legs",
        exercises=[
            ExerciseSelection(exercise_id=eid, sets=[SetDraft(reps=5)]),
            ExerciseSelection(exercise_id=eid, sets=[SetDraft(reps=5)]),
        ],
    )
    with pytest.raises(ValidationError, match="more than once"):
        validate_draft(draft)


@pytest.mark.asyncio
async def test_invalid_draft_touches_nothing(db, exercises, user_id):
    with pytest.raises(ValidationError):
        await create_workout(db, user_id, make_draft(name=""))
    assert await _count(db, Workout) == 0


@pytest.mark.asyncio
async def test_failure_after_header_rolls_everything_back(db, exercises, user_id):
    draft = make_draft(
        **{
            str(exercises["bench"].id): [(60.0, 10)],
            str(uuid.uuid4()): [(20.0, 12)],  # no such exercise -> FK violation
        }
    )

    with pytest.raises(StoreError) as excinfo:
        await create_workout(db, user_id, draft)

    assert not isinstance(excinfo.value, PartialCompositionError)
    await db.commit()
    assert await _count(db, Workout) == 0
    assert await _count(db, WorkoutExercise) == 0
    assert await _count(db, WorkoutSet) == 0


class _FailingSavepoint:
    async def commit(self):
        pass

    async def rollback(self):
        raise OperationalError("ROLLBACK TO SAVEPOINT", {}, Exception("connection lost"))


class _FlakySession:
    """Just enough of AsyncSession for the composer; the Nth flush fails."""

    def __init__(self, fail_on_flush: int):
        self.added = []
        self.flushes = 0
        self.fail_on_flush = fail_on_flush

    async def begin_nested(self):
        return _FailingSavepoint()

    def add(self, obj):
        self.added.append(obj)

    def add_all(self, objs):
        self.added.extend(objs)

    async def flush(self):
        self.flushes += 1
        if self.flushes == self.fail_on_flush:
            raise OperationalError("INSERT", {}, Exception("connection lost"))
        for obj in self.added:
            if obj.id is None:
                obj.id = uuid.uuid4()


@pytest.mark.asyncio
async def test_unrecoverable_failure_reports_partial_workout(user_id):
    session = _FlakySession(fail_on_flush=3)
    draft = WorkoutDraft(
        name="Pull day",
        exercises=[ExerciseSelection(exercise_id=uuid.uuid4(), sets=[SetDraft(weight=50, reps=8)])],
    )

    with pytest.raises(PartialCompositionError) as excinfo:
        await create_workout(session, user_id, draft)

    header = session.added[0]
    assert isinstance(header, Workout)
    assert excinfo.value.workout_id == header.id


@pytest.mark.asyncio
async def test_failure_before_header_is_a_clean_store_error(user_id):
    session = _FlakySession(fail_on_flush=1)
    draft = WorkoutDraft(
        name="Pull day",
        exercises=[ExerciseSelection(exercise_id=uuid.uuid4(), sets=[SetDraft(reps=8)])],
    )

    with pytest.raises(StoreError) as excinfo:
        await create_workout(session, user_id, draft)
    assert not isinstance(excinfo.value, PartialCompositionError)


def test_blank_weight_in_draft_means_no_weight():
    assert SetDraft.model_validate({"weight": "", "reps": 5}).weight is None
