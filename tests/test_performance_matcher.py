import asyncio
import uuid
from contextlib import asynccontextmanager

import pytest
from sqlalchemy.exc import OperationalError

from app.schemas.workout import PreviousSet
from app.services.performance_matcher import (
    align_previous,
    format_previous,
    previous_sets,
    previous_sets_by_exercise,
)
from conftest import compose_at, days


def _pairs(sets):
    return [(s.weight, s.reps) for s in sets]


@pytest.mark.asyncio
async def test_previous_sets_come_from_most_recent_earlier_workout(db, exercises, user_id):
    bench = exercises["bench"]
    await compose_at(db, user_id, [(bench, [(90.0, 8)])], days(0))
    await compose_at(db, user_id, [(bench, [(100.0, 8), (105.0, 6)])], days(2))
    await compose_at(db, user_id, [(bench, [(120.0, 3)])], days(5))  # after the reference point

    result = await previous_sets(db, user_id, bench.id, days(4))

    assert _pairs(result) == [(100.0, 8), (105.0, 6)]


@pytest.mark.asyncio
async def test_previous_sets_skip_workouts_without_the_exercise(db, exercises, user_id):
    bench, squat = exercises["bench"], exercises["squat"]
    await compose_at(db, user_id, [(bench, [(95.0, 5)])], days(0))
    await compose_at(db, user_id, [(squat, [(140.0, 5)])], days(1))

    result = await previous_sets(db, user_id, bench.id, days(2))

    assert _pairs(result) == [(95.0, 5)]


@pytest.mark.asyncio
async def test_previous_sets_only_look_at_the_same_user(db, exercises, user_id):
    bench = exercises["bench"]
    await compose_at(db, uuid.uuid4(), [(bench, [(200.0, 1)])], days(0))

    assert await previous_sets(db, user_id, bench.id, days(1)) == []


@pytest.mark.asyncio
async def test_reference_workout_itself_is_not_its_own_previous(db, exercises, user_id):
    bench = exercises["bench"]
    current = await compose_at(db, user_id, [(bench, [(100.0, 5)])], days(0))

    assert await previous_sets(db, user_id, bench.id, current.created_at) == []


@pytest.mark.asyncio
async def test_missing_weight_is_kept_as_none(db, exercises, user_id):
    squat = exercises["squat"]
    await compose_at(db, user_id, [(squat, [(None, 20), (60.0, 10)])], days(0))

    result = await previous_sets(db, user_id, squat.id, days(1))

    assert _pairs(result) == [(None, 20), (60.0, 10)]


def test_align_previous_is_positional():
    previous = [PreviousSet(weight=100, reps=8), PreviousSet(weight=105, reps=6)]

    aligned = align_previous(3, previous)

    assert [format_previous(p) for p in aligned] == ["100x8", "105x6", "-"]


def test_align_previous_drops_extra_previous_sets():
    previous = [PreviousSet(weight=100, reps=8), PreviousSet(weight=105, reps=6)]
    assert align_previous(1, previous) == [previous[0]]
    assert align_previous(0, previous) == []


@pytest.mark.parametrize(
    "prev, expected",
    [
        (None, "-"),
        (PreviousSet(weight=None, reps=10), "-"),
        (PreviousSet(weight=80, reps=None), "-"),
        (PreviousSet(weight=102.5, reps=5), "102.5x5"),
        (PreviousSet(weight=0, reps=12), "0x12"),
    ],
)
def test_format_previous(prev, expected):
    assert format_previous(prev) == expected


@pytest.mark.asyncio
async def test_fan_out_returns_entry_per_exercise(session_factory, db, exercises, user_id):
    bench, squat, deadlift = exercises["bench"], exercises["squat"], exercises["deadlift"]
    await compose_at(db, user_id, [(bench, [(100.0, 8)]), (squat, [(140.0, 5), (140.0, 5)])], days(0))

    result = await previous_sets_by_exercise(
        session_factory, user_id, [bench.id, squat.id, deadlift.id], days(1), concurrency=2
    )

    assert _pairs(result[bench.id]) == [(100.0, 8)]
    assert _pairs(result[squat.id]) == [(140.0, 5), (140.0, 5)]
    assert result[deadlift.id] == []


class _FirstCallFails:
    def __init__(self, factory):
        self.factory = factory
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls == 1:
            raise OperationalError("SELECT", {}, Exception("connection refused"))
        return self.factory()


@pytest.mark.asyncio
async def test_failed_lookup_means_no_previous_data(session_factory, db, exercises, user_id):
    bench, squat = exercises["bench"], exercises["squat"]
    await compose_at(db, user_id, [(bench, [(100.0, 8)]), (squat, [(140.0, 5)])], days(0))
    flaky = _FirstCallFails(session_factory)

    result = await previous_sets_by_exercise(flaky, user_id, [bench.id, squat.id], days(1), concurrency=1)

    assert result[bench.id] == []
    assert _pairs(result[squat.id]) == [(140.0, 5)]


class _CountingFactory:
    """Session factory that records how many sessions are open at the same time."""

    def __init__(self, factory):
        self.factory = factory
        self.open = 0
        self.peak = 0

    @asynccontextmanager
    async def _session(self):
        self.open += 1
        self.peak = max(self.peak, self.open)
        try:
            async with self.factory() as session:
                # hand control back so other lookups get a chance to open theirs
                await asyncio.sleep(0)
                yield session
        finally:
            self.open -= 1

    def __call__(self):
        return self._session()


@pytest.mark.asyncio
@pytest.mark.parametrize("concurrency", [1, 2])
async def test_fan_out_keeps_open_sessions_within_limit(session_factory, db, exercises, user_id, concurrency):
    bench, squat, deadlift = exercises["bench"], exercises["squat"], exercises["deadlift"]
    await compose_at(db, user_id, [(bench, [(100.0, 8)]), (squat, [(140.0, 5)]), (deadlift, [(180.0, 3)])], days(0))
    counting = _CountingFactory(session_factory)

    result = await previous_sets_by_exercise(
        counting, user_id, [bench.id, squat.id, deadlift.id], days(1), concurrency=concurrency
    )

    assert 1 <= counting.peak <= concurrency
    assert counting.open == 0
    assert _pairs(result[deadlift.id]) == [(180.0, 3)]
