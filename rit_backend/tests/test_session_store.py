"""
Tests for the keyed session store and its per-key serialization.
"""

import asyncio
import datetime

import pytest

from rit_backend.assessments.base.exceptions import SessionConflictError, SessionNotFoundError
from rit_backend.assessments.base.models import AssessmentSession, Period, SessionKey
from rit_backend.assessments.rit.session_store import SessionConflictPolicy, SessionStore
from rit_backend.tests.helpers import FixedClock

KEY = SessionKey("student-1", "math", Period.FALL)
OTHER_KEY = SessionKey("student-2", "math", Period.FALL)


def make_session(clock, key=KEY, assessment_id=1):
    return AssessmentSession(
        key=key,
        assessment_id=assessment_id,
        current_difficulty=225,
        starting_difficulty=225,
        total_questions=10,
        started_at=clock(),
    )


@pytest.mark.asyncio
async def test_create_get_and_find():
    clock = FixedClock()
    store = SessionStore(clock=clock)
    session = await store.create(make_session(clock))

    assert await store.get(KEY) is session
    assert await store.find("student-1", 1) is session
    assert KEY in store
    assert len(store) == 1
    assert store.active_count() == 1


@pytest.mark.asyncio
async def test_missing_sessions():
    clock = FixedClock()
    store = SessionStore(clock=clock)
    await store.create(make_session(clock))

    with pytest.raises(SessionNotFoundError):
        await store.get(OTHER_KEY)
    with pytest.raises(SessionNotFoundError):
        await store.find("student-1", 2)
    # Another student's assessment id is not visible
    with pytest.raises(SessionNotFoundError) as exc_info:
        await store.find("student-2", 1)
    assert exc_info.value.code == "SESSION_NOT_FOUND"


@pytest.mark.asyncio
async def test_replace_policy_overwrites_live_session():
    clock = FixedClock()
    store = SessionStore(SessionConflictPolicy.REPLACE, clock=clock)
    await store.create(make_session(clock, assessment_id=1))
    replacement = await store.create(make_session(clock, assessment_id=2))

    assert await store.get(KEY) is replacement
    assert await store.find("student-1", 2) is replacement
    with pytest.raises(SessionNotFoundError):
        await store.find("student-1", 1)
    assert len(store) == 1


@pytest.mark.asyncio
async def test_reject_policy_keeps_live_session():
    clock = FixedClock()
    store = SessionStore(SessionConflictPolicy.REJECT, clock=clock)
    original = await store.create(make_session(clock, assessment_id=1))

    with pytest.raises(SessionConflictError) as exc_info:
        await store.create(make_session(clock, assessment_id=2))
    assert exc_info.value.kind == "conflict"
    assert await store.get(KEY) is original


@pytest.mark.asyncio
async def test_reserve_blocks_second_reservation_until_registered():
    clock = FixedClock()
    store = SessionStore(SessionConflictPolicy.REJECT, clock=clock)
    entered = asyncio.Event()
    release = asyncio.Event()

    async def first():
        async with store.reserve(KEY) as register:
            entered.set()
            await release.wait()
            return register(make_session(clock, assessment_id=1))

    task = asyncio.create_task(first())
    await entered.wait()
    second = asyncio.create_task(store.create(make_session(clock, assessment_id=2)))
    await asyncio.sleep(0)
    assert not second.done()

    release.set()
    registered = await task
    with pytest.raises(SessionConflictError):
        await second
    assert await store.get(KEY) is registered
    assert store._holders == {}


@pytest.mark.asyncio
async def test_failed_reservation_leaves_no_lock():
    clock = FixedClock()
    store = SessionStore(clock=clock)

    with pytest.raises(RuntimeError):
        async with store.reserve(KEY):
            raise RuntimeError("no item")
    assert KEY not in store
    assert store._locks == {}


@pytest.mark.asyncio
async def test_mutations_on_one_key_are_serialized():
    clock = FixedClock()
    store = SessionStore(clock=clock)
    await store.create(make_session(clock))

    async def increment(session):
        seen = session.questions_answered
        # Yield mid-update; an unserialized store would lose increments here
        await asyncio.sleep(0)
        session.questions_answered = seen + 1

    await asyncio.gather(*(store.mutate(KEY, increment) for _ in range(50)))
    assert (await store.get(KEY)).questions_answered == 50


@pytest.mark.asyncio
async def test_different_keys_proceed_in_parallel():
    clock = FixedClock()
    store = SessionStore(clock=clock)
    await store.create(make_session(clock, KEY, 1))
    await store.create(make_session(clock, OTHER_KEY, 2))
    gate = asyncio.Event()

    async def wait_for_gate(session):
        await gate.wait()

    blocked = asyncio.create_task(store.mutate(KEY, wait_for_gate))
    await asyncio.sleep(0)

    result = await asyncio.wait_for(store.mutate(OTHER_KEY, lambda s: s.assessment_id), timeout=1)
    assert result == 2
    assert not blocked.done()

    gate.set()
    await blocked


@pytest.mark.asyncio
async def test_mutate_returns_plain_and_awaited_results():
    clock = FixedClock()
    store = SessionStore(clock=clock)
    await store.create(make_session(clock))

    async def read_async(session):
        return session.current_difficulty

    assert await store.mutate(KEY, lambda s: s.total_questions) == 10
    assert await store.mutate(KEY, read_async) == 225


@pytest.mark.asyncio
async def test_waiter_behind_delete_sees_no_session():
    clock = FixedClock()
    store = SessionStore(clock=clock)
    await store.create(make_session(clock))
    gate = asyncio.Event()

    async def finalize(session):
        await gate.wait()
        await store.delete(session.key)

    first = asyncio.create_task(store.mutate(KEY, finalize))
    await asyncio.sleep(0)
    second = asyncio.create_task(store.mutate(KEY, lambda s: s.questions_answered))
    await asyncio.sleep(0)

    gate.set()
    await first
    with pytest.raises(SessionNotFoundError):
        await second
    assert KEY not in store


@pytest.mark.asyncio
async def test_delete_is_idempotent():
    clock = FixedClock()
    store = SessionStore(clock=clock)
    session = await store.create(make_session(clock))

    assert await store.delete(KEY) is session
    assert await store.delete(KEY) is None
    with pytest.raises(SessionNotFoundError):
        await store.find("student-1", 1)


@pytest.mark.asyncio
async def test_mutation_records_activity():
    clock = FixedClock()
    store = SessionStore(clock=clock)
    session = await store.create(make_session(clock))

    later = clock.advance(minutes=3)
    await store.mutate(KEY, lambda s: None)
    assert session.last_activity_at == later


@pytest.mark.asyncio
async def test_purge_idle_drops_only_stale_sessions():
    clock = FixedClock()
    store = SessionStore(clock=clock)
    stale = await store.create(make_session(clock, KEY, 1))
    clock.advance(minutes=20)
    await store.create(make_session(clock, OTHER_KEY, 2))
    clock.advance(minutes=15)

    purged = await store.purge_idle(datetime.timedelta(minutes=30))
    assert purged == [stale]
    assert KEY not in store
    assert OTHER_KEY in store


@pytest.mark.asyncio
async def test_purge_idle_skips_sessions_being_mutated():
    clock = FixedClock()
    store = SessionStore(clock=clock)
    await store.create(make_session(clock))
    clock.advance(hours=1)

    async def purge_from_inside(session):
        return await store.purge_idle(datetime.timedelta(minutes=1))

    assert await store.mutate(KEY, purge_from_inside) == []
    assert KEY in store
