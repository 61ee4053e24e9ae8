"""Unit tests for DrawEngine."""

from collections import Counter

import pytest

from core.exceptions import CommitFailure, EmptyPoolError, NoPendingWinnerError
from database.models import DrawState
from services.draw_engine import DrawEngine
from tests.factories import make_participant


def _seed(store, session_id, names):
    for name in names:
        store.add_participant(session_id, name.lower(), name)


def _state_from_store(store, session_id):
    from database.models import Participant, PoolSnapshot

    rows = [r for r in store.tables["participants"] if r["session_id"] == session_id]
    state = DrawState(session_id=session_id)
    state.apply_snapshot(PoolSnapshot.from_participants(session_id, [Participant.from_row(r) for r in rows]))
    return state


def test_empty_pool_raises(store):
    """Test drawing from nobody is refused."""
    engine = DrawEngine(store)
    with pytest.raises(EmptyPoolError):
        engine.start_draw([])
    assert engine.pending_winner is None


def test_start_draw_uses_injected_randomness(store):
    """Test the winner is the pool entry at the random index."""
    pool = [make_participant("a"), make_participant("b"), make_participant("c")]
    engine = DrawEngine(store, randbelow=lambda n: n - 1)

    winner = engine.start_draw(pool)

    assert winner is pool[2]
    assert engine.pending_winner is winner


def test_out_of_range_random_index_is_rejected(store):
    """Test a broken random source cannot pick outside the pool."""
    engine = DrawEngine(store, randbelow=lambda n: n)
    with pytest.raises(RuntimeError):
        engine.start_draw([make_participant("a")])


def test_selection_is_uniform(store):
    """Test every participant is drawn about equally often."""
    pool = [make_participant(pid) for pid in "abcde"]
    engine = DrawEngine(store)
    draws = 20000

    counts = Counter(engine.start_draw(pool).id for _ in range(draws))

    expected = draws / len(pool)
    assert set(counts) == set("abcde")
    for pid, count in counts.items():
        # ~7 standard deviations; a biased picker fails, a fair one does not
        assert abs(count - expected) < 400, (pid, count)


@pytest.mark.asyncio
async def test_commit_requires_pending_winner(store):
    """Test commit_winner refuses to run out of order."""
    engine = DrawEngine(store)
    with pytest.raises(NoPendingWinnerError):
        await engine.commit_winner(make_participant("a"), "session-1")


@pytest.mark.asyncio
async def test_commit_rejects_other_participant(store):
    """Test only the pending winner can be committed."""
    engine = DrawEngine(store, randbelow=lambda n: 0)
    pool = [make_participant("a"), make_participant("b")]
    engine.start_draw(pool)

    with pytest.raises(NoPendingWinnerError):
        await engine.commit_winner(pool[1], "session-1")


@pytest.mark.asyncio
async def test_commit_marks_winner_remotely(store):
    """Test a committed winner has won = true in the store."""
    _seed(store, "s1", ["Ann", "Bob"])
    state = _state_from_store(store, "s1")
    engine = DrawEngine(store, randbelow=lambda n: 0)

    winner = engine.start_draw(state.available_pool)
    result = await engine.commit_winner(winner, "s1")

    assert result.ok
    assert result.data.id == winner.id
    assert result.data.won is True
    assert store.row("participants", winner.id)["won"] is True
    assert store.row("participants", "bob")["won"] is False


@pytest.mark.asyncio
async def test_commit_failure_is_reported_not_raised(store):
    """Test a store outage yields CommitFailure and the round continues."""
    _seed(store, "s1", ["Ann", "Bob"])
    state = _state_from_store(store, "s1")
    engine = DrawEngine(store, randbelow=lambda n: 0)
    winner = engine.start_draw(state.available_pool)
    store.fail("participants", "PATCH")

    result = await engine.commit_winner(winner, "s1")

    assert isinstance(result.error, CommitFailure)
    assert result.error.participant_id == winner.id
    assert await engine.advance_round(state) is False
    assert [p.id for p in state.available_pool] == ["bob"]


@pytest.mark.asyncio
async def test_commit_of_already_won_participant_fails(store):
    """Test a winner marked by another viewer is not double counted."""
    _seed(store, "s1", ["Ann"])
    state = _state_from_store(store, "s1")
    engine = DrawEngine(store)
    winner = engine.start_draw(state.available_pool)
    store.row("participants", "ann")["won"] = True

    result = await engine.commit_winner(winner, "s1")

    assert isinstance(result.error, CommitFailure)


@pytest.mark.asyncio
async def test_commit_is_scoped_to_session(store):
    """Test a commit never touches a participant of another session."""
    _seed(store, "s1", ["Ann"])
    state = _state_from_store(store, "s1")
    engine = DrawEngine(store)
    winner = engine.start_draw(state.available_pool)

    result = await engine.commit_winner(winner, "s2")

    assert not result.ok
    assert store.row("participants", "ann")["won"] is False


@pytest.mark.asyncio
async def test_advance_requires_commit(store):
    """Test advance_round refuses to run before a commit."""
    engine = DrawEngine(store)
    engine.start_draw([make_participant("a")])
    with pytest.raises(NoPendingWinnerError):
        await engine.advance_round(DrawState(session_id="session-1"))


@pytest.mark.asyncio
async def test_full_rotation_resets_pool(store):
    """Test three participants are each drawn once, then everyone returns."""
    _seed(store, "s1", ["A", "B", "C"])
    state = _state_from_store(store, "s1")
    engine = DrawEngine(store)
    drawn = []

    for round_number in range(3):
        available_before = {p.id for p in state.available_pool}
        winner = engine.start_draw(state.available_pool)
        assert winner.id in available_before
        await engine.commit_winner(winner, "s1")
        was_reset = await engine.advance_round(state)
        drawn.append(winner.id)

        if round_number < 2:
            assert was_reset is False
            assert len(state.available_pool) == 2 - round_number
            assert winner.id not in {p.id for p in state.available_pool}
        else:
            assert was_reset is True
            assert state.round_complete is True

    assert sorted(drawn) == ["a", "b", "c"]
    assert len(state.available_pool) == 3
    assert all(not p.won for p in state.all_pool)
    assert all(row["won"] is False for row in store.tables["participants"])


@pytest.mark.asyncio
async def test_reset_clears_only_this_session(store):
    """Test reset clears won flags of the session and repopulates."""
    store.add_participant("s1", "a", "A", won=True)
    store.add_participant("s1", "b", "B")
    store.add_participant("s2", "c", "C", won=True)
    state = _state_from_store(store, "s1")
    engine = DrawEngine(store)

    result = await engine.reset(state)

    assert result.ok
    assert [p.id for p in state.available_pool] == ["a", "b"]
    assert store.row("participants", "a")["won"] is False
    assert store.row("participants", "c")["won"] is True


@pytest.mark.asyncio
async def test_reset_failure_still_repopulates_locally(store):
    """Test an offline reset still makes everyone available on this screen."""
    store.add_participant("s1", "a", "A", won=True)
    state = _state_from_store(store, "s1")
    engine = DrawEngine(store)
    store.fail("participants")

    result = await engine.reset(state)

    assert not result.ok
    assert [p.id for p in state.available_pool] == ["a"]
    assert store.row("participants", "a")["won"] is True
