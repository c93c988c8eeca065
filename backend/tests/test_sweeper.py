"""Tests for the liveness sweeper."""
from typing import List, Set

import pytest

from strangerchat.chat.state import MatchState
from strangerchat.chat.sweeper import ClosedRoom, LivenessSweeper
from fakes import make_profile


@pytest.fixture
def dead() -> Set[str]:
    return set()


@pytest.fixture
def state(clock, dead):
    return MatchState(is_live=lambda cid: cid not in dead, clock=clock)


def _pair(state: MatchState, a: str, b: str):
    state.matchmaker.find_or_queue(make_profile(a, state.clock()))
    return state.matchmaker.find_or_queue(make_profile(b, state.clock())).room


class TestSweep:
    def test_removes_waiting_entry_older_than_five_minutes(self, state, clock):
        state.queue.enqueue(make_profile("a", clock.now))
        clock.advance(301)

        report = LivenessSweeper(state).sweep()

        assert [p.connectionId for p in report.expired_waiting] == ["a"]
        assert state.queue.size() == 0

    def test_removes_waiting_entry_with_dead_connection(self, state, clock, dead):
        state.queue.enqueue(make_profile("a", clock.now))
        state.queue.enqueue(make_profile("b", clock.now))
        dead.add("a")

        LivenessSweeper(state).sweep()

        assert [p.connectionId for p in state.queue.profiles()] == ["b"]

    def test_removes_room_when_both_members_are_gone(self, state, dead):
        room = _pair(state, "a", "b")
        dead.update({"a", "b"})

        report = LivenessSweeper(state).sweep()

        assert state.rooms.get(room.roomId) is None
        assert report.closed_rooms[0].survivors == []
        assert not report.closed_rooms[0].expired

    def test_keeps_room_with_a_live_member(self, state, dead):
        room = _pair(state, "a", "b")
        dead.add("a")

        report = LivenessSweeper(state).sweep()

        assert state.rooms.get(room.roomId) is room
        assert report.closed_rooms == []

    def test_removes_room_older_than_one_hour_and_reports_survivors(self, state, clock):
        room = _pair(state, "a", "b")
        clock.advance(3601)

        report = LivenessSweeper(state).sweep()

        assert state.rooms.get(room.roomId) is None
        closed = report.closed_rooms[0]
        assert closed.expired
        assert sorted(m.connectionId for m in closed.survivors) == ["a", "b"]

    def test_fresh_state_is_left_alone(self, state, clock):
        _pair(state, "a", "b")
        state.queue.enqueue(make_profile("c", clock.now))

        report = LivenessSweeper(state).sweep()

        assert report.empty
        assert len(state.rooms) == 1
        assert state.queue.size() == 1


class TestRunOnce:
    @pytest.mark.asyncio
    async def test_reports_closed_rooms_after_releasing_lock(self, state, clock):
        seen: List[ClosedRoom] = []

        async def on_closed(closed: List[ClosedRoom]) -> None:
            assert not state.lock.locked()
            seen.extend(closed)

        _pair(state, "a", "b")
        clock.advance(3601)

        await LivenessSweeper(state, on_rooms_closed=on_closed).run_once()

        assert len(seen) == 1
        assert seen[0].expired

    @pytest.mark.asyncio
    async def test_callback_skipped_when_nothing_closed(self, state):
        calls = []

        async def on_closed(closed):
            calls.append(closed)

        await LivenessSweeper(state, on_rooms_closed=on_closed).run_once()

        assert calls == []

    @pytest.mark.asyncio
    async def test_reports_expired_waiters_after_releasing_lock(self, state, clock):
        seen = []

        async def on_expired(expired) -> None:
            assert not state.lock.locked()
            seen.extend(p.connectionId for p in expired)

        state.queue.enqueue(make_profile("a", clock.now))
        clock.advance(301)

        await LivenessSweeper(state, on_waiting_expired=on_expired).run_once()

        assert seen == ["a"]
