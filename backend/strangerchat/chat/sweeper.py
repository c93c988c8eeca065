"""Periodic reconciliation of queue and rooms against connection liveness.

Two passes run under the shared state lock:
    1. Waiting queue: drop entries whose socket is gone or that have waited
       longer than ``queue_stale_seconds``.
    2. Rooms: drop rooms with no live member left, or older than
       ``room_max_age_seconds``.

Liveness is only read, never changed. Removed waiters are reported through
``on_waiting_expired`` and reclaimed rooms through ``on_rooms_closed``, so
the users still connected can be told their search or chat is over.
"""
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional

from .schemas import ChatRoom, UserProfile
from .state import MatchState

logger = logging.getLogger(__name__)


@dataclass
class ClosedRoom:
    room: ChatRoom
    survivors: List[UserProfile] = field(default_factory=list)
    expired: bool = False


@dataclass
class SweepReport:
    expired_waiting: List[UserProfile] = field(default_factory=list)
    closed_rooms: List[ClosedRoom] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.expired_waiting and not self.closed_rooms


class LivenessSweeper:
    """Reclaims stale waiting entries and rooms.

    Args:
        state: Shared match state.
        on_rooms_closed: Awaited with the reclaimed rooms after the lock is
            released.
        on_waiting_expired: Awaited with the removed waiting profiles after
            the lock is released.
    """

    def __init__(
        self,
        state: MatchState,
        on_rooms_closed: Optional[Callable[[List[ClosedRoom]], Awaitable[None]]] = None,
        on_waiting_expired: Optional[Callable[[List[UserProfile]], Awaitable[None]]] = None,
    ) -> None:
        self._state = state
        self._on_rooms_closed = on_rooms_closed
        self._on_waiting_expired = on_waiting_expired

    def sweep(self) -> SweepReport:
        """Run both passes. The caller must hold ``state.lock``."""
        state = self._state
        report = SweepReport()

        report.expired_waiting = state.queue.filter_live(state.is_live)
        if report.expired_waiting:
            logger.info(
                "[Sweeper] Cleaned up %d inactive waiting users",
                len(report.expired_waiting),
            )

        now = state.clock()
        for room in state.rooms.rooms():
            survivors = [m for m in room.members if state.is_live(m.connectionId)]
            expired = state.rooms.is_expired(room, now)
            if survivors and not expired:
                continue
            state.rooms.delete(room.roomId)
            report.closed_rooms.append(
                ClosedRoom(room=room, survivors=survivors, expired=expired)
            )
        if report.closed_rooms:
            logger.info("[Sweeper] Cleaned up %d inactive chats", len(report.closed_rooms))

        return report

    async def run_once(self) -> SweepReport:
        async with self._state.lock:
            report = self.sweep()
        if report.closed_rooms and self._on_rooms_closed is not None:
            await self._on_rooms_closed(report.closed_rooms)
        if report.expired_waiting and self._on_waiting_expired is not None:
            await self._on_waiting_expired(report.expired_waiting)
        return report
