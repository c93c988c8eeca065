"""Single container for all shared matching state.

Every handler and the sweeper must hold :attr:`MatchState.lock` while calling
into the registry, queue, room store, matchmaker or relay. None of those
operations await, so the lock is only held for short, bounded work.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from strangerchat.config import MatchingSettings

from .matchmaker import Matchmaker
from .registry import ConnectionRegistry
from .relay import Relay
from .rooms import RoomStore, generate_room_id
from .schemas import ChatRoom, StatsSnapshot, UserProfile
from .waiting_queue import WaitingQueue

logger = logging.getLogger(__name__)


@dataclass
class Departure:
    """What a disconnecting connection left behind."""
    connection_id: str
    profile: Optional[UserProfile] = None
    was_waiting: bool = False
    room: Optional[ChatRoom] = None


class MatchState:
    """Registry, waiting queue, rooms and counters behind one lock.

    Args:
        is_live: Reports whether a connection id still has an open socket.
        settings: Time limits and caps; defaults when omitted.
        clock: Returns the current Unix time.
        room_id_factory: Produces new room ids.
    """

    def __init__(
        self,
        is_live: Callable[[str], bool],
        settings: Optional[MatchingSettings] = None,
        clock: Callable[[], float] = time.time,
        room_id_factory: Callable[[], str] = generate_room_id,
    ) -> None:
        self.settings = settings or MatchingSettings()
        self.is_live = is_live
        self.clock = clock
        self.lock = asyncio.Lock()

        self.registry = ConnectionRegistry()
        self.queue = WaitingQueue(stale_after=self.settings.queue_stale_seconds, clock=clock)
        self.rooms = RoomStore(max_age=self.settings.room_max_age_seconds, clock=clock)
        self.matchmaker = Matchmaker(self.queue, self.rooms, is_live, room_id_factory)
        self.relay = Relay(
            self.rooms,
            self.registry,
            max_messages=self.settings.max_messages_per_room,
            max_message_length=self.settings.max_message_length,
            clock=clock,
        )
        self.online_users = 0

    @property
    def total_chats_created(self) -> int:
        return self.rooms.total_created

    def connection_opened(self) -> int:
        self.online_users += 1
        return self.online_users

    def connection_closed(self) -> int:
        self.online_users = max(0, self.online_users - 1)
        return self.online_users

    def remove_connection(self, connection_id: str) -> Departure:
        """Forget a connection: leave the queue, tear down its room, unregister."""
        departure = Departure(connection_id=connection_id)
        waiting = self.queue.remove(connection_id)
        if waiting is not None:
            departure.was_waiting = True
            logger.info("[State] Removed %s from waiting list", waiting.username)

        room = self.rooms.room_of(connection_id)
        if room is not None:
            departure.room = self.rooms.delete(room.roomId)
            logger.info("[State] Partner disconnected from room %s", room.roomId)

        departure.profile = self.registry.remove(connection_id)
        return departure

    def stats(self) -> StatsSnapshot:
        return StatsSnapshot(
            onlineUsers=self.online_users,
            activeChats=len(self.rooms),
            waitingUsers=len(self.queue),
            totalChatsCreated=self.total_chats_created,
        )
