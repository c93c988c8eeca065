"""Pairs a requesting user with the head of the waiting queue."""
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from .rooms import RoomStore, generate_room_id
from .schemas import ChatRoom, UserProfile
from .waiting_queue import WaitingQueue

logger = logging.getLogger(__name__)


@dataclass
class MatchResult:
    """Outcome of :meth:`Matchmaker.find_or_queue`.

    ``room`` and ``partner`` are set only when the request was paired.
    """
    profile: UserProfile
    room: Optional[ChatRoom] = None
    partner: Optional[UserProfile] = None

    @property
    def paired(self) -> bool:
        return self.room is not None

    @property
    def queued(self) -> bool:
        return self.room is None


class Matchmaker:
    """Strict FIFO matchmaking.

    The caller must not pass a profile whose connection is already waiting
    or already in a room; those requests are filtered at the handler level.

    Args:
        queue: The shared waiting queue.
        rooms: The shared room store.
        is_live: Reports whether a connection id still has an open socket.
        room_id_factory: Produces new room ids.
    """

    def __init__(
        self,
        queue: WaitingQueue,
        rooms: RoomStore,
        is_live: Callable[[str], bool],
        room_id_factory: Callable[[], str] = generate_room_id,
    ) -> None:
        self._queue = queue
        self._rooms = rooms
        self._is_live = is_live
        self._room_id_factory = room_id_factory

    def find_or_queue(self, profile: UserProfile) -> MatchResult:
        partner = self._queue.dequeue_head()
        if partner is None:
            self._queue.enqueue(profile)
            logger.info(
                "[Matchmaker] %s (%s) added to waiting list",
                profile.username, profile.location,
            )
            return MatchResult(profile=profile)

        if not self._is_live(partner.connectionId):
            # Stale head the sweeper has not reached yet: drop it and wait.
            self._queue.enqueue(profile)
            logger.info(
                "[Matchmaker] %s added to waiting list (partner %s disconnected)",
                profile.username, partner.connectionId,
            )
            return MatchResult(profile=profile)

        room = self._rooms.create(self._room_id_factory(), profile, partner)
        logger.info(
            "[Matchmaker] Match #%d: %s (%s) <-> %s (%s) in room %s",
            self._rooms.total_created,
            profile.username, profile.location,
            partner.username, partner.location,
            room.roomId,
        )
        return MatchResult(profile=profile, room=room, partner=partner)
