"""Room store: active two-party chat rooms keyed by room id.

Keeps a reverse index from connection id to room id so that a connection can
be found in at most one room and looked up in O(1) on disconnect.
"""
import secrets
import time
from typing import Callable, Dict, List, Optional

from .schemas import ChatRoom, UserProfile

# Rooms older than this are reclaimed by the sweeper.
DEFAULT_MAX_AGE_SECONDS = 3600.0


def generate_room_id() -> str:
    """Unguessable, URL-safe room identifier (~128 bits)."""
    return secrets.token_urlsafe(16)


class RoomStore:
    """Owns every active :class:`ChatRoom`.

    Args:
        max_age: Age in seconds after which a room is considered stale.
        clock: Returns the current Unix time.
    """

    def __init__(
        self,
        max_age: float = DEFAULT_MAX_AGE_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._rooms: Dict[str, ChatRoom] = {}
        self._room_by_connection: Dict[str, str] = {}
        self._max_age = max_age
        self._clock = clock
        self.total_created = 0

    def create(self, room_id: str, first: UserProfile, second: UserProfile) -> ChatRoom:
        """Create a room for two distinct connections not already chatting.

        Raises:
            ValueError: If the ids collide, a member is already in a room, or
                both profiles belong to the same connection.
        """
        if room_id in self._rooms:
            raise ValueError(f"Room {room_id} already exists")
        if first.connectionId == second.connectionId:
            raise ValueError("A room needs two distinct connections")
        for member in (first, second):
            if member.connectionId in self._room_by_connection:
                raise ValueError(
                    f"Connection {member.connectionId} is already in room "
                    f"{self._room_by_connection[member.connectionId]}"
                )

        room = ChatRoom(roomId=room_id, members=[first, second], createdAt=self._clock())
        self._rooms[room_id] = room
        for member in room.members:
            self._room_by_connection[member.connectionId] = room_id
        self.total_created += 1
        return room

    def get(self, room_id: str) -> Optional[ChatRoom]:
        return self._rooms.get(room_id)

    def room_of(self, connection_id: str) -> Optional[ChatRoom]:
        room_id = self._room_by_connection.get(connection_id)
        return self._rooms.get(room_id) if room_id else None

    def delete(self, room_id: str) -> Optional[ChatRoom]:
        """Remove a room. Deleting an unknown room is a no-op returning None."""
        room = self._rooms.pop(room_id, None)
        if room is None:
            return None
        for connection_id in room.member_ids():
            if self._room_by_connection.get(connection_id) == room_id:
                del self._room_by_connection[connection_id]
        return room

    def is_expired(self, room: ChatRoom, now: Optional[float] = None) -> bool:
        now = self._clock() if now is None else now
        return now - room.createdAt > self._max_age

    def rooms(self) -> List[ChatRoom]:
        """Snapshot of active rooms (safe to delete while iterating)."""
        return list(self._rooms.values())

    def __contains__(self, room_id: object) -> bool:
        return room_id in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)
