"""Routes chat messages, typing indicators and end-chat requests to rooms.

The relay only mutates room state and returns what should be delivered;
actual socket delivery is done by the caller.
"""
import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .registry import ConnectionRegistry
from .rooms import RoomStore
from .schemas import ChatMessage, UserProfile

logger = logging.getLogger(__name__)

DEFAULT_MAX_MESSAGES = 100
DEFAULT_MAX_MESSAGE_LENGTH = 500


@dataclass
class TypingNotice:
    """A typing indicator to forward to everyone in the room but the sender."""
    username: str
    is_typing: bool
    recipients: List[str] = field(default_factory=list)


class Relay:
    """Message and presence relay for two-party rooms.

    Args:
        rooms: The shared room store.
        registry: Registry used to resolve author display names.
        max_messages: Per-room history capacity; oldest evicted first.
        max_message_length: Bodies are truncated to this many characters.
        clock: Returns the current Unix time.
    """

    def __init__(
        self,
        rooms: RoomStore,
        registry: ConnectionRegistry,
        max_messages: int = DEFAULT_MAX_MESSAGES,
        max_message_length: int = DEFAULT_MAX_MESSAGE_LENGTH,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._rooms = rooms
        self._registry = registry
        self._max_messages = max_messages
        self._max_message_length = max_message_length
        self._clock = clock
        self._message_ids = itertools.count(1)

    def post_message(
        self,
        room_id: str,
        sender_id: str,
        raw_body: object,
        timestamp: Optional[float] = None,
    ) -> Optional[ChatMessage]:
        """Store a message in a room.

        Args:
            room_id: Target room.
            sender_id: Connection id of the author.
            raw_body: Body as received from the client.
            timestamp: Receive time; defaults to the relay clock.

        Returns:
            The stored message, or None when the room is unknown, the sender
            is not a member, or the body is blank after trimming.
        """
        room = self._rooms.get(room_id)
        if room is None:
            logger.debug("[Relay] Dropping message for unknown room %s", room_id)
            return None
        author = room.get_member(sender_id)
        if author is None:
            logger.warning(
                "[Relay] Rejected message from non-member %s to room %s",
                sender_id, room_id,
            )
            return None
        if not isinstance(raw_body, str):
            return None
        body = raw_body.strip()
        if not body:
            return None
        body = body[:self._max_message_length]

        # Never earlier than room creation or the previous message.
        stamp = self._clock() if timestamp is None else timestamp
        floor = room.messages[-1].timestamp if room.messages else room.createdAt
        stamp = max(stamp, floor)

        registered = self._registry.lookup(sender_id)
        message = ChatMessage(
            id=next(self._message_ids),
            username=(registered or author).username,
            message=body,
            timestamp=stamp,
            senderId=sender_id,
        )
        room.append_message(message, self._max_messages)
        logger.info(
            "[Relay] Message in %s: %s: %s%s",
            room_id, message.username, body[:50], "..." if len(body) > 50 else "",
        )
        return message

    def set_typing(
        self, room_id: str, connection_id: str, is_typing: bool
    ) -> Optional[TypingNotice]:
        """Build a typing notice for the sender's partner; nothing is stored."""
        room = self._rooms.get(room_id)
        if room is None:
            return None
        sender = room.get_member(connection_id)
        if sender is None:
            return None
        return TypingNotice(
            username=sender.username,
            is_typing=bool(is_typing),
            recipients=[cid for cid in room.member_ids() if cid != connection_id],
        )

    def end_chat(self, room_id: str) -> Optional[List[UserProfile]]:
        """Delete a room. Returns its members, or None if it was already gone."""
        room = self._rooms.delete(room_id)
        if room is None:
            return None
        logger.info("[Relay] Chat ended in room %s", room_id)
        return list(room.members)
