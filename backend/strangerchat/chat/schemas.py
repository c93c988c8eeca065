"""Data models for stranger matching and chat relay.

Field names follow the camelCase wire format the browser client speaks, so
every model can be sent with ``model_dump()`` unchanged.
"""
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Event names
# =============================================================================


class InboundEvent(str, Enum):
    """Event types a client may send over the socket."""
    FIND_STRANGER = "find-stranger"
    SEND_MESSAGE = "send-message"
    TYPING = "typing"
    END_CHAT = "end-chat"


class OutboundEvent(str, Enum):
    """Event types the server emits."""
    STATS_UPDATE = "stats-update"
    WAITING_FOR_STRANGER = "waiting-for-stranger"
    STRANGER_FOUND = "stranger-found"
    NEW_MESSAGE = "new-message"
    USER_TYPING = "user-typing"
    CHAT_ENDED = "chat-ended"
    PARTNER_DISCONNECTED = "partner-disconnected"
    ERROR = "error"


# =============================================================================
# Core entities
# =============================================================================


class PartnerSummary(BaseModel):
    """What one side of a pairing learns about the other.

    The connection id is deliberately absent.
    """
    username: str
    location: str
    interests: List[str] = Field(default_factory=list)


class UserProfile(BaseModel):
    """Ephemeral profile of a connection that asked to be matched.

    Attributes:
        connectionId: Server-assigned id of the owning connection.
        username: Display name (defaulted when the client sent none).
        location: Free-text location label.
        interests: Ordered free-text tags, shown to the partner only.
        joinTime: Unix timestamp of the find-stranger request.
    """
    model_config = ConfigDict(frozen=True)

    connectionId: str
    username: str
    location: str
    interests: List[str] = Field(default_factory=list)
    joinTime: float

    def summary(self) -> PartnerSummary:
        return PartnerSummary(
            username=self.username,
            location=self.location,
            interests=list(self.interests),
        )


class ChatMessage(BaseModel):
    """A relayed chat message, immutable once stored.

    Attributes:
        id: Process-wide increasing message number.
        username: Author display name.
        message: Trimmed, length-capped body.
        timestamp: Server receive time (seconds since epoch).
        senderId: Connection id of the author.
    """
    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    message: str
    timestamp: float
    senderId: str


class ChatRoom(BaseModel):
    """An active two-party chat session and its bounded history."""
    roomId: str
    members: List[UserProfile]
    messages: List[ChatMessage] = Field(default_factory=list)
    createdAt: float

    def member_ids(self) -> List[str]:
        return [m.connectionId for m in self.members]

    def has_member(self, connection_id: str) -> bool:
        return any(m.connectionId == connection_id for m in self.members)

    def get_member(self, connection_id: str) -> Optional[UserProfile]:
        for member in self.members:
            if member.connectionId == connection_id:
                return member
        return None

    def append_message(self, message: ChatMessage, capacity: int) -> List[ChatMessage]:
        """Append *message*, evicting the oldest ones beyond *capacity*.

        Returns:
            The evicted messages (empty when nothing was dropped).
        """
        self.messages.append(message)
        overflow = len(self.messages) - capacity
        if overflow <= 0:
            return []
        evicted = self.messages[:overflow]
        del self.messages[:overflow]
        return evicted


class StatsSnapshot(BaseModel):
    """Aggregate counters read by stats broadcasts and the HTTP endpoints."""
    onlineUsers: int
    activeChats: int
    waitingUsers: int
    totalChatsCreated: int

    def as_update(self) -> dict:
        """Payload of the ``stats-update`` event."""
        return {
            "type": OutboundEvent.STATS_UPDATE.value,
            "onlineUsers": self.onlineUsers,
            "activeChats": self.activeChats,
        }


# =============================================================================
# Inbound payloads
# =============================================================================


class FindStrangerPayload(BaseModel):
    username: Optional[str] = None
    location: Optional[str] = None
    interests: Optional[List[str]] = None


class SendMessagePayload(BaseModel):
    roomId: str
    message: str = ""
    # Accepted for client compatibility; the server clock stamps messages.
    timestamp: Optional[Union[str, float]] = None


class TypingPayload(BaseModel):
    roomId: str
    isTyping: bool = False


class EndChatPayload(BaseModel):
    roomId: str
