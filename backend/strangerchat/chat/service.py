"""Connection lifecycle handlers for stranger chat.

Each handler runs its state mutation while holding the shared lock, then
delivers the resulting events after releasing it, so a slow socket never
stalls other connections.

Per-connection states:
    unregistered -> waiting -> paired -> (ended | partner lost) -> unregistered

A module-level singleton is used by the WebSocket router and the stats
endpoints; the tests replace it with ``set_chat_service``.
"""
import logging
import random
import time
from typing import Callable, List, Optional

from fastapi import WebSocket

from strangerchat.config import MatchingSettings, get_config

from .hub import ConnectionHub
from .profiles import ProfileFactory
from .rooms import generate_room_id
from .schemas import (
    EndChatPayload,
    FindStrangerPayload,
    OutboundEvent,
    SendMessagePayload,
    StatsSnapshot,
    TypingPayload,
    UserProfile,
)
from .state import MatchState
from .sweeper import ClosedRoom, LivenessSweeper, SweepReport

logger = logging.getLogger(__name__)

SEARCH_TIMED_OUT = "Search timed out"

# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_service: Optional["ChatService"] = None


def get_chat_service() -> "ChatService":
    """Return the global ChatService, creating a default one on first use."""
    global _service
    if _service is None:
        _service = ChatService.create(settings=get_config().matching)
    return _service


def set_chat_service(service: "ChatService") -> None:
    """Set (or replace) the global ChatService instance."""
    global _service
    _service = service


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class ChatService:
    """Glues the connection hub to the shared match state.

    Args:
        hub: Transport-side socket and channel tracker.
        state: Shared match state (its ``is_live`` should be ``hub.is_live``).
        profiles: Factory used to build profiles for find-stranger requests.
    """

    def __init__(
        self,
        hub: ConnectionHub,
        state: MatchState,
        profiles: ProfileFactory,
    ) -> None:
        self.hub = hub
        self.state = state
        self.profiles = profiles
        self.sweeper = LivenessSweeper(
            state,
            on_rooms_closed=self._on_rooms_closed,
            on_waiting_expired=self._on_waiting_expired,
        )
        self.started_at = time.time()

    @classmethod
    def create(
        cls,
        settings: Optional[MatchingSettings] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
        room_id_factory: Callable[[], str] = generate_room_id,
    ) -> "ChatService":
        hub = ConnectionHub()
        state = MatchState(
            hub.is_live,
            settings=settings,
            clock=clock,
            room_id_factory=room_id_factory,
        )
        return cls(hub, state, ProfileFactory(rng=rng, clock=clock))

    # -----------------------------------------------------------------------
    # Stats
    # -----------------------------------------------------------------------

    def stats(self) -> StatsSnapshot:
        return self.state.stats()

    def uptime(self) -> float:
        return time.time() - self.started_at

    async def broadcast_stats(self, stats: Optional[StatsSnapshot] = None) -> None:
        stats = stats or self.stats()
        await self.hub.broadcast_all(stats.as_update())

    def log_stats(self) -> None:
        stats = self.stats()
        logger.info(
            "Stats - Connected: %d, Waiting: %d, Active Chats: %d, Total Chats Created: %d",
            stats.onlineUsers,
            stats.waitingUsers,
            stats.activeChats,
            stats.totalChatsCreated,
        )

    async def send_error(self, connection_id: str, message: str) -> None:
        await self.hub.send(connection_id, {
            "type": OutboundEvent.ERROR.value,
            "message": message,
        })

    # -----------------------------------------------------------------------
    # Lifecycle handlers
    # -----------------------------------------------------------------------

    async def on_connect(self, websocket: WebSocket) -> str:
        connection_id = await self.hub.connect(websocket)
        async with self.state.lock:
            online = self.state.connection_opened()
            stats = self.state.stats()
        logger.info(f"[Chat] User connected: {connection_id} (Total: {online})")
        await self.hub.send(connection_id, stats.as_update())
        return connection_id

    async def find_stranger(self, connection_id: str, payload: FindStrangerPayload) -> None:
        state = self.state
        result = None
        already_waiting = False
        async with state.lock:
            if connection_id in state.queue:
                already_waiting = True
            elif state.rooms.room_of(connection_id) is None:
                profile = self.profiles.create(
                    connection_id,
                    username=payload.username,
                    location=payload.location,
                    interests=payload.interests,
                )
                state.registry.register(connection_id, profile)
                result = state.matchmaker.find_or_queue(profile)
                if result.paired:
                    self.hub.join(result.room.roomId, connection_id)
                    self.hub.join(result.room.roomId, result.partner.connectionId)
            stats = state.stats()

        if result is None and not already_waiting:
            logger.warning(f"[Chat] find-stranger from {connection_id} while already chatting")
            await self.send_error(connection_id, "Already in a chat")
            return

        if already_waiting or result.queued:
            await self.hub.send(connection_id, {
                "type": OutboundEvent.WAITING_FOR_STRANGER.value,
            })
        else:
            room_id = result.room.roomId
            await self.hub.send(connection_id, {
                "type": OutboundEvent.STRANGER_FOUND.value,
                "roomId": room_id,
                "partner": result.partner.summary().model_dump(),
            })
            await self.hub.send(result.partner.connectionId, {
                "type": OutboundEvent.STRANGER_FOUND.value,
                "roomId": room_id,
                "partner": result.profile.summary().model_dump(),
            })

        await self.broadcast_stats(stats)

    async def send_message(self, connection_id: str, payload: SendMessagePayload) -> None:
        async with self.state.lock:
            message = self.state.relay.post_message(
                payload.roomId, connection_id, payload.message
            )
            recipients = self.hub.channel_members(payload.roomId) if message else []

        if message is None:
            await self.send_error(connection_id, "Message could not be delivered")
            return

        await self.hub.send_many(recipients, {
            "type": OutboundEvent.NEW_MESSAGE.value,
            **message.model_dump(),
        })

    async def typing(self, connection_id: str, payload: TypingPayload) -> None:
        async with self.state.lock:
            notice = self.state.relay.set_typing(
                payload.roomId, connection_id, payload.isTyping
            )
        if notice is None:
            return
        await self.hub.send_many(notice.recipients, {
            "type": OutboundEvent.USER_TYPING.value,
            "username": notice.username,
            "isTyping": notice.is_typing,
        })

    async def end_chat(self, connection_id: str, payload: EndChatPayload) -> None:
        room_id = payload.roomId
        recipients: List[str] = []
        async with self.state.lock:
            room = self.state.rooms.get(room_id)
            if room is None or not room.has_member(connection_id):
                members = None
            else:
                members = self.state.relay.end_chat(room_id)
                recipients = self.hub.discard_channel(room_id)
            stats = self.state.stats()

        if members is None:
            logger.debug(f"[Chat] Ignoring end-chat for {room_id} from {connection_id}")
            return

        logger.info(f"[Chat] Chat ended in room {room_id} by {connection_id}")
        await self.hub.send_many(recipients, {"type": OutboundEvent.CHAT_ENDED.value})
        await self.broadcast_stats(stats)

    async def on_disconnect(self, connection_id: str, reason: object = None) -> None:
        partners: List[str] = []
        async with self.state.lock:
            online = self.state.connection_closed()
            departure = self.state.remove_connection(connection_id)
            if departure.room is not None:
                members = self.hub.discard_channel(departure.room.roomId)
                partners = [cid for cid in members if cid != connection_id]
            self.hub.disconnect(connection_id)
            stats = self.state.stats()

        logger.info(
            f"[Chat] User disconnected: {connection_id} (Reason: {reason}) (Total: {online})"
        )
        await self.hub.send_many(partners, {
            "type": OutboundEvent.PARTNER_DISCONNECTED.value,
        })
        await self.broadcast_stats(stats)

    # -----------------------------------------------------------------------
    # Sweeping
    # -----------------------------------------------------------------------

    async def sweep(self) -> SweepReport:
        return await self.sweeper.run_once()

    async def _on_rooms_closed(self, closed: List[ClosedRoom]) -> None:
        survivors: List[str] = []
        for entry in closed:
            self.hub.discard_channel(entry.room.roomId)
            survivors.extend(m.connectionId for m in entry.survivors)
            if entry.survivors:
                logger.info(
                    f"[Chat] Room {entry.room.roomId} reclaimed "
                    f"({'expired' if entry.expired else 'inactive'}); notifying survivors"
                )
        await self.hub.send_many(survivors, {
            "type": OutboundEvent.PARTNER_DISCONNECTED.value,
        })
        await self.broadcast_stats()

    async def _on_waiting_expired(self, expired: List[UserProfile]) -> None:
        # A live waiter was removed for outstaying the queue limit.
        timed_out = [p.connectionId for p in expired if self.hub.is_live(p.connectionId)]
        if not timed_out:
            return
        logger.info(f"[Chat] Search timed out for {len(timed_out)} waiting user(s)")
        await self.hub.send_many(timed_out, {
            "type": OutboundEvent.ERROR.value,
            "message": SEARCH_TIMED_OUT,
        })
