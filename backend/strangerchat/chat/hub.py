"""WebSocket connection hub: socket bookkeeping, channels and delivery.

This module is the transport side of the chat server. It owns the live
sockets, hands out server-generated connection ids, groups connections into
named channels (one per chat room) and delivers JSON events.

Key features:
    - Connection ids are assigned here, never taken from the client
    - Concurrent delivery with asyncio.gather()
    - Sockets that fail a send are marked dead and leave every channel
    - Liveness is answered from the socket state, for the sweeper and
      matchmaker

Thread Safety:
    Designed for a single event loop. Channel membership is changed only
    by synchronous methods, so it is never observed half-updated.
"""
import asyncio
import logging
import uuid
from typing import Dict, Iterable, List, Optional, Set

from fastapi import WebSocket
from fastapi.websockets import WebSocketState

logger = logging.getLogger(__name__)


class ConnectionHub:
    """Tracks live sockets by connection id and delivers events to them."""

    def __init__(self) -> None:
        # connection_id -> WebSocket
        self.connections: Dict[str, WebSocket] = {}

        # channel -> connection ids currently joined
        self.channels: Dict[str, Set[str]] = {}

        # connection ids whose last send failed
        self._dead: Set[str] = set()

    async def connect(self, websocket: WebSocket) -> str:
        """Accept a socket and assign it a fresh connection id."""
        await websocket.accept()
        connection_id = uuid.uuid4().hex
        self.connections[connection_id] = websocket
        return connection_id

    def disconnect(self, connection_id: str) -> None:
        """Forget a socket and drop it from every channel."""
        self.connections.pop(connection_id, None)
        self._dead.discard(connection_id)
        for members in self.channels.values():
            members.discard(connection_id)

    def is_live(self, connection_id: str) -> bool:
        websocket = self.connections.get(connection_id)
        if websocket is None or connection_id in self._dead:
            return False
        return (
            websocket.client_state == WebSocketState.CONNECTED
            and websocket.application_state == WebSocketState.CONNECTED
        )

    def count(self) -> int:
        """Number of connections that have not failed a send."""
        return len(self.connections) - len(self._dead)

    # =========================================================================
    # Channels
    # =========================================================================

    def join(self, channel: str, connection_id: str) -> None:
        self.channels.setdefault(channel, set()).add(connection_id)

    def leave(self, channel: str, connection_id: str) -> None:
        members = self.channels.get(channel)
        if members is None:
            return
        members.discard(connection_id)
        if not members:
            del self.channels[channel]

    def discard_channel(self, channel: str) -> List[str]:
        """Remove a channel. Returns the connection ids that were in it."""
        return sorted(self.channels.pop(channel, set()))

    def channel_members(self, channel: str) -> List[str]:
        return sorted(self.channels.get(channel, set()))

    # =========================================================================
    # Delivery
    # =========================================================================

    async def send(self, connection_id: str, message: dict) -> bool:
        """Send to one connection. Returns False if it is unknown, dead or failed."""
        websocket = self.connections.get(connection_id)
        if websocket is None or connection_id in self._dead:
            return False
        ok = await self._safe_send(websocket, message)
        if not ok:
            self._mark_dead([connection_id])
        return ok

    async def send_many(self, connection_ids: Iterable[str], message: dict) -> None:
        """Send to several connections concurrently."""
        targets = [
            (cid, self.connections[cid])
            for cid in connection_ids
            if cid in self.connections and cid not in self._dead
        ]
        if not targets:
            return

        results = await asyncio.gather(
            *[self._safe_send(ws, message) for _, ws in targets],
            return_exceptions=True
        )

        failed = [
            cid for (cid, _), success in zip(targets, results)
            if success is not True
        ]
        self._mark_dead(failed)

    async def broadcast(self, channel: str, message: dict) -> None:
        await self.send_many(self.channel_members(channel), message)

    async def broadcast_except(
        self, channel: str, message: dict, exclude_id: Optional[str]
    ) -> None:
        """Broadcast to a channel, skipping one connection (e.g. the typist)."""
        await self.send_many(
            [cid for cid in self.channel_members(channel) if cid != exclude_id],
            message,
        )

    async def broadcast_all(self, message: dict) -> None:
        await self.send_many(list(self.connections), message)

    async def _safe_send(self, connection: WebSocket, message: dict) -> bool:
        try:
            await connection.send_json(message)
            return True
        except Exception as e:
            logger.debug(f"Failed to send to connection: {e}")
            return False

    def _mark_dead(self, connection_ids: List[str]) -> None:
        for cid in connection_ids:
            self._dead.add(cid)
            for members in self.channels.values():
                members.discard(cid)
            logger.debug(f"Marked connection {cid} dead after failed send")
