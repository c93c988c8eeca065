"""WebSocket endpoint for stranger matching and chat.

This module provides:
    - WebSocket /ws: Matchmaking, chat relay and presence events

Every frame in either direction is a JSON object whose ``type`` field names
the event; the remaining fields are its payload.

Inbound Event Types:
    - find-stranger: {username?, location?, interests?}
    - send-message: {roomId, message, timestamp?}
    - typing: {roomId, isTyping}
    - end-chat: {roomId}

Outbound Event Types:
    - stats-update, waiting-for-stranger, stranger-found, new-message,
      user-typing, chat-ended, partner-disconnected, error
"""
import json
import logging
from typing import Awaitable, Callable, Dict, Tuple, Type

from fastapi import APIRouter, WebSocket
from pydantic import BaseModel, ValidationError

from .schemas import (
    EndChatPayload,
    FindStrangerPayload,
    InboundEvent,
    SendMessagePayload,
    TypingPayload,
)
from .service import ChatService, get_chat_service

logger = logging.getLogger(__name__)

router = APIRouter()

INVALID_FORMAT = "Invalid message format"


def _handlers(
    service: ChatService,
) -> Dict[str, Tuple[Type[BaseModel], Callable[[str, BaseModel], Awaitable[None]], str]]:
    """event type -> (payload model, handler, error text on failure)"""
    return {
        InboundEvent.FIND_STRANGER.value: (
            FindStrangerPayload, service.find_stranger, "Failed to find stranger",
        ),
        InboundEvent.SEND_MESSAGE.value: (
            SendMessagePayload, service.send_message, "Failed to send message",
        ),
        InboundEvent.TYPING.value: (
            TypingPayload, service.typing, "Failed to send typing status",
        ),
        InboundEvent.END_CHAT.value: (
            EndChatPayload, service.end_chat, "Failed to end chat",
        ),
    }


@router.websocket("/ws")
async def websocket_chat_endpoint(websocket: WebSocket) -> None:
    """WebSocket endpoint driving one client connection.

    Protocol Flow:
        1. Client connects -> Server sends: {type: "stats-update", ...}
        2. Client sends: {type: "find-stranger", username?, location?, interests?}
           -> Server sends: {type: "waiting-for-stranger"} or
              {type: "stranger-found", roomId, partner} to both sides
        3. Client sends: {type: "send-message", roomId, message}
           -> Server broadcasts: {type: "new-message", id, username, message,
              timestamp, senderId} to both members
        4. Client sends: {type: "typing", roomId, isTyping}
           -> Partner receives: {type: "user-typing", username, isTyping}
        5. Client sends: {type: "end-chat", roomId}
           -> Both members receive: {type: "chat-ended"}
        6. On disconnect -> Partner receives: {type: "partner-disconnected"}

    Malformed frames get an ``error`` event; an unexpected failure inside a
    handler is logged and reported to this client only.
    """
    service = get_chat_service()
    connection_id = await service.on_connect(websocket)
    handlers = _handlers(service)
    reason: object = None

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                reason = message.get("code")
                break

            raw = message.get("text")
            if raw is None:
                # Binary frames are not part of the protocol.
                await service.send_error(connection_id, INVALID_FORMAT)
                continue
            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                await service.send_error(connection_id, INVALID_FORMAT)
                continue

            event_type = data.get("type") if isinstance(data, dict) else None
            logger.debug("[WS] %s received: type=%s", connection_id, event_type)

            handler = handlers.get(event_type) if isinstance(event_type, str) else None
            if handler is None:
                await service.send_error(connection_id, INVALID_FORMAT)
                continue
            model, handle, failure_text = handler

            try:
                payload = model.model_validate(
                    {k: v for k, v in data.items() if k != "type"}
                )
            except ValidationError:
                await service.send_error(connection_id, INVALID_FORMAT)
                continue

            try:
                await handle(connection_id, payload)
            except Exception:
                logger.exception(f"[WS] Error in {event_type} for {connection_id}")
                await service.send_error(connection_id, failure_text)

    finally:
        try:
            await service.on_disconnect(connection_id, reason)
        except Exception:
            logger.exception(f"[WS] Error in disconnect handler for {connection_id}")
