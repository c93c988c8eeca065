"""Stranger matching, chat rooms and message relay."""

from .router import router
from .service import ChatService, get_chat_service, set_chat_service

__all__ = [
    "ChatService",
    "get_chat_service",
    "router",
    "set_chat_service",
]
