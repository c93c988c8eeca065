"""Health and stats polling endpoints.

Endpoints:
    GET /health     - Liveness report with counters
    GET /stats      - Server counters
    GET /api/stats  - Counters shown by the web client
"""
from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel

from strangerchat.chat.service import get_chat_service
from strangerchat.config import get_config

router = APIRouter(tags=["stats"])


class HealthResponse(BaseModel):
    """Response model for the health check."""
    status: str = "healthy"
    timestamp: str
    connections: int
    waitingUsers: int
    activeChats: int
    totalChatsCreated: int
    uptime: float
    environment: str


class ServerStatsResponse(BaseModel):
    """Response model for server counters."""
    totalConnections: int
    waitingUsers: int
    activeChats: int
    totalChatsCreated: int
    uptime: float
    environment: str


class PublicStatsResponse(BaseModel):
    """Response model for the counters shown on the landing page."""
    onlineUsers: int
    activeChats: int
    totalChatsCreated: int


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Health check endpoint.

    Returns:
        HealthResponse with current counters and uptime in seconds.
    """
    service = get_chat_service()
    stats = service.stats()
    return HealthResponse(
        timestamp=datetime.now(timezone.utc).isoformat(),
        connections=stats.onlineUsers,
        waitingUsers=stats.waitingUsers,
        activeChats=stats.activeChats,
        totalChatsCreated=stats.totalChatsCreated,
        uptime=service.uptime(),
        environment=get_config().server.environment,
    )


@router.get("/stats", response_model=ServerStatsResponse)
async def server_stats() -> ServerStatsResponse:
    service = get_chat_service()
    stats = service.stats()
    return ServerStatsResponse(
        totalConnections=stats.onlineUsers,
        waitingUsers=stats.waitingUsers,
        activeChats=stats.activeChats,
        totalChatsCreated=stats.totalChatsCreated,
        uptime=service.uptime(),
        environment=get_config().server.environment,
    )


@router.get("/api/stats", response_model=PublicStatsResponse)
async def public_stats() -> PublicStatsResponse:
    stats = get_chat_service().stats()
    return PublicStatsResponse(
        onlineUsers=stats.onlineUsers,
        activeChats=stats.activeChats,
        totalChatsCreated=stats.totalChatsCreated,
    )
