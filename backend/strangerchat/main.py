"""Stranger Chat Backend Application.

This is the main entry point for the Stranger Chat backend service. It pairs
anonymous visitors into two-party chat rooms and relays their messages and
typing indicators over WebSockets.

Modules:
    - chat: Waiting queue, matchmaking, room store, relay and liveness sweeper
    - stats: Health and statistics polling endpoints
"""
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from strangerchat import __version__
from strangerchat.chat.router import router as chat_router
from strangerchat.chat.service import get_chat_service
from strangerchat.config import get_config
from strangerchat.stats.router import router as stats_router
from strangerchat.tasks import PeriodicTask

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# uvicorn.access logs every stats poll; not useful when debugging matching.
for _noisy in ("uvicorn.access", "websockets", "websockets.protocol"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    config = get_config()

    configured_level = getattr(logging, config.logging.level.upper(), None)
    if configured_level is not None:
        logging.getLogger().setLevel(configured_level)
        logger.info("Root logger level set to %s", config.logging.level.upper())

    service = get_chat_service()
    matching = config.matching
    tasks = [
        PeriodicTask("liveness-sweeper", matching.sweep_interval_seconds, service.sweep),
        PeriodicTask("stats-logger", matching.stats_log_interval_seconds, service.log_stats),
    ]
    for task in tasks:
        task.start()

    logger.info(
        f"Stranger Chat server ready on http://{config.server.host}:{config.server.port} "
        f"(environment={config.server.environment})"
    )

    yield  # Application runs here

    # Shutdown
    for task in tasks:
        await task.stop()
    logger.info("Application shutdown complete")


# Create FastAPI application with metadata
app = FastAPI(
    title="Stranger Chat API",
    description="Matchmaking and relay server for anonymous two-party chat",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_config().server.cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

# Register all routers
app.include_router(chat_router)
app.include_router(stats_router)


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    config = get_config()
    uvicorn.run(
        "strangerchat.main:app",
        host=config.server.host,
        port=config.server.port,
        log_level=config.logging.level.lower(),
    )
