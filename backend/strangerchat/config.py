"""Stranger Chat application configuration.

Loads settings from a YAML file:
  * strangerchat.settings.yaml: non-secret configuration

The path can be overridden with the ``STRANGERCHAT_SETTINGS`` environment
variable. A missing file is not an error: every field has a default.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILE = Path("strangerchat.settings.yaml")
SETTINGS_ENV_VAR = "STRANGERCHAT_SETTINGS"


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class ServerSettings(BaseModel):
    host:            str       = "0.0.0.0"
    port:            int       = 3001
    environment:     str       = "development"
    allowed_origins: List[str] = Field(default_factory=lambda: [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://localhost:4173",
    ])

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def cors_origins(self) -> List[str]:
        """Origins passed to the CORS middleware ("*" outside production)."""
        return self.allowed_origins if self.is_production else ["*"]


class LoggingSettings(BaseModel):
    level: str = "info"


class MatchingSettings(BaseModel):
    """Time limits and size caps for the waiting queue and chat rooms."""
    queue_stale_seconds:        float = Field(default=300, gt=0)
    room_max_age_seconds:       float = Field(default=3600, gt=0)
    sweep_interval_seconds:     float = Field(default=30, gt=0)
    stats_log_interval_seconds: float = Field(default=300, gt=0)
    max_messages_per_room:      int   = Field(default=100, ge=1)
    max_message_length:         int   = Field(default=500, ge=1)


class AppConfig(BaseModel):
    server:   ServerSettings   = Field(default_factory=ServerSettings)
    logging:  LoggingSettings  = Field(default_factory=LoggingSettings)
    matching: MatchingSettings = Field(default_factory=MatchingSettings)

    @field_validator("server", "logging", "matching", mode="before")
    @classmethod
    def _none_means_defaults(cls, value: Any) -> Any:
        # An empty YAML section ("matching:") parses as None.
        return {} if value is None else value


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def load_config(settings_path: Optional[Path] = None) -> AppConfig:
    """Load settings into a fresh *AppConfig* object.

    Args:
        settings_path: Explicit YAML path. Falls back to the
            ``STRANGERCHAT_SETTINGS`` environment variable, then to
            ``strangerchat.settings.yaml`` in the working directory.
    """
    if settings_path is None:
        settings_path = Path(os.environ.get(SETTINGS_ENV_VAR, SETTINGS_FILE))

    settings_data = _load_yaml(Path(settings_path))
    config = AppConfig(**settings_data)
    logger.info(
        "Settings loaded (server=%s:%s, environment=%s, sweep_interval=%ss)",
        config.server.host,
        config.server.port,
        config.server.environment,
        config.matching.sweep_interval_seconds,
    )
    return config


_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Return the process-wide configuration, loading it on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Forget the cached configuration (used by tests)."""
    global _config
    _config = None
