"""Health and statistics endpoints."""

from .router import router

__all__ = ["router"]
