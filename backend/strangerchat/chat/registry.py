"""Connection registry: connection id -> profile of a user who asked to chat."""
from typing import Dict, Optional

from .schemas import UserProfile


class ConnectionRegistry:
    """Idempotent map of live connection ids to their latest profile."""

    def __init__(self) -> None:
        self._profiles: Dict[str, UserProfile] = {}

    def register(self, connection_id: str, profile: UserProfile) -> None:
        self._profiles[connection_id] = profile

    def lookup(self, connection_id: str) -> Optional[UserProfile]:
        return self._profiles.get(connection_id)

    def remove(self, connection_id: str) -> Optional[UserProfile]:
        return self._profiles.pop(connection_id, None)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._profiles

    def __len__(self) -> int:
        return len(self._profiles)
