"""FIFO queue of users waiting for a chat partner.

Order of arrival is the only fairness rule. Interests travel with the
profile but are never used to rank or filter candidates.
"""
import time
from collections import OrderedDict
from typing import Callable, List, Optional

from .schemas import UserProfile

# Waiting entries older than this are dropped by the sweeper.
DEFAULT_STALE_SECONDS = 300.0


class WaitingQueue:
    """Ordered waiting list keyed by connection id.

    A connection id appears at most once; enqueueing it twice is a
    programming error and raises ``ValueError``.

    Args:
        stale_after: Age in seconds after which an entry is considered stale.
        clock: Returns the current Unix time.
    """

    def __init__(
        self,
        stale_after: float = DEFAULT_STALE_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._entries: "OrderedDict[str, UserProfile]" = OrderedDict()
        self._stale_after = stale_after
        self._clock = clock

    def enqueue(self, profile: UserProfile) -> None:
        if profile.connectionId in self._entries:
            raise ValueError(f"Connection {profile.connectionId} is already waiting")
        self._entries[profile.connectionId] = profile

    def dequeue_head(self) -> Optional[UserProfile]:
        if not self._entries:
            return None
        _, profile = self._entries.popitem(last=False)
        return profile

    def remove(self, connection_id: str) -> Optional[UserProfile]:
        return self._entries.pop(connection_id, None)

    def size(self) -> int:
        return len(self._entries)

    def profiles(self) -> List[UserProfile]:
        """Snapshot of waiting profiles, head first."""
        return list(self._entries.values())

    def is_stale(self, profile: UserProfile, now: Optional[float] = None) -> bool:
        now = self._clock() if now is None else now
        return now - profile.joinTime >= self._stale_after

    def filter_live(self, is_live: Callable[[str], bool]) -> List[UserProfile]:
        """Drop entries whose connection is gone or whose wait has gone stale.

        Returns:
            The removed profiles, in queue order.
        """
        now = self._clock()
        removed = [
            profile for profile in self._entries.values()
            if not is_live(profile.connectionId) or self.is_stale(profile, now)
        ]
        for profile in removed:
            del self._entries[profile.connectionId]
        return removed

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
