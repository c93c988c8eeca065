"""Builds user profiles from find-stranger requests, filling in defaults."""
import random
import time
from typing import Any, Callable, List, Optional

from .schemas import UserProfile

MAX_USERNAME_LENGTH = 50
MAX_INTERESTS = 10
MAX_INTEREST_LENGTH = 50

LOCATIONS = (
    "United States", "United Kingdom", "Canada", "Australia", "Germany",
    "France", "Japan", "Brazil", "India", "Mexico", "Italy", "Spain",
    "Netherlands", "Sweden", "Norway", "South Korea", "Singapore", "Russia",
    "Argentina", "Chile", "South Africa", "Egypt", "Turkey", "Poland",
    "Belgium", "Switzerland", "Austria", "Denmark", "Finland", "Ireland",
    "New Zealand", "Portugal", "Greece", "Czech Republic", "Hungary",
    "Thailand", "Malaysia", "Philippines", "Indonesia", "Vietnam",
    "Morocco", "Kenya", "Nigeria", "Ghana", "Israel", "UAE", "Saudi Arabia",
    "Colombia", "Peru", "Venezuela", "Ecuador", "Uruguay", "Paraguay",
)


def _clean_interests(raw: Optional[List[Any]]) -> List[str]:
    if not raw:
        return []
    cleaned = []
    for tag in raw:
        if not isinstance(tag, str):
            continue
        tag = tag.strip()[:MAX_INTEREST_LENGTH]
        if tag:
            cleaned.append(tag)
        if len(cleaned) == MAX_INTERESTS:
            break
    return cleaned


class ProfileFactory:
    """Creates :class:`UserProfile` objects with defaulted fields.

    Args:
        rng: Source of randomness for default names and locations. Pass a
            seeded ``random.Random`` for deterministic results.
        clock: Returns the current Unix time.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._rng = rng or random.Random()
        self._clock = clock

    def random_location(self) -> str:
        return self._rng.choice(LOCATIONS)

    def random_username(self) -> str:
        return f"User{self._rng.randrange(10000)}"

    def create(
        self,
        connection_id: str,
        username: Optional[str] = None,
        location: Optional[str] = None,
        interests: Optional[List[Any]] = None,
    ) -> UserProfile:
        username = (username or "").strip()[:MAX_USERNAME_LENGTH]
        location = (location or "").strip()
        return UserProfile(
            connectionId=connection_id,
            username=username or self.random_username(),
            location=location or self.random_location(),
            interests=_clean_interests(interests),
            joinTime=self._clock(),
        )
