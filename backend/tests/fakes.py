"""Test doubles shared across the backend tests."""
import asyncio
from typing import List, Optional

from fastapi.websockets import WebSocketState

from strangerchat.chat.schemas import UserProfile


class FakeClock:
    """Manually advanced replacement for ``time.time``."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeWebSocket:
    """Minimal stand-in for a Starlette WebSocket used by ConnectionHub."""

    def __init__(self) -> None:
        self.sent: List[dict] = []
        self.client_state = WebSocketState.CONNECTING
        self.application_state = WebSocketState.CONNECTING
        self.fail_sends = False

    async def accept(self) -> None:
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED

    async def send_json(self, data: dict) -> None:
        # Yield like a real socket write so concurrent handlers interleave.
        await asyncio.sleep(0)
        if self.fail_sends:
            raise RuntimeError("socket closed")
        self.sent.append(data)

    def drop(self) -> None:
        """Simulate the client going away without a clean close."""
        self.client_state = WebSocketState.DISCONNECTED

    def events(self, event_type: Optional[str] = None) -> List[dict]:
        return [e for e in self.sent if event_type is None or e["type"] == event_type]

    def types(self) -> List[str]:
        return [e["type"] for e in self.sent]

    def clear(self) -> None:
        self.sent.clear()


def make_profile(connection_id: str, join_time: float = 1_700_000_000.0, **overrides) -> UserProfile:
    fields = {
        "connectionId": connection_id,
        "username": f"user-{connection_id}",
        "location": "Chile",
        "interests": [],
        "joinTime": join_time,
    }
    fields.update(overrides)
    return UserProfile(**fields)
