"""Shared test fixtures and configuration for backend tests."""
import random

import pytest
from fastapi.testclient import TestClient

from strangerchat.chat.service import ChatService, set_chat_service
from strangerchat.main import app

from fakes import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(autouse=True)
def chat_service():
    """Install a fresh, deterministic ChatService for every test."""
    service = ChatService.create(rng=random.Random(7))
    set_chat_service(service)
    yield service
    set_chat_service(ChatService.create(rng=random.Random(7)))


@pytest.fixture
def client(chat_service):
    """TestClient sharing one event loop across all WebSocket sessions.

    Entering the client runs the app lifespan and keeps every socket on the
    same loop as the shared state lock.
    """
    with TestClient(app) as test_client:
        yield test_client
