"""Pytest configuration and fixtures for test suite."""
import asyncio
import os
import tempfile
from pathlib import Path

# Must be set before main is imported: no background generator, throwaway database
os.environ.setdefault("GENERATOR_ENABLED", "false")
os.environ.setdefault("DATABASE_PATH", str(Path(tempfile.mkdtemp()) / "dashboard_test.db"))

import pytest
from fastapi.testclient import TestClient

from core.event_hub import EventHub, event_hub
from core.service_manager import service_manager
from core.services.data_point_service import DataPointService
from core.services.data_point_store import DataPointStore


class Recorder:
    """Sync event hub handler that remembers every (topic, message) it receives."""

    def __init__(self):
        self.messages = []

    def __call__(self, topic, message):
        self.messages.append((topic, message))

    def on(self, topic):
        return [message for t, message in self.messages if t == topic]


@pytest.fixture(autouse=True)
def reset_event_hub():
    """Each test starts with a global hub that has no subscribers and no loop."""
    event_hub.unsubscribe_all()
    event_hub.init(None)
    yield
    event_hub.unsubscribe_all()
    event_hub.init(None)


@pytest.fixture
def hub():
    return EventHub()


@pytest.fixture
def store(tmp_path):
    store = DataPointStore(tmp_path / "points.db")
    asyncio.run(store.init())
    return store


@pytest.fixture
def service(store, hub):
    return DataPointService(store, hub)


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def client(tmp_path):
    """API client backed by a fresh database and the global event hub."""
    from main import app

    service_manager.configure(tmp_path / "api.db")
    asyncio.run(service_manager.store.init())
    return TestClient(app)
