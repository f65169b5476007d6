"""Tests for the WebSocket gateway."""
import asyncio

import pytest

from core import topics
from core.event_hub import event_hub
from routers.websocket import enqueue, get_connection_count


SALES = {"category": "Sales", "label": "Hourly Revenue", "value": 12000.0, "unit": "$"}


def test_connect_acknowledges_default_topic(client):
    with client.websocket_connect("/api/ws") as ws:
        assert ws.receive_json() == {"topic": "subscribed", "payload": ["datapoints"]}
        assert get_connection_count() == 1
        assert topics.DATAPOINTS in event_hub.topics()


def test_receives_saved_point(client):
    with client.websocket_connect("/api/ws?topics=datapoints/Sales") as ws:
        assert ws.receive_json()["payload"] == ["datapoints/Sales"]

        created = client.post("/api/datapoints", json=SALES).json()

        message = ws.receive_json()
        assert message["topic"] == "datapoints/Sales"
        assert message["payload"]["id"] == created["id"]
        assert message["payload"]["label"] == "Hourly Revenue"


def test_subscribe_and_ping(client):
    with client.websocket_connect("/api/ws?topics=datapoints") as ws:
        ws.receive_json()

        ws.send_json({"action": "subscribe", "topic": topics.NOTIFICATIONS})
        assert ws.receive_json() == {"topic": "subscribed", "payload": ["datapoints", "notifications"]}

        ws.send_json({"action": "ping"})
        pong = ws.receive_json()
        assert pong["topic"] == topics.PONG
        assert pong["payload"].startswith("pong: ")

        ws.send_json({"action": "unsubscribe", "topic": topics.DATAPOINTS})
        assert ws.receive_json() == {"topic": "subscribed", "payload": ["notifications"]}

        assert client.post("/api/system/notifications", json={"message": "Deploy at 18:00"}).status_code == 204
        assert ws.receive_json() == {"topic": topics.NOTIFICATIONS, "payload": "Deploy at 18:00"}


def test_invalid_json_is_ignored(client):
    with client.websocket_connect("/api/ws") as ws:
        ws.receive_json()
        ws.send_text("not json")
        ws.send_json({"action": "ping"})
        assert ws.receive_json()["topic"] == topics.PONG


@pytest.mark.asyncio
async def test_full_outbox_drops_instead_of_growing():
    outbox = asyncio.Queue(maxsize=3)

    accepted = [enqueue(outbox, topics.DATAPOINTS, i) for i in range(10)]

    assert accepted == [True] * 3 + [False] * 7
    assert outbox.qsize() == 3
    assert [outbox.get_nowait() for _ in range(3)] == [(topics.DATAPOINTS, i) for i in range(3)]
    assert enqueue(outbox, topics.DATAPOINTS, 99) is True