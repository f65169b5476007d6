"""
WebSocket gateway onto the event hub.

A client connects to `/api/ws?topics=datapoints,datapoints/Sales` and receives
every message published on those topics as `{"topic": ..., "payload": ...}`.
It can change its subscriptions with `{"action": "subscribe"|"unsubscribe",
"topic": ...}` and send `{"action": "ping"}`, answered on `pong`.
"""
import asyncio
import json
import logging
import time
from typing import Any, Optional, Set

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder

from core import topics
from core.event_hub import event_hub

logger = logging.getLogger(__name__)

router = APIRouter(tags=["websocket"])

# Frames buffered per connection before new ones are dropped
OUTBOX_SIZE = 256

# Number of currently connected clients
active_connections: Set[WebSocket] = set()


def get_connection_count() -> int:
    return len(active_connections)


def enqueue(outbox: asyncio.Queue, topic: str, message: Any) -> bool:
    """Queue a frame for a connection, dropping it when the client is not keeping up."""
    try:
        outbox.put_nowait((topic, message))
        return True
    except asyncio.QueueFull:
        logger.warning(f"WebSocket outbox full, dropping message on {topic}")
        return False


def _parse_topics(raw: Optional[str]) -> list[str]:
    if not raw:
        return [topics.DATAPOINTS]
    return [t.strip() for t in raw.split(",") if t.strip()]


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    client_host = websocket.client.host if websocket.client else "Unknown"
    raw_topics = websocket.query_params.get("topics")
    await websocket.accept()

    loop = asyncio.get_running_loop()
    outbox: asyncio.Queue = asyncio.Queue(maxsize=OUTBOX_SIZE)
    subscribed: Set[str] = set()

    def forward(topic: str, message: Any):
        # May be called from any thread, hand over to this connection's loop
        loop.call_soon_threadsafe(enqueue, outbox, topic, message)

    def subscribe(topic: str):
        event_hub.subscribe(topic, forward)
        subscribed.add(topic)

    def unsubscribe(topic: str):
        event_hub.unsubscribe(topic, forward)
        subscribed.discard(topic)

    async def sender():
        while True:
            topic, message = await outbox.get()
            await websocket.send_json({"topic": topic, "payload": jsonable_encoder(message)})

    for topic in _parse_topics(raw_topics):
        subscribe(topic)
    active_connections.add(websocket)
    logger.info(f"WebSocket CONNECTED from {client_host} (topics: {sorted(subscribed)}, total: {get_connection_count()})")
    await websocket.send_json({"topic": "subscribed", "payload": sorted(subscribed)})

    sender_task = asyncio.create_task(sender())
    try:
        while True:
            data = await websocket.receive_text()
            try:
                command = json.loads(data)
            except json.JSONDecodeError:
                logger.warning(f"Invalid JSON from {client_host}: {data[:100]}")
                continue
            if not isinstance(command, dict):
                continue

            action = command.get("action")
            topic = command.get("topic")
            if action == "subscribe" and topic:
                subscribe(topic)
                enqueue(outbox, "subscribed", sorted(subscribed))
            elif action == "unsubscribe" and topic:
                unsubscribe(topic)
                enqueue(outbox, "subscribed", sorted(subscribed))
            elif action == "ping":
                enqueue(outbox, topics.PONG, f"pong: {int(time.time() * 1000)}")
            else:
                logger.debug(f"Ignoring message from {client_host}: {data[:100]}")
    except WebSocketDisconnect:
        logger.info(f"WebSocket DISCONNECTED from {client_host}")
    finally:
        for topic in list(subscribed):
            unsubscribe(topic)
        active_connections.discard(websocket)
        sender_task.cancel()
        try:
            await sender_task
        except (asyncio.CancelledError, WebSocketDisconnect, RuntimeError):
            pass
