"""Live feed of orchestrator events over WebSocket.

Each session has its own set of listeners. The orchestrator publishes
through the sink built by ``make_event_sink``; listeners never talk back.
"""

import json
import logging
from collections import defaultdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Set

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)

router = APIRouter()


class FeedEvent(str, Enum):
    """Frames sent down the feed."""
    SUBSCRIBED = "subscribed"

    # Mirrors OrchestratorEvent
    TURN_START = "turn_start"
    MESSAGE = "message"
    WHISPER_HANDLED = "whisper_handled"
    STATUS_CHANGE = "status_change"
    TURN_ERROR = "turn_error"
    TURN_DISCARDED = "turn_discarded"


def encode_frame(event: FeedEvent, data: Optional[Dict[str, Any]] = None) -> str:
    return json.dumps({
        "type": event.value,
        "data": data or {},
        "timestamp": datetime.now(timezone.utc).isoformat(),
    })


class SessionFeed:
    """Fan-out of one session's events to its listeners."""

    def __init__(self):
        self.listeners: Dict[int, Set[WebSocket]] = defaultdict(set)

    def listener_count(self, session_id: int) -> int:
        return len(self.listeners.get(session_id, ()))

    async def subscribe(self, session_id: int, websocket: WebSocket):
        await websocket.accept()
        self.listeners[session_id].add(websocket)
        await websocket.send_text(encode_frame(FeedEvent.SUBSCRIBED, {"session_id": session_id}))
        logger.info(f"Listener joined session {session_id} ({self.listener_count(session_id)} total)")

    def unsubscribe(self, session_id: int, websocket: WebSocket):
        sockets = self.listeners.get(session_id)
        if sockets is None:
            return
        sockets.discard(websocket)
        if not sockets:
            del self.listeners[session_id]
        logger.info(f"Listener left session {session_id}")

    async def publish(self, session_id: int, event: FeedEvent, data: Dict[str, Any]):
        """Send one frame to every listener. Dead sockets are dropped."""
        sockets = self.listeners.get(session_id)
        if not sockets:
            return

        frame = encode_frame(event, data)
        for websocket in list(sockets):
            try:
                await websocket.send_text(frame)
            except Exception as e:
                logger.warning(f"Dropping listener on session {session_id}: {e}")
                self.unsubscribe(session_id, websocket)


feed = SessionFeed()


def make_event_sink(session_id: int):
    """Orchestrator callback that publishes to the session's feed."""

    async def sink(event_type: str, data: Dict[str, Any]):
        await feed.publish(session_id, FeedEvent(event_type), data)

    return sink


@router.websocket("/sessions/{session_id}")
async def session_feed(websocket: WebSocket, session_id: int):
    """Stream a session's events. Anything the client sends is ignored."""
    await feed.subscribe(session_id, websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        feed.unsubscribe(session_id, websocket)
