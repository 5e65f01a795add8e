"""
WebSocket Handler for Real-Time Updates.

Bridges live store subscriptions to WebSocket clients: every snapshot a
subscription delivers is pushed to the socket as one JSON message, and the
subscription is cancelled as soon as the client goes away.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Set

from fastapi import WebSocket, WebSocketDisconnect, status

from collabboard.services.errors import TransportError
from collabboard.store.base import Subscription
from collabboard.utils.logger import get_logger

logger = logging.getLogger(__name__)
stream_logger = get_logger("collabboard.realtime")

SubscribeFn = Callable[[Callable[[List[Any]], None], Callable[[TransportError], None]], Subscription]
WatchFn = Callable[[Callable[[], None]], Subscription]

REVOKED = "revoked"


def encode_records(records: List[Any]) -> List[Dict[str, Any]]:
    return [record.model_dump(by_alias=True, mode="json") for record in records]


class WebSocketHandler:
    """Handler for WebSocket connections streaming live snapshots."""

    def __init__(self):
        """Initialize WebSocket handler."""
        self.channel_connections: Dict[str, Set[WebSocket]] = {}

    def connection_count(self, channel: str = None) -> int:
        if channel is not None:
            return len(self.channel_connections.get(channel, set()))
        return sum(len(conns) for conns in self.channel_connections.values())

    async def stream(
        self,
        websocket: WebSocket,
        channel: str,
        subscribe: SubscribeFn,
        watch_access: Optional[WatchFn] = None,
    ):
        """
        Push snapshots of one live query to an accepted WebSocket until it closes.

        Snapshot callbacks run synchronously inside the writer (possibly on
        another thread), so they only enqueue; a separate task drains the
        queue onto the socket. ``watch_access`` opens a second subscription
        that calls back once the client may no longer read the channel; the
        socket is then closed with a policy violation.
        """
        queue: asyncio.Queue = asyncio.Queue()
        loop = asyncio.get_running_loop()

        def on_snapshot(records: List[Any]) -> None:
            loop.call_soon_threadsafe(queue.put_nowait, {
                "type": "snapshot",
                "channel": channel,
                "data": encode_records(records),
                "timestamp": datetime.utcnow().isoformat(),
            })

        def on_error(error: TransportError) -> None:
            loop.call_soon_threadsafe(queue.put_nowait, {
                "type": "error",
                "channel": channel,
                "error": error.to_dict(),
                "timestamp": datetime.utcnow().isoformat(),
            })

        def on_revoked() -> None:
            loop.call_soon_threadsafe(queue.put_nowait, REVOKED)

        subscription = subscribe(on_snapshot, on_error)
        access = watch_access(on_revoked) if watch_access else None
        self.channel_connections.setdefault(channel, set()).add(websocket)
        stream_logger.stream_opened(channel, self.connection_count())

        sender = asyncio.create_task(self._pump(websocket, channel, queue))
        receiver = asyncio.create_task(self._receive(websocket, channel))
        try:
            await asyncio.wait({sender, receiver}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            subscription.unsubscribe()
            if access is not None:
                access.unsubscribe()
            sender.cancel()
            receiver.cancel()
            self._disconnect(channel, websocket)

    async def _receive(self, websocket: WebSocket, channel: str):
        try:
            while True:
                # clients only send keep-alive pings
                await websocket.receive_text()
        except WebSocketDisconnect:
            logger.info(f"Stream {channel} closed by client")

    async def _pump(self, websocket: WebSocket, channel: str, queue: asyncio.Queue):
        while True:
            message = await queue.get()
            if message == REVOKED:
                logger.info(f"Stream {channel} closed: access revoked")
                try:
                    await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
                except Exception as e:
                    logger.error(f"Error closing revoked stream: {e}")
                return
            try:
                await websocket.send_json(message)
            except Exception as e:
                logger.error(f"Error sending snapshot to client: {e}")
                return

    def _disconnect(self, channel: str, websocket: WebSocket):
        connections = self.channel_connections.get(channel)
        if connections is None:
            return
        connections.discard(websocket)
        if not connections:
            del self.channel_connections[channel]
        stream_logger.stream_closed(channel, self.connection_count())


# Global WebSocket handler instance
websocket_handler = WebSocketHandler()
