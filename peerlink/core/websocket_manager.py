"""WebSocket connection manager bridging FastAPI sockets and the lifecycle handler."""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

from fastapi import WebSocket, WebSocketDisconnect

from peerlink.core.exceptions import DeliveryError, MalformedMessageError
from peerlink.core.lifecycle import ConnectionLifecycleHandler
from peerlink.models.message import decode_frame

logger = logging.getLogger(__name__)


class WebSocketConnection:
    """
    Outbound half of one WebSocket.

    ``send`` only queues; a single writer task drains the queue onto the
    socket so the core never waits on the network.
    """

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self.client_id: Optional[int] = None
        self._outbox: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self._writer: Optional[asyncio.Task] = None

    @property
    def writable(self) -> bool:
        return not self._closed

    def start(self) -> None:
        """Start the writer task."""
        if self._writer is None:
            self._writer = asyncio.create_task(self._write_loop())

    def send(self, message: Dict[str, Any]) -> bool:
        if self._closed:
            return False
        self._outbox.put_nowait(message)
        return True

    async def close(self) -> None:
        """Stop accepting messages and stop the writer; unsent messages are dropped."""
        self._closed = True
        if self._writer is not None:
            self._writer.cancel()
            try:
                await self._writer
            except asyncio.CancelledError:
                pass
            self._writer = None

    async def _write_loop(self) -> None:
        while True:
            message = await self._outbox.get()
            try:
                await self._write(message)
            except DeliveryError as e:
                logger.error(f"Failed to send message to client {self.client_id}: {str(e)}")
                self._closed = True
                return

    async def _write(self, message: Dict[str, Any]) -> None:
        try:
            await self.websocket.send_text(json.dumps(message))
        except Exception as e:
            raise DeliveryError(str(e) or type(e).__name__) from e


class WebSocketManager:
    """Runs the receive loop for each signaling WebSocket."""

    def __init__(self, lifecycle: ConnectionLifecycleHandler):
        self.lifecycle = lifecycle

    async def serve(self, websocket: WebSocket) -> None:
        """
        Accept a WebSocket and feed its events to the lifecycle handler until it closes.

        Args:
            websocket: Incoming WebSocket connection
        """
        await websocket.accept()
        connection = WebSocketConnection(websocket)
        connection.start()
        client = await self.lifecycle.on_connect(connection)
        connection.client_id = client.id

        try:
            while True:
                event = await websocket.receive()
                if event["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(event.get("code", 1000))
                frame = event.get("text")
                if frame is None:
                    frame = event.get("bytes")
                try:
                    data = decode_frame(frame)
                except MalformedMessageError as e:
                    logger.error(f"Error processing message from client {client.id}: {str(e)}")
                    continue
                await self.lifecycle.on_message(client.id, data)

        except WebSocketDisconnect:
            logger.info(f"Client {client.id} closed the connection")
        except Exception as e:
            await self.lifecycle.on_error(client.id, e)
        finally:
            await self.lifecycle.on_close(client.id)
            await connection.close()
