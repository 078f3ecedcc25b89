"""Connection lifecycle handling: the single entry point into core state."""

import asyncio
import logging
from typing import Any, Dict, Optional

from peerlink.core.moderation import ModerationLog
from peerlink.core.pairing import PairingEngine
from peerlink.core.registry import ConnectionRegistry
from peerlink.core.router import RouteOutcome, SessionRouter
from peerlink.core.waiting_pool import WaitingPool
from peerlink.models.client import Client, ClientState
from peerlink.models.connection import Connection

logger = logging.getLogger(__name__)


class ConnectionLifecycleHandler:
    """
    Serializes every transport event into the core.

    Each entry point holds one lock for its whole run, so connect, message,
    close and error events are applied one at a time in arrival order.
    Nothing awaited under the lock touches the network: sends only queue.
    """

    def __init__(self, moderation: Optional[ModerationLog] = None,
                 notify_reported_peer: bool = True):
        self.registry = ConnectionRegistry()
        self.pool = WaitingPool()
        self.moderation = moderation if moderation is not None else ModerationLog()
        self.engine = PairingEngine(self.registry, self.pool)
        self.router = SessionRouter(
            self.registry,
            self.engine,
            self.moderation,
            notify_reported_peer=notify_reported_peer
        )
        self._mutex = asyncio.Lock()

    async def on_connect(self, connection: Connection) -> Client:
        """
        Register a new connection and immediately look for a peer.

        Args:
            connection: Outbound handle for the connection

        Returns:
            The registered client
        """
        async with self._mutex:
            client = self.registry.register(connection)
            self.engine.seek_peer(client.id)
            return client

    async def on_message(self, client_id: int, data: Any) -> RouteOutcome:
        async with self._mutex:
            return self.router.route(client_id, data)

    async def on_close(self, client_id: int) -> None:
        """Tear down a closed connection. Safe to call more than once."""
        async with self._mutex:
            self._teardown(client_id)

    async def on_error(self, client_id: int, cause: Optional[BaseException] = None) -> None:
        """Tear down a connection that failed. Safe to call more than once."""
        async with self._mutex:
            if client_id in self.registry:
                logger.error(f"Error on client {client_id}: {cause!r}")
            self._teardown(client_id)

    def stats(self) -> Dict[str, int]:
        """Current client and session counts."""
        clients = self.registry.clients()
        return {
            'connected_clients': len(clients),
            'waiting_clients': len(self.pool),
            'paired_clients': sum(1 for c in clients if c.state == ClientState.PAIRED),
            'sessions': len(self.engine.sessions()),
            'reports': len(self.moderation)
        }

    def _teardown(self, client_id: int) -> None:
        if client_id not in self.registry:
            return
        self.engine.end_session(client_id)
        client = self.registry.remove(client_id)
        if client is not None:
            client.state = ClientState.CLOSED
        logger.info(f"Client {client_id} disconnected")
