"""Registry of live client connections."""

import logging
from typing import Dict, List, Optional

from peerlink.models.client import Client
from peerlink.models.connection import Connection

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """
    Sole owner of live Client records.

    Ids come from a monotonic counter starting at 1 and are never handed out twice during
    the lifetime of the registry.
    """

    def __init__(self):
        self.id_counter = 1
        self._clients: Dict[int, Client] = {}

    def register(self, connection: Connection) -> Client:
        """
        Create an idle client for a new connection.

        Args:
            connection: Outbound handle for the new connection

        Returns:
            The newly registered client
        """
        client = Client(id=self.id_counter, connection=connection)
        self.id_counter += 1
        self._clients[client.id] = client
        logger.info(f"Client {client.id} registered. Total clients: {len(self._clients)}")
        return client

    def remove(self, client_id: int) -> Optional[Client]:
        """Remove a client. Returns the removed record, or None if it was not registered."""
        client = self._clients.pop(client_id, None)
        if client is not None:
            logger.info(f"Client {client_id} removed. Remaining clients: {len(self._clients)}")
        return client

    def get(self, client_id: int) -> Optional[Client]:
        return self._clients.get(client_id)

    def was_issued(self, client_id: int) -> bool:
        """True if the id was ever allocated, whether or not it is still live."""
        return 1 <= client_id < self.id_counter

    def clients(self) -> List[Client]:
        return list(self._clients.values())

    def __contains__(self, client_id: object) -> bool:
        return client_id in self._clients

    def __len__(self) -> int:
        return len(self._clients)
