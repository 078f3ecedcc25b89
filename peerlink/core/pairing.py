"""Pairing engine: creates and tears down two-party sessions."""

import logging
from typing import List, Optional, Tuple

from peerlink.core.registry import ConnectionRegistry
from peerlink.core.waiting_pool import WaitingPool
from peerlink.models import message
from peerlink.models.client import Client, ClientState

logger = logging.getLogger(__name__)


class PairingEngine:
    """
    Owns every session transition.

    The engine is the only code that writes ``Client.state`` and
    ``Client.peer_id``; every write keeps the two sides of a session pointing
    at each other.
    """

    def __init__(self, registry: ConnectionRegistry, pool: WaitingPool):
        self.registry = registry
        self.pool = pool

    def seek_peer(self, client_id: int) -> Optional[int]:
        """
        Match a client with the longest-waiting peer, or park it in the pool.

        Args:
            client_id: Client that wants a partner

        Returns:
            The id of the new peer, or None if the client is now waiting
        """
        client = self.registry.get(client_id)
        if client is None:
            logger.warning(f"Cannot seek a peer for unknown client {client_id}")
            return None

        # A repeated seek drops the current partner or pool slot first
        self.end_session(client_id)

        peer = self._take_candidate(client)
        if peer is None:
            client.state = ClientState.WAITING
            self.pool.enqueue(client.id)
            client.send(message.waiting())
            logger.info(f"Client {client.id} waiting for a peer. Pool size: {len(self.pool)}")
            return None

        self._link(peer, client)
        return peer.id

    def end_session(self, client_id: int) -> None:
        """
        Return a client to IDLE, notifying its peer if it had one.

        Args:
            client_id: Client whose session or pool slot should end
        """
        client = self.registry.get(client_id)
        if client is None:
            return

        if client.state == ClientState.WAITING:
            self.pool.remove_if_present(client.id)
            client.state = ClientState.IDLE
            return

        if client.state != ClientState.PAIRED:
            return

        peer = self.registry.get(client.peer_id) if client.peer_id is not None else None
        client.peer_id = None
        client.state = ClientState.IDLE

        if peer is None or peer.peer_id != client.id:
            logger.warning(f"Client {client.id} was paired with a peer that no longer points back")
            return

        peer.peer_id = None
        peer.state = ClientState.IDLE
        if not peer.send(message.call_ended()):
            logger.info(f"Could not notify client {peer.id} that the call ended")
        logger.info(f"Session between clients {client.id} and {peer.id} ended")

    def sessions(self) -> List[Tuple[int, int]]:
        """Active sessions as (lower id, higher id) pairs."""
        pairs = []
        for client in self.registry.clients():
            if client.is_paired and client.peer_id is not None and client.id < client.peer_id:
                pairs.append((client.id, client.peer_id))
        return pairs

    def check_invariants(self) -> List[str]:
        """
        Describe every broken pairing invariant.

        Returns:
            Human-readable violations; empty when the state is consistent
        """
        problems = []
        for client in self.registry.clients():
            if client.peer_id == client.id:
                problems.append(f"Client {client.id} is paired with itself")
            if client.is_paired != (client.peer_id is not None):
                problems.append(f"Client {client.id} is {client.state.value} with peer_id={client.peer_id}")
            if client.peer_id is not None:
                peer = self.registry.get(client.peer_id)
                if peer is None or peer.peer_id != client.id:
                    problems.append(f"Client {client.id} points at {client.peer_id}, which does not point back")
            if (client.state == ClientState.WAITING) != (client.id in self.pool):
                problems.append(f"Client {client.id} is {client.state.value} but pool membership disagrees")

        queued = list(self.pool)
        if len(queued) != len(set(queued)):
            problems.append("Waiting pool contains duplicate ids")
        for client_id in queued:
            if client_id not in self.registry:
                problems.append(f"Waiting pool holds departed client {client_id}")
        return problems

    def _take_candidate(self, client: Client) -> Optional[Client]:
        """Pop pool entries until a live, unpaired, writable candidate turns up."""
        while True:
            candidate_id = self.pool.dequeue_oldest()
            if candidate_id is None:
                return None

            candidate = self.registry.get(candidate_id)
            if candidate is None or candidate.id == client.id:
                logger.debug(f"Discarding stale pool entry {candidate_id}")
                continue
            if candidate.state != ClientState.WAITING:
                logger.debug(f"Discarding pool entry {candidate_id} in state {candidate.state.value}")
                continue
            if not candidate.connection.writable:
                # Its close event is on the way; leave it idle until then
                candidate.state = ClientState.IDLE
                logger.debug(f"Discarding unwritable pool entry {candidate_id}")
                continue
            return candidate

    def _link(self, peer: Client, client: Client) -> None:
        peer.peer_id = client.id
        peer.state = ClientState.PAIRED
        client.peer_id = peer.id
        client.state = ClientState.PAIRED
        logger.info(f"Paired client {client.id} with client {peer.id}")

        # Waiting peer hears first, then the requester
        peer.send(message.start_call(own_id=peer.id, peer_id=client.id))
        client.send(message.start_call(own_id=client.id, peer_id=peer.id))
