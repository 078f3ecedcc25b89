"""Client model for connected participants."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from peerlink.models.connection import Connection


class ClientState(Enum):
    """Pairing states a client moves through."""
    IDLE = "idle"
    WAITING = "waiting"
    PAIRED = "paired"
    CLOSED = "closed"


@dataclass(eq=False)
class Client:
    """Represents one connected participant and its pairing state.

    ``peer_id`` is a lookup key into the registry, never a reference to the
    other client object. It is set iff ``state`` is ``PAIRED``.
    """

    id: int
    connection: Connection
    state: ClientState = ClientState.IDLE
    peer_id: Optional[int] = None
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_paired(self) -> bool:
        return self.state == ClientState.PAIRED

    def send(self, message: Dict[str, Any]) -> bool:
        """Queue a message on this client's connection."""
        return self.connection.send(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert client to dictionary representation."""
        return {
            'id': self.id,
            'state': self.state.value,
            'peer_id': self.peer_id,
            'connected_at': self.connected_at.isoformat()
        }

    def __repr__(self) -> str:
        return f"Client(id={self.id!r}, state={self.state.value!r}, peer_id={self.peer_id!r})"
