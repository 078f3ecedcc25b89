"""Connection handle contract shared by the core and the transport layer."""

from typing import Any, Dict, Protocol


class Connection(Protocol):
    """Outbound side of one client connection.

    The core never looks inside a connection; it only queues messages on it
    and asks whether it can still be written to.
    """

    def send(self, message: Dict[str, Any]) -> bool:
        """Queue a message for delivery. Returns False if it was not accepted."""
        ...

    @property
    def writable(self) -> bool: ...
