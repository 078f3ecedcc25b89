"""FIFO pool of clients looking for a peer."""

from collections import OrderedDict
from typing import Iterator, Optional

from peerlink.core.exceptions import PoolError


class WaitingPool:
    """
    Ordered set of waiting client ids, oldest first.

    Backed by an OrderedDict so enqueue, dequeue and removal from the middle
    are all O(1).
    """

    def __init__(self):
        self._queue: "OrderedDict[int, None]" = OrderedDict()

    def enqueue(self, client_id: int) -> None:
        """
        Append a client to the back of the pool.

        Raises:
            PoolError: If the client is already queued
        """
        if client_id in self._queue:
            raise PoolError(f"Client {client_id} is already waiting")
        self._queue[client_id] = None

    def dequeue_oldest(self) -> Optional[int]:
        """Remove and return the longest-waiting client id, or None if empty."""
        if not self._queue:
            return None
        client_id, _ = self._queue.popitem(last=False)
        return client_id

    def remove_if_present(self, client_id: int) -> bool:
        """Drop a client from wherever it sits in the pool. Returns True if it was queued."""
        if client_id not in self._queue:
            return False
        del self._queue[client_id]
        return True

    def __contains__(self, client_id: object) -> bool:
        return client_id in self._queue

    def __len__(self) -> int:
        return len(self._queue)

    def __iter__(self) -> Iterator[int]:
        return iter(list(self._queue))
