"""In-memory moderation log with live subscribers."""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Optional, Set

logger = logging.getLogger(__name__)


@dataclass
class Report:
    """A single user report."""

    reporter_id: int
    reported_peer_id: int
    reason: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        """Convert report to dictionary representation."""
        return {
            'reporterId': self.reporter_id,
            'reportedPeerId': self.reported_peer_id,
            'reason': self.reason,
            'timestamp': self.timestamp.isoformat()
        }


class ModerationLog:
    """
    Keeps recent reports and fans new ones out to stream subscribers.

    Recording never blocks: each subscriber owns an unbounded queue that the
    log only ever ``put_nowait``s onto.
    """

    def __init__(self, history_size: int = 1000):
        self._reports: deque = deque(maxlen=history_size)
        self._subscribers: Set[asyncio.Queue] = set()

    def record(self, report: Report) -> None:
        """
        Store a report and push it to every live subscriber.

        Args:
            report: Report to record
        """
        self._reports.append(report)
        logger.warning(
            f"REPORT: client {report.reporter_id} reported client {report.reported_peer_id}. "
            f"Reason: {report.reason or 'not specified'}"
        )
        for queue in self._subscribers:
            queue.put_nowait(report)

    def reports(self) -> List[Report]:
        return list(self._reports)

    async def subscribe(self) -> AsyncIterator[Report]:
        """Yield reports recorded after the call, until the consumer stops iterating."""
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.add(queue)
        try:
            while True:
                yield await queue.get()
        finally:
            self._subscribers.discard(queue)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def __len__(self) -> int:
        return len(self._reports)
