"""Routing of inbound client messages."""

import logging
from enum import Enum
from typing import Any

from peerlink.core.exceptions import MalformedMessageError
from peerlink.core.moderation import ModerationLog, Report
from peerlink.core.pairing import PairingEngine
from peerlink.core.registry import ConnectionRegistry
from peerlink.models import message
from peerlink.models.client import Client
from peerlink.models.message import RelayMessage, ReportMessage, SeekMessage

logger = logging.getLogger(__name__)


class RouteOutcome(Enum):
    """What the router did with a message."""
    PAIRING = "pairing"
    REPORTED = "reported"
    RELAYED = "relayed"
    DROPPED = "dropped"


class SessionRouter:
    """Classifies client messages and delivers relays to the sender's current peer."""

    def __init__(self, registry: ConnectionRegistry, engine: PairingEngine,
                 moderation: ModerationLog, notify_reported_peer: bool = True):
        self.registry = registry
        self.engine = engine
        self.moderation = moderation
        self.notify_reported_peer = notify_reported_peer

    def route(self, sender_id: int, data: Any) -> RouteOutcome:
        """
        Dispatch one decoded message from a client.

        Never raises for bad input: problems are logged and the message is
        dropped, leaving the connection open.

        Args:
            sender_id: Id of the sending client
            data: Decoded message record

        Returns:
            The routing decision taken
        """
        sender = self.registry.get(sender_id)
        if sender is None:
            logger.warning(f"Dropping message from unknown client {sender_id}")
            return RouteOutcome.DROPPED

        try:
            parsed = message.parse_message(data)
        except MalformedMessageError as e:
            logger.error(f"Error processing message from client {sender_id}: {str(e)}")
            return RouteOutcome.DROPPED

        if isinstance(parsed, SeekMessage):
            logger.info(f"Client {sender_id} requested a new peer")
            self.engine.seek_peer(sender_id)
            return RouteOutcome.PAIRING
        if isinstance(parsed, ReportMessage):
            return self._handle_report(sender, parsed)
        return self._relay(sender, parsed)

    def _handle_report(self, sender: Client, report: ReportMessage) -> RouteOutcome:
        if report.has_invalid_target:
            logger.warning(f"Client {sender.id} sent a report with an invalid reportedPeerId")
            return RouteOutcome.DROPPED

        reported_id = report.reported_peer_id
        if reported_id is None:
            reported_id = sender.peer_id
        if reported_id is None or reported_id == sender.id or not self.registry.was_issued(reported_id):
            logger.warning(f"Client {sender.id} sent a report for unknown client {report.reported_peer_id}")
            return RouteOutcome.DROPPED

        self.moderation.record(Report(
            reporter_id=sender.id,
            reported_peer_id=reported_id,
            reason=report.reason
        ))

        if self.notify_reported_peer and sender.peer_id == reported_id:
            peer = self.registry.get(reported_id)
            if peer is not None and peer.connection.writable:
                peer.send(message.report_received())
        return RouteOutcome.REPORTED

    def _relay(self, sender: Client, relay: RelayMessage) -> RouteOutcome:
        peer = self.registry.get(sender.peer_id) if sender.peer_id is not None else None
        if peer is None or not peer.connection.writable:
            logger.info(f"Peer of client {sender.id} is not connected. Message '{relay.type}' not delivered")
            return RouteOutcome.DROPPED

        if not peer.send(relay.for_peer(sender.id)):
            logger.info(f"Client {peer.id} refused message '{relay.type}' from client {sender.id}")
            return RouteOutcome.DROPPED
        logger.debug(f"Relayed '{relay.type}' from client {sender.id} to client {peer.id}")
        return RouteOutcome.RELAYED
