"""Message models for the signaling protocol."""

import json
from abc import ABC
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

from peerlink.core.exceptions import MalformedMessageError


class MessageType(Enum):
    """Message types with a fixed meaning to the server."""
    REQUEST_NEW_PEER = "request_new_peer"
    REPORT_USER = "report_user"
    START_CALL = "start_call"
    WAITING = "waiting"
    CALL_ENDED = "call_ended"
    REPORT_RECEIVED = "report_received"


@dataclass(eq=False)
class InboundMessage(ABC):
    """Base class for decoded client messages."""

    type: str


class SeekMessage(InboundMessage):
    """Client asks to be matched with a (new) peer."""

    def __init__(self):
        super().__init__(MessageType.REQUEST_NEW_PEER.value)

    def __repr__(self) -> str:
        return "SeekMessage()"


class ReportMessage(InboundMessage):
    """Client flags a peer for moderation."""

    def __init__(self, reported_peer_id: Optional[int], reason: Optional[str],
                 target_given: bool = False):
        super().__init__(MessageType.REPORT_USER.value)
        self.reported_peer_id = reported_peer_id
        self.reason = reason
        self.target_given = target_given or reported_peer_id is not None

    @property
    def has_invalid_target(self) -> bool:
        """reportedPeerId was sent but is not a usable id."""
        return self.target_given and self.reported_peer_id is None

    def __repr__(self) -> str:
        return f"ReportMessage(reported_peer_id={self.reported_peer_id!r}, reason={self.reason!r})"


class RelayMessage(InboundMessage):
    """Negotiation payload (offer, answer, candidate, ...) passed to the peer untouched."""

    def __init__(self, payload: Dict[str, Any]):
        super().__init__(payload['type'])
        self.payload = payload

    def for_peer(self, sender_id: int) -> Dict[str, Any]:
        """Copy of the payload tagged with the sender's id."""
        forwarded = dict(self.payload)
        forwarded['senderId'] = sender_id
        return forwarded

    def __repr__(self) -> str:
        return f"RelayMessage(type={self.type!r})"


def _optional_peer_id(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip('-').isdigit():
        return int(value)
    return None


def parse_message(data: Any) -> InboundMessage:
    """
    Classify a decoded client record.

    Args:
        data: Decoded JSON value received from a client

    Returns:
        SeekMessage, ReportMessage, or RelayMessage for any other type

    Raises:
        MalformedMessageError: If data is not an object with a string ``type``
    """
    if not isinstance(data, dict):
        raise MalformedMessageError(f"Expected a JSON object, got {type(data).__name__}")

    message_type = data.get('type')
    if not isinstance(message_type, str) or not message_type:
        raise MalformedMessageError("Message has no 'type' field")

    if message_type == MessageType.REQUEST_NEW_PEER.value:
        return SeekMessage()
    if message_type == MessageType.REPORT_USER.value:
        reason = data.get('reason')
        target = data.get('reportedPeerId')
        return ReportMessage(
            reported_peer_id=_optional_peer_id(target),
            reason=reason if isinstance(reason, str) else None,
            target_given=target is not None
        )
    return RelayMessage(data)


def decode_frame(frame: Optional[Union[str, bytes]]) -> Any:
    """Decode one text or binary frame into a JSON value."""
    try:
        return json.loads(frame)
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as e:
        raise MalformedMessageError(f"Invalid JSON message: {str(e)}") from e


def start_call(own_id: int, peer_id: int) -> Dict[str, Any]:
    return {'type': MessageType.START_CALL.value, 'ownId': own_id, 'peerId': peer_id}


def waiting() -> Dict[str, Any]:
    return {'type': MessageType.WAITING.value}


def call_ended() -> Dict[str, Any]:
    return {'type': MessageType.CALL_ENDED.value}


def report_received() -> Dict[str, Any]:
    return {'type': MessageType.REPORT_RECEIVED.value}
