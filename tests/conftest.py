"""Shared fixtures for the signaling tests."""

from typing import Any, Dict, List

import pytest

from peerlink.core.lifecycle import ConnectionLifecycleHandler
from peerlink.core.moderation import ModerationLog
from peerlink.core.pairing import PairingEngine
from peerlink.core.registry import ConnectionRegistry
from peerlink.core.router import SessionRouter
from peerlink.core.waiting_pool import WaitingPool


class FakeConnection:
    """Connection double that records everything queued on it."""

    def __init__(self, writable: bool = True):
        self.sent: List[Dict[str, Any]] = []
        self._writable = writable

    @property
    def writable(self) -> bool:
        return self._writable

    def send(self, message: Dict[str, Any]) -> bool:
        if not self._writable:
            return False
        self.sent.append(message)
        return True

    def close(self) -> None:
        self._writable = False

    def types(self) -> List[str]:
        return [message['type'] for message in self.sent]


@pytest.fixture
def registry():
    """Empty connection registry."""
    return ConnectionRegistry()


@pytest.fixture
def pool():
    """Empty waiting pool."""
    return WaitingPool()


@pytest.fixture
def engine(registry, pool):
    """Pairing engine over the registry and pool fixtures."""
    return PairingEngine(registry, pool)


@pytest.fixture
def moderation():
    return ModerationLog(history_size=10)


@pytest.fixture
def router(registry, engine, moderation):
    """Session router with peer notification on reports."""
    return SessionRouter(registry, engine, moderation)


@pytest.fixture
def lifecycle():
    """Lifecycle handler owning its own registry and pool."""
    return ConnectionLifecycleHandler(moderation=ModerationLog(history_size=10))


@pytest.fixture
def connect(registry, engine):
    """Register a client on a FakeConnection and make it seek a peer."""
    def _connect(writable: bool = True):
        client = registry.register(FakeConnection(writable=writable))
        engine.seek_peer(client.id)
        return client
    return _connect
