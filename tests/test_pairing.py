"""Unit tests for the PairingEngine."""

from peerlink.models.client import ClientState
from tests.conftest import FakeConnection


def _park(registry, pool, connection=None):
    """Register a client and put it straight into the pool."""
    client = registry.register(connection or FakeConnection())
    client.state = ClientState.WAITING
    pool.enqueue(client.id)
    return client


def test_first_client_waits(connect, pool):
    """Test that a lone seeker is queued and told to wait."""
    client = connect()

    assert client.state == ClientState.WAITING
    assert client.peer_id is None
    assert list(pool) == [client.id]
    assert client.connection.sent == [{"type": "waiting"}]


def test_second_client_is_paired(connect, pool, engine):
    """Test that the second seeker is paired with the waiting one."""
    first = connect()
    second = connect()

    assert first.peer_id == second.id
    assert second.peer_id == first.id
    assert first.state == second.state == ClientState.PAIRED
    assert len(pool) == 0

    assert first.connection.sent == [
        {"type": "waiting"},
        {"type": "start_call", "ownId": first.id, "peerId": second.id},
    ]
    assert second.connection.sent == [
        {"type": "start_call", "ownId": second.id, "peerId": first.id},
    ]
    assert engine.sessions() == [(first.id, second.id)]
    assert engine.check_invariants() == []


def test_waiting_peer_is_notified_first(registry, pool, engine):
    """Test that start_call goes to the dequeued peer before the requester."""
    order = []

    class OrderedConnection(FakeConnection):
        def __init__(self, name):
            super().__init__()
            self.name = name

        def send(self, message):
            order.append((self.name, message['type']))
            return super().send(message)

    waiting_client = _park(registry, pool, OrderedConnection("waiting"))
    requester = registry.register(OrderedConnection("requester"))
    engine.seek_peer(requester.id)

    assert requester.peer_id == waiting_client.id
    assert order == [("waiting", "start_call"), ("requester", "start_call")]


def test_seekers_are_matched_in_arrival_order(connect, pool):
    """Test that C1 pairs with C2 and C3 is left waiting."""
    c1 = connect()
    c2 = connect()
    c3 = connect()

    assert c1.peer_id == c2.id
    assert c2.peer_id == c1.id
    assert c3.state == ClientState.WAITING
    assert list(pool) == [c3.id]


def test_longest_waiting_client_is_matched(registry, pool, engine):
    """Test FIFO selection when several clients are queued."""
    oldest = _park(registry, pool)
    newer = _park(registry, pool)
    requester = registry.register(FakeConnection())

    assert engine.seek_peer(requester.id) == oldest.id
    assert list(pool) == [newer.id]
    assert newer.state == ClientState.WAITING


def test_stale_pool_entries_are_skipped(registry, pool, engine):
    """Test that ids of departed clients are discarded during matching."""
    pool.enqueue(99)
    live = _park(registry, pool)
    requester = registry.register(FakeConnection())

    assert engine.seek_peer(requester.id) == live.id
    assert len(pool) == 0
    assert engine.check_invariants() == []


def test_only_stale_entries_means_waiting(registry, pool, engine):
    """Test that a pool of stale ids behaves like an empty pool."""
    pool.enqueue(50)
    pool.enqueue(51)
    requester = registry.register(FakeConnection())

    assert engine.seek_peer(requester.id) is None
    assert requester.state == ClientState.WAITING
    assert list(pool) == [requester.id]


def test_unwritable_candidate_is_skipped(connect, pool):
    """Test that a waiting client whose socket is going away is not matched."""
    dying = connect()
    dying.connection.close()

    requester = connect()

    assert requester.state == ClientState.WAITING
    assert dying.state == ClientState.IDLE
    assert dying.peer_id is None
    assert list(pool) == [requester.id]


def test_repair_notifies_old_peer(connect, engine, pool):
    """Test that re-seeking ends the old session and pairs with a waiting client."""
    a = connect()
    b = connect()
    c = connect()

    assert engine.seek_peer(a.id) == c.id

    assert b.connection.sent[-1] == {"type": "call_ended"}
    assert b.state == ClientState.IDLE
    assert b.peer_id is None
    assert b.id not in pool
    assert a.peer_id == c.id
    assert c.peer_id == a.id
    assert "call_ended" not in a.connection.types()
    assert engine.check_invariants() == []


def test_repair_with_nobody_waiting(connect, engine, pool):
    """Test that a re-seeker with no candidates goes back to waiting."""
    a = connect()
    b = connect()

    assert engine.seek_peer(a.id) is None

    assert a.state == ClientState.WAITING
    assert a.connection.sent[-1] == {"type": "waiting"}
    assert b.connection.types().count("call_ended") == 1
    assert b.state == ClientState.IDLE
    assert list(pool) == [a.id]


def test_repeated_seek_while_waiting(connect, engine, pool):
    """Test that a waiting client is never queued twice."""
    a = connect()
    engine.seek_peer(a.id)

    assert list(pool) == [a.id]
    assert a.connection.types() == ["waiting", "waiting"]


def test_seek_unknown_client(engine, pool):
    """Test that seeking for an unregistered id does nothing."""
    assert engine.seek_peer(12) is None
    assert len(pool) == 0


def test_end_session_paired(connect, engine):
    """Test teardown of a session from one side."""
    a = connect()
    b = connect()

    engine.end_session(a.id)

    assert a.state == b.state == ClientState.IDLE
    assert a.peer_id is None and b.peer_id is None
    assert b.connection.types().count("call_ended") == 1
    assert "call_ended" not in a.connection.types()
    assert engine.sessions() == []


def test_end_session_waiting(connect, engine, pool):
    """Test that ending a waiting client's search removes it from the pool."""
    a = connect()

    engine.end_session(a.id)

    assert a.state == ClientState.IDLE
    assert a.id not in pool


def test_end_session_idle_is_noop(registry, engine):
    """Test that ending an idle client changes nothing."""
    client = registry.register(FakeConnection())

    engine.end_session(client.id)
    engine.end_session(404)

    assert client.state == ClientState.IDLE
    assert client.connection.sent == []


def test_end_session_with_missing_peer(connect, registry, engine):
    """Test that the caller side is still cleared if its peer record is gone."""
    a = connect()
    b = connect()
    registry.remove(b.id)

    engine.end_session(a.id)

    assert a.state == ClientState.IDLE
    assert a.peer_id is None


def test_check_invariants_reports_asymmetry(connect, engine):
    """Test that a one-sided link is reported."""
    a = connect()
    b = connect()
    b.peer_id = None
    b.state = ClientState.IDLE

    problems = engine.check_invariants()
    assert any(f"Client {a.id} points at {b.id}" in problem for problem in problems)


def test_check_invariants_reports_pool_problems(connect, registry, pool, engine):
    """Test that departed or mis-stated pool members are reported."""
    a = connect()
    pool.enqueue(77)
    idle = registry.register(FakeConnection())
    pool.enqueue(idle.id)

    problems = engine.check_invariants()
    assert any("departed client 77" in problem for problem in problems)
    assert any(f"Client {idle.id} is idle" in problem for problem in problems)
    assert not any(f"Client {a.id}" in problem for problem in problems)
