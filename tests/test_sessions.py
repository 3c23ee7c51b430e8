import threading

import pytest

from helpers import channel_pair, wait_for
from relaychat.common.protocol import Admission, Role
from relaychat.common.utils import LineChannel
from relaychat.sessions import Session, SessionRegistry


def admit(registry, *sessions):
    for s in sessions:
        if s.is_admin:
            registry.admit_admin(s)
        else:
            registry.admit_client(s)


@pytest.fixture
def registry():
    return SessionRegistry()


@pytest.fixture
def live_session():
    """Started sessions paired with the test side of their socket."""
    made = []

    def make(role=Role.CLIENT, identity="u"):
        conn, remote = channel_pair()
        session = Session(LineChannel(conn), role, identity)
        session.start()
        made.append((session, remote))
        return session, remote

    yield make
    for session, remote in made:
        session.disconnect()
        session.join(2)
        session.channel.close()
        remote.close()


def test_second_client_is_rejected_and_first_kept(registry):
    first = Session(None, Role.CLIENT, "u1")
    second = Session(None, Role.CLIENT, "u1")
    assert registry.admit_client(first) is Admission.ACCEPTED
    assert registry.admit_client(second) is Admission.ALREADY_ACTIVE
    assert registry.client is first
    assert registry.sessions() == [first]


def test_concurrent_client_admission_admits_exactly_one(registry):
    candidates = [Session(None, Role.CLIENT, f"u{i}") for i in range(32)]
    barrier = threading.Barrier(len(candidates))
    results = []

    def attempt(session):
        barrier.wait()
        results.append(registry.admit_client(session))

    threads = [threading.Thread(target=attempt, args=(s,)) for s in candidates]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(Admission.ACCEPTED) == 1
    assert len(registry.sessions()) == 1


def test_admins_are_never_capacity_limited(registry):
    registry.admit_client(Session(None, Role.CLIENT, "u1"))
    admins = [Session(None, Role.ADMIN, "admin") for _ in range(3)]
    for admin in admins:
        registry.admit_admin(admin)
    assert len(registry.sessions()) == 4


def test_most_recent_admin_is_addressable(registry):
    first = Session(None, Role.ADMIN, "admin")
    second = Session(None, Role.ADMIN, "admin")
    registry.admit_admin(first)
    registry.admit_admin(second)
    assert registry.admin is second

    # an older admin leaving does not clear the handle
    registry.remove(first)
    assert registry.admin is second
    registry.remove(second)
    assert registry.admin is None


def test_remove_is_idempotent_and_frees_client_slot(registry):
    client = Session(None, Role.CLIENT, "u1")
    registry.admit_client(client)
    assert registry.remove(client)
    assert not registry.remove(client)
    assert registry.client is None
    assert registry.admit_client(Session(None, Role.CLIENT, "u1")) is Admission.ACCEPTED


def test_broadcast_excludes_sender(registry, live_session):
    a, a_remote = live_session(Role.ADMIN, "a")
    b, b_remote = live_session(Role.ADMIN, "b")
    c, c_remote = live_session(Role.CLIENT, "c")
    admit(registry, a, b, c)

    registry.broadcast(a, "a: hello")
    a.send("marker")

    assert b_remote.recv_line() == "a: hello"
    assert c_remote.recv_line() == "a: hello"
    # per-session output is FIFO, so the marker arriving first proves no echo
    assert a_remote.recv_line() == "marker"


def test_failed_delivery_does_not_affect_other_peers(registry, live_session):
    a, _ = live_session(Role.ADMIN, "a")
    b, b_remote = live_session(Role.CLIENT, "b")
    c, c_remote = live_session(Role.ADMIN, "c")
    admit(registry, a, b, c)

    b_remote.close()
    registry.broadcast(a, "a: one")
    registry.broadcast(a, "a: two")

    assert c_remote.recv_line() == "a: one"
    assert c_remote.recv_line() == "a: two"
    assert b.closed.wait(5)


def test_kick_client_frees_slot_and_closes_connection(registry, live_session):
    client, remote = live_session(Role.CLIENT, "u1")
    registry.admit_client(client)

    assert registry.kick_client("bye")
    assert registry.client is None
    assert registry.sessions() == []
    assert remote.recv_line() == "bye"
    assert remote.recv_line() is None
    assert not registry.kick_client("again")


def test_notify_admin_without_admin(registry):
    assert not registry.notify_admin(["nobody listening"])


def test_notify_admin_reaches_latest_admin_only(registry, live_session):
    old, old_remote = live_session(Role.ADMIN, "admin")
    new, new_remote = live_session(Role.ADMIN, "admin")
    registry.admit_admin(old)
    registry.admit_admin(new)

    assert registry.notify_admin(["line 1", "line 2"])
    old.send("marker")
    assert new_remote.recv_line() == "line 1"
    assert new_remote.recv_line() == "line 2"
    assert old_remote.recv_line() == "marker"


def test_kick_marks_session_kicked(registry):
    client = Session(None, Role.CLIENT, "u1")
    registry.admit_client(client)
    assert not client.kicked.is_set()
    # disconnect() only queues; the writer thread was never started
    assert registry.kick_client()
    assert client.kicked.is_set()
