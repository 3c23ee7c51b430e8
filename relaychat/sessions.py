"""
sessions.py: authenticated connections and the registry that tracks them.

Each Session owns an outbound queue drained by its own writer thread, so the
registry hands a broadcast to every peer without holding its lock across a
slow socket write. A write failure ends only that peer's session.
"""

import logging
import queue
import threading
from typing import Iterable, List, Optional

from relaychat.common.protocol import Admission, Role
from relaychat.common.utils import LineChannel

logger = logging.getLogger(__name__)

_CLOSE = object()


class Session:
    def __init__(self, channel: LineChannel, role: Role, identity: str, addr=None):
        self.channel = channel
        self.role = role
        self.identity = identity
        self.addr = addr
        self._outbox: "queue.Queue[object]" = queue.Queue()
        self._writer: Optional[threading.Thread] = None
        self.closed = threading.Event()
        # Set by a forced disconnect; lines still buffered from this peer are dropped.
        self.kicked = threading.Event()

    def __repr__(self) -> str:
        return f"Session({self.role.value}:{self.identity}@{self.addr})"

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    def start(self):
        self._writer = threading.Thread(target=self._drain, name=f"writer-{self.identity}", daemon=True)
        self._writer.start()

    def send(self, text: str):
        if not self.closed.is_set():
            self._outbox.put(text)

    def send_lines(self, lines: Iterable[str]):
        for line in lines:
            self.send(line)

    def disconnect(self, notice: Optional[str] = None):
        """Flush pending output (and ``notice``), then shut the socket down."""
        if notice is not None:
            self.send(notice)
        self._outbox.put(_CLOSE)

    def _drain(self):
        while True:
            item = self._outbox.get()
            if item is _CLOSE:
                break
            try:
                self.channel.send_line(item)
            except OSError as e:
                logger.warning("Delivery to %r failed: %s", self, e)
                break
        self.closed.set()
        # The connection's reader sees EOF and runs cleanup.
        self.channel.shutdown()

    def join(self, timeout: Optional[float] = None):
        if self._writer is not None:
            self._writer.join(timeout)


class SessionRegistry:
    """
    Connected, authenticated sessions.

    Invariants:
    - at most one CLIENT session is registered; admit_client checks and
      registers under one lock
    - ``admin`` is the most recently admitted admin session (any number may
      be connected, only that one receives server notices)
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._sessions: List[Session] = []
        self.admin: Optional[Session] = None
        self.client: Optional[Session] = None

    def sessions(self) -> List[Session]:
        with self._lock:
            return list(self._sessions)

    def admit_admin(self, session: Session):
        with self._lock:
            self._sessions.append(session)
            self.admin = session

    def admit_client(self, session: Session) -> Admission:
        with self._lock:
            if self.client is not None:
                return Admission.ALREADY_ACTIVE
            self._sessions.append(session)
            self.client = session
            return Admission.ACCEPTED

    def remove(self, session: Session) -> bool:
        """Unregister ``session``; False if it was already gone."""
        with self._lock:
            if self.admin is session:
                self.admin = None
            if self.client is session:
                self.client = None
            try:
                self._sessions.remove(session)
                return True
            except ValueError:
                return False

    def broadcast(self, sender: Session, message: str):
        for peer in self.sessions():
            if peer is not sender:
                peer.send(message)

    def notify_admin(self, lines: Iterable[str]) -> bool:
        with self._lock:
            admin = self.admin
        if admin is None:
            return False
        admin.send_lines(lines)
        return True

    def kick_client(self, notice: Optional[str] = None) -> bool:
        """Force the active client off; its slot is free on return."""
        with self._lock:
            client = self.client
            if client is None:
                return False
            self.client = None
            self._sessions.remove(client)
            client.kicked.set()
        client.disconnect(notice)
        return True
