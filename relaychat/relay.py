import logging

from relaychat.common import protocol as p
from relaychat.errors import ArchiveNotFound, PersistenceError
from relaychat.sessions import Session, SessionRegistry
from relaychat.storage.archive import ArchiveManager
from relaychat.storage.credentials import CredentialStore
from relaychat.storage.transcript import TranscriptLine, TranscriptLog

logger = logging.getLogger(__name__)


class ChatRelay:
    """
    Per-session command loop.

    Admin sessions may issue /adduser, /archives and /load <name>; every other
    line (including those commands from a client) is logged to the live
    transcript and broadcast to the other sessions as "identity: message".
    """

    def __init__(self, store: CredentialStore, archive: ArchiveManager,
                 transcript: TranscriptLog, registry: SessionRegistry):
        self.store = store
        self.archive = archive
        self.transcript = transcript
        self.registry = registry

    def run(self, session: Session):
        """Consume lines until end of stream."""
        while True:
            line = session.channel.recv_line()
            if line is None or session.kicked.is_set():
                return
            self.dispatch(session, line)

    def dispatch(self, session: Session, line: str):
        if session.is_admin:
            command = line.strip().lower()
            if command == p.CMD_ADDUSER:
                return self.add_user(session)
            if command == p.CMD_ARCHIVES:
                return self.list_archives(session)
            if line.startswith(p.CMD_LOAD):
                return self.load(session, line[len(p.CMD_LOAD):].strip())
        self.chat(session, line)

    def chat(self, session: Session, message: str):
        # Logged before broadcast; a log failure does not stop the broadcast.
        # Rotation kicks under the transcript lock, so the check and append
        # cannot straddle an archive.
        with self.transcript.lock:
            if session.kicked.is_set():
                return
            self.transcript.append(TranscriptLine(session.identity, message))
        self.registry.broadcast(session, p.chat_line(session.identity, message))

    def add_user(self, session: Session):
        try:
            self.store.rotate()
        except PersistenceError:
            session.send(p.ROTATE_FAILED)

    def list_archives(self, session: Session):
        names = self.archive.list_archives()
        if not names:
            session.send(p.ARCHIVES_NONE)
            return
        session.send(p.ARCHIVES_HEADER)
        session.send_lines(f"- {name}" for name in names)

    def load(self, session: Session, name: str):
        try:
            lines = self.archive.load_archive(name)
        except ArchiveNotFound:
            session.send(p.ARCHIVE_NOT_FOUND)
            return

        session.send(p.ARCHIVE_LOADING)
        try:
            session.send_lines(lines)
        except OSError as e:
            logger.error("Error reading archive %s: %s", name, e)
            session.send(p.ARCHIVE_LOAD_FAILED)
            return

        try:
            user_id, password = self.store.revive(self.archive.derive_identity(name))
        except PersistenceError:
            session.send(p.REVIVE_FAILED)
            return
        session.send_lines(p.revived_credentials_notice(user_id, password))
