#!/usr/bin/env python3
import logging, socket, threading
from typing import Optional

from relaychat.auth import AuthGate
from relaychat.common import protocol as p
from relaychat.common.protocol import Admission, AuthOutcome, Role
from relaychat.common.utils import LineChannel
from relaychat.config import ServerConfig
from relaychat.media import MediaRelay
from relaychat.relay import ChatRelay
from relaychat.sessions import Session, SessionRegistry
from relaychat.storage.archive import ArchiveManager
from relaychat.storage.credentials import CredentialStore
from relaychat.storage.transcript import TranscriptLog

logger = logging.getLogger(__name__)


class RelayServer:
    """Server context: owns the registry and stores and is passed to every
    connection handler. Independent instances share no state."""

    def __init__(self, cfg: ServerConfig):
        self.cfg = cfg
        self.registry = SessionRegistry()
        self.transcript = TranscriptLog(cfg.chat_log)
        self.archive = ArchiveManager(self.transcript, cfg.archive_dir)
        self.store = CredentialStore(cfg, self.archive, self.registry)
        self.gate = AuthGate(self.store)
        self.relay = ChatRelay(self.store, self.archive, self.transcript, self.registry)

    def initialize(self):
        self.cfg.data_dir.mkdir(parents=True, exist_ok=True)
        self.store.initialize_if_absent()

    def admit(self, channel: LineChannel, outcome: AuthOutcome, identity: str, addr) -> Optional[Session]:
        # The success notice is queued before registration so it precedes any broadcast.
        if outcome is AuthOutcome.ADMIN:
            session = Session(channel, Role.ADMIN, identity, addr)
            session.send(p.AUTH_OK_ADMIN)
            self.registry.admit_admin(session)
        else:
            session = Session(channel, Role.CLIENT, identity, addr)
            session.send(p.AUTH_OK_CLIENT)
            if self.registry.admit_client(session) is Admission.ALREADY_ACTIVE:
                logger.info("Rejected second client %r from %s", identity, addr)
                channel.send_line(p.AUTH_ONE_CLIENT)
                return None
        session.start()
        logger.info("Authenticated %r", session)
        return session

    def handle(self, conn: socket.socket, addr=None):
        channel = LineChannel(conn)
        session = None
        try:
            result = self.gate.authenticate(channel, addr)
            if result.outcome is AuthOutcome.REJECTED:
                return
            session = self.admit(channel, result.outcome, result.identity, addr)
            if session is None:
                return
            self.relay.run(session)
        except OSError as e:
            logger.info("Connection %s dropped: %s", addr, e)
        except Exception:
            logger.exception("Error handling connection %s", addr)
        finally:
            if session is not None:
                self.registry.remove(session)
                session.disconnect()
                session.join(timeout=5)
            channel.close()
            logger.debug("Connection %s closed", addr)

    def serve_forever(self):
        srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        srv.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        srv.bind((self.cfg.host, self.cfg.port))
        srv.listen(5)
        print(f"Server listening on {self.cfg.host}:{self.cfg.port}")
        while True:
            conn, addr = srv.accept()
            threading.Thread(target=self.handle, args=(conn, addr), daemon=True).start()


def main():
    cfg = ServerConfig.from_env()
    logging.basicConfig(level=cfg.log_level.upper(), format="%(levelname)s:%(name)s:%(message)s")
    server = RelayServer(cfg)
    server.initialize()

    media = MediaRelay(cfg.host, cfg.media_port)
    threading.Thread(target=media.serve_forever, name="media-relay", daemon=True).start()

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass

if __name__ == "__main__":
    main()
