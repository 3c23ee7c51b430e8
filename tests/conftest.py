"""Test configuration and fixtures."""
import pytest

from relaychat.config import ServerConfig
from relaychat.server import RelayServer
from relaychat.storage.archive import ArchiveManager
from relaychat.storage.credentials import CredentialStore
from relaychat.storage.transcript import TranscriptLog


@pytest.fixture
def cfg(tmp_path):
    # Low work factor keeps the suite fast; the hash format is unchanged.
    return ServerConfig(data_dir=tmp_path, hash_iterations=1000)


@pytest.fixture
def transcript(cfg):
    return TranscriptLog(cfg.chat_log)


@pytest.fixture
def archive(cfg, transcript):
    return ArchiveManager(transcript, cfg.archive_dir)


@pytest.fixture
def store(cfg, archive):
    return CredentialStore(cfg, archive)


@pytest.fixture
def server(cfg):
    srv = RelayServer(cfg)
    srv.initialize()
    yield srv


@pytest.fixture
def peers(server):
    from helpers import Peer

    opened = []

    def connect():
        peer = Peer(server)
        opened.append(peer)
        return peer

    yield connect
    for peer in opened:
        peer.close()
