import hmac
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from relaychat.common.protocol import (
    AdminCredential, ClientCredential, SESSION_CLOSED, new_credentials_notice,
)
from relaychat.common.utils import now_created, short_token
from relaychat.config import ServerConfig
from relaychat.crypto.passwords import hash_password, verify_password
from relaychat.errors import PersistenceError
from relaychat.storage.archive import ArchiveManager

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class CredentialStore:
    """
    Persists the admin credential and the single current client credential.

    The admin file is written once at first boot; the client file is replaced
    wholesale on every rotation or revival. Reads fail closed: a missing,
    unreadable or corrupt file is logged and treated as "no credential".

    ``registry`` is optional so the store can be used without live sessions
    (tests, offline rotation); when present, rotation kicks the active client
    and notifies the addressable admin.
    """

    def __init__(self, cfg: ServerConfig, archive: ArchiveManager, registry=None):
        self.cfg = cfg
        self.archive = archive
        self.registry = registry
        self._lock = threading.Lock()

    # ---- persistence ----

    def _read(self, path: Path, model: Type[M]) -> Optional[M]:
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return model(**json.load(f))
        except (OSError, ValueError, TypeError, ValidationError) as e:
            logger.error("Error reading credentials from %s: %s", path, e)
            return None

    def _write(self, path: Path, record: BaseModel):
        # Temp file + rename so a concurrent reader never sees a partial write.
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(record.model_dump(exclude_none=True), f, indent=2)
            os.replace(tmp, path)
        except OSError as e:
            logger.error("Error saving credentials to %s: %s", path, e)
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise PersistenceError(str(e)) from e

    def read_admin(self) -> Optional[AdminCredential]:
        return self._read(self.cfg.admin_file, AdminCredential)

    def read_client(self) -> Optional[ClientCredential]:
        return self._read(self.cfg.auth_file, ClientCredential)

    def _hash(self, secret: str) -> str:
        return hash_password(secret, self.cfg.hash_iterations)

    # ---- lifecycle ----

    def initialize_if_absent(self):
        if not self.cfg.admin_file.exists():
            try:
                self.save_admin(self.cfg.fallback_admin_id, self.cfg.fallback_admin_password)
            except PersistenceError:
                logger.error("Admin credential not persisted; fallback admin still valid")
        if not self.cfg.auth_file.exists():
            try:
                user_id, _ = self.rotate()
            except PersistenceError:
                logger.error("Initial client credential not persisted")
            else:
                # Nobody is connected to receive the pair at boot.
                logger.info("Initial client credential created for user %s; "
                            "issue /adduser as admin to obtain a usable password", user_id)

    def save_admin(self, admin_id: str, password: str):
        record = AdminCredential(adminId=admin_id, passwordHash=self._hash(password),
                                 created=now_created())
        with self._lock:
            self._write(self.cfg.admin_file, record)

    def rotate(self) -> Tuple[str, str]:
        """Replace the client credential with a fresh random one.

        Archives the live transcript, persists the new credential and kicks the
        active client, all under the transcript lock so log writers see them
        as one step. The plaintext pair is returned once and never stored.
        """
        user_id, password = short_token(), short_token()
        record = ClientCredential(userId=user_id, passwordHash=self._hash(password),
                                  created=now_created())
        with self.archive.transcript.lock:
            self.archive.rotate_live_log()
            with self._lock:
                self._write(self.cfg.auth_file, record)
            if self.registry is not None and self.registry.kick_client(SESSION_CLOSED):
                logger.info("Active client disconnected by rotation")
        logger.info("Client credential rotated (user %s)", user_id)

        if self.registry is not None:
            self.registry.notify_admin(new_credentials_notice(user_id, password))
        return user_id, password

    def revive(self, user_id: str) -> Tuple[str, str]:
        password = short_token()
        record = ClientCredential(userId=user_id, passwordHash=self._hash(password),
                                  revived=now_created())
        with self._lock:
            self._write(self.cfg.auth_file, record)
        logger.info("Client credential revived (user %s)", user_id)
        return user_id, password

    # ---- verification ----

    def _is_fallback_admin(self, identity: str, secret: str) -> bool:
        id_ok = hmac.compare_digest(identity.encode("utf-8"), self.cfg.fallback_admin_id.encode("utf-8"))
        pw_ok = hmac.compare_digest(secret.encode("utf-8"), self.cfg.fallback_admin_password.encode("utf-8"))
        return id_ok and pw_ok

    def verify_admin(self, identity: str, secret: str) -> bool:
        if self._is_fallback_admin(identity, secret):
            return True
        admin = self.read_admin()
        return admin is not None and admin.adminId == identity and \
            verify_password(secret, admin.passwordHash)

    def verify_client(self, identity: str, secret: str) -> bool:
        client = self.read_client()
        return client is not None and client.userId == identity and \
            verify_password(secret, client.passwordHash)
