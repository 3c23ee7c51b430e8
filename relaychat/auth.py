import logging
from dataclasses import dataclass
from typing import Optional

from relaychat.common.protocol import AUTH_FAILED, PROMPT_IDENTITY, PROMPT_SECRET, AuthOutcome
from relaychat.common.utils import LineChannel
from relaychat.storage.credentials import CredentialStore

logger = logging.getLogger(__name__)

@dataclass
class AuthResult:
    outcome: AuthOutcome
    identity: Optional[str] = None

class AuthGate:
    """Runs the identity/secret prompt exchange and classifies the caller.

    Admin is checked first and is never capacity-limited. A CLIENT result is
    still subject to SessionRegistry.admit_client.
    """

    def __init__(self, store: CredentialStore):
        self.store = store

    def classify(self, identity: str, secret: str) -> AuthOutcome:
        if self.store.verify_admin(identity, secret):
            return AuthOutcome.ADMIN
        if self.store.verify_client(identity, secret):
            return AuthOutcome.CLIENT
        return AuthOutcome.REJECTED

    def authenticate(self, channel: LineChannel, addr=None) -> AuthResult:
        channel.send_line(PROMPT_IDENTITY)
        identity = channel.recv_line()
        if identity is None:
            return AuthResult(AuthOutcome.REJECTED)
        channel.send_line(PROMPT_SECRET)
        secret = channel.recv_line()
        if secret is None:
            return AuthResult(AuthOutcome.REJECTED, identity)

        outcome = self.classify(identity, secret)
        if outcome is AuthOutcome.REJECTED:
            logger.info("Authentication failed for %r from %s", identity, addr)
            channel.send_line(AUTH_FAILED)
        return AuthResult(outcome, identity)
