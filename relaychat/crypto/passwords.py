import os
from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from relaychat.common.utils import b64e, b64d

# Stored form: pbkdf2_sha256$<iterations>$<salt b64>$<key b64>
SCHEME = "pbkdf2_sha256"
DEFAULT_ITERATIONS = 200_000
SALT_LEN = 16
KEY_LEN = 32

def _kdf(salt: bytes, iterations: int) -> PBKDF2HMAC:
    return PBKDF2HMAC(algorithm=hashes.SHA256(), length=KEY_LEN, salt=salt, iterations=iterations)

def hash_password(password: str, iterations: int = DEFAULT_ITERATIONS) -> str:
    salt = os.urandom(SALT_LEN)
    key = _kdf(salt, iterations).derive(password.encode("utf-8"))
    return f"{SCHEME}${iterations}${b64e(salt)}${b64e(key)}"

def verify_password(password: str, stored: str) -> bool:
    try:
        scheme, iterations, salt_b64, key_b64 = stored.split("$")
        if scheme != SCHEME:
            return False
        salt, key = b64d(salt_b64), b64d(key_b64)
        _kdf(salt, int(iterations)).verify(password.encode("utf-8"), key)
        return True
    except InvalidKey:
        return False
    except (ValueError, TypeError):
        # Malformed hash, treated as no match.
        return False
