import base64
import hashlib
import hmac
import secrets

from config import settings

SCHEME = "scrypt"
SALT_BYTES = 16
RAW_KEY_BYTES = 32

# Stored hashes do not record their cost, so these are fixed for every key
# ever issued. Changing them invalidates all existing keys.
SCRYPT_N = 16384
SCRYPT_R = 8
SCRYPT_P = 1
SCRYPT_DKLEN = 64


def generate_raw_key() -> str:
    # 32 bytes -> 43 chars of base64url; the prefix makes keys recognizable in configs and logs
    token = base64.urlsafe_b64encode(secrets.token_bytes(RAW_KEY_BYTES)).rstrip(b"=").decode()
    return f"{settings.API_KEY_PREFIX}{token}"


def _derive(raw_key: str, salt: bytes, dklen: int) -> bytes:
    return hashlib.scrypt(
        raw_key.encode(),
        salt=salt,
        n=SCRYPT_N,
        r=SCRYPT_R,
        p=SCRYPT_P,
        dklen=dklen,
        # scrypt needs roughly 128 * n * r bytes
        maxmem=128 * SCRYPT_N * SCRYPT_R * 2,
    )


def hash_key(raw_key: str) -> str:
    salt = secrets.token_bytes(SALT_BYTES)
    derived = _derive(raw_key, salt, SCRYPT_DKLEN)
    return f"{SCHEME}${salt.hex()}${derived.hex()}"


def verify_key(raw_key: str, stored: str) -> bool:
    if not isinstance(stored, str) or not stored.startswith(f"{SCHEME}$"):
        return False
    parts = stored.split("$")
    if len(parts) != 3:
        return False
    try:
        salt = bytes.fromhex(parts[1])
        expected = bytes.fromhex(parts[2])
    except ValueError:
        return False
    if not salt or not expected:
        return False

    try:
        actual = _derive(raw_key, salt, len(expected))
    except ValueError:
        return False
    return hmac.compare_digest(actual, expected)
