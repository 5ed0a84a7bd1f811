"""
Parent PIN hashing.

Stored hashes are ``pbkdf2_sha256$<iterations>$<salt>$<hex digest>`` so the
work factor can be raised later: hashes made with fewer iterations still
verify and are reported by ``needs_rehash``.
"""
import hashlib
import hmac
import secrets

ALGORITHM = "pbkdf2_sha256"
ITERATIONS = 120_000


def _derive(pin: str, salt: str, iterations: int) -> str:
    return hashlib.pbkdf2_hmac("sha256", pin.encode("utf-8"), salt.encode("utf-8"), iterations).hex()


def _parse(stored_hash: str):
    parts = (stored_hash or "").split("$")
    if len(parts) != 4 or parts[0] != ALGORITHM or not parts[1].isdigit():
        return None
    return int(parts[1]), parts[2], parts[3]


def hash_pin(pin: str, iterations: int = ITERATIONS) -> str:
    salt = secrets.token_hex(16)
    return f"{ALGORITHM}${iterations}${salt}${_derive(pin, salt, iterations)}"


def verify_pin(pin: str, stored_hash: str) -> bool:
    parsed = _parse(stored_hash)
    if parsed is None:
        return False
    iterations, salt, digest = parsed
    return hmac.compare_digest(_derive(pin, salt, iterations), digest)


def needs_rehash(stored_hash: str) -> bool:
    parsed = _parse(stored_hash)
    return parsed is None or parsed[0] < ITERATIONS
