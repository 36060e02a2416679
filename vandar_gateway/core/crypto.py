"""
Signing and hashing utilities.

Implements:
- HMAC-SHA256 signing with constant-time verification
- Card number masking and hashing
- Secure random strings and nonces
- Callback source IP checks
"""
import base64
import hashlib
import hmac
import secrets
import threading
import time
from typing import Iterable

MASK_CHAR = "*"
FULL_MASK = "****"

_request_id_lock = threading.Lock()
_last_request_id = 0


def sign_data(data: str, key: str) -> str:
    """
    Sign data with HMAC-SHA256.

    Args:
        data: Payload to sign
        key: Signing key

    Returns:
        str: Hex-encoded signature
    """
    return hmac.new(key.encode(), data.encode(), hashlib.sha256).hexdigest()


def verify_signature(signature: str, data: str, key: str) -> bool:
    """Check a signature against ``data`` using a constant-time comparison."""
    expected = sign_data(data, key)
    return hmac.compare_digest(signature.encode(), expected.encode())


def generate_random_bytes(n: int) -> bytes:
    """
    Generate cryptographically secure random bytes.

    Raises:
        ValueError: If ``n`` is not positive
    """
    if n <= 0:
        raise ValueError("number of bytes must be positive")
    return secrets.token_bytes(n)


def generate_random_string(n: int) -> str:
    """URL-safe random string of exactly ``n`` characters."""
    return base64.urlsafe_b64encode(generate_random_bytes(n)).decode()[:n]


def generate_nonce() -> str:
    return generate_random_string(16)


def generate_request_id() -> str:
    """
    Timestamp-derived correlation id.

    Ids are strictly increasing within the process: two calls in the same
    nanosecond still get distinct values.
    """
    global _last_request_id
    with _request_id_lock:
        now = time.time_ns()
        _last_request_id = max(now, _last_request_id + 1)
        return str(_last_request_id)


def sanitize_card_number(card_number: str) -> str:
    """Strip everything but digits."""
    return "".join(ch for ch in card_number if ch.isdigit())


def hash_card_number(card_number: str) -> str:
    """SHA-256 hex digest of the digits of a card number."""
    return hashlib.sha256(sanitize_card_number(card_number).encode()).hexdigest()


def mask_card_number(card_number: str) -> str:
    """
    Mask all but the last four digits.

    Inputs with fewer than four digits are masked entirely.

    Example:
        >>> mask_card_number("6037-9912-3456-7890")
        '************7890'
    """
    clean = sanitize_card_number(card_number)
    if len(clean) < 4:
        return FULL_MASK
    return MASK_CHAR * (len(clean) - 4) + clean[-4:]


def verify_callback_ip(ip: str, allow_list: Iterable[str]) -> bool:
    """Exact-match ``ip`` against ``allow_list``; an empty list allows all."""
    allowed = list(allow_list)
    if not allowed:
        return True
    return ip in allowed
