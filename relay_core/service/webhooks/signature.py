"""
Webhook Signature Signing and Verification.

Header format (public contract, implemented independently by receivers):

    X-Relay-Signature: t=<unix seconds>,v1=<hex HMAC-SHA256>

The HMAC is keyed with the endpoint secret and computed over the bytes
``b"<timestamp>." + payload``. Receivers reject signatures whose
timestamp is more than ``tolerance_seconds`` away from their clock.

Usage:
    header = sign(body, secret)
    assert verify(body, header, secret)
"""

import hashlib
import hmac
import time

SIGNATURE_HEADER = "X-Relay-Signature"
SIGNATURE_VERSION = "v1"
DEFAULT_TOLERANCE_SECONDS = 300


def compute_signature(payload: bytes, secret: str, timestamp: int) -> str:
    """
    Compute the hex HMAC-SHA256 over ``"{timestamp}.{payload}"``.

    Args:
        payload: Raw request body bytes
        secret: Endpoint secret
        timestamp: Unix seconds included in the signed string

    Returns:
        Lowercase hex digest
    """
    signed = f"{timestamp}.".encode("utf-8") + payload
    return hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()


def sign(payload: bytes, secret: str, timestamp: int | None = None) -> str:
    """
    Build the signature header value for a payload.

    Args:
        payload: Raw request body bytes
        secret: Endpoint secret
        timestamp: Unix seconds (defaults to now)

    Returns:
        Header value ``t=<timestamp>,v1=<signature>``
    """
    if timestamp is None:
        timestamp = int(time.time())
    signature = compute_signature(payload, secret, timestamp)
    return f"t={timestamp},{SIGNATURE_VERSION}={signature}"


def parse_signature_header(header: str) -> tuple[int, str] | None:
    """
    Extract the timestamp and v1 signature from a header value.

    Returns:
        (timestamp, signature), or None if either part is missing or
        the timestamp is not an integer
    """
    timestamp_part = None
    signature_part = None

    for part in header.split(","):
        part = part.strip()
        if part.startswith("t=") and timestamp_part is None:
            timestamp_part = part[2:]
        elif part.startswith(f"{SIGNATURE_VERSION}=") and signature_part is None:
            signature_part = part[len(SIGNATURE_VERSION) + 1:]

    if not timestamp_part or not signature_part:
        return None

    try:
        timestamp = int(timestamp_part)
    except ValueError:
        return None

    return timestamp, signature_part


def verify(
    payload: bytes,
    header: str,
    secret: str,
    tolerance_seconds: int = DEFAULT_TOLERANCE_SECONDS,
    now: float | None = None,
) -> bool:
    """
    Verify a signature header against a payload.

    Fails closed: any malformed header, stale timestamp or mismatching
    digest returns False.

    Args:
        payload: Raw request body bytes exactly as received
        header: Signature header value
        secret: Endpoint secret
        tolerance_seconds: Allowed clock distance in either direction
        now: Unix seconds to check against (defaults to now)
    """
    parsed = parse_signature_header(header or "")
    if parsed is None:
        return False

    timestamp, received = parsed
    current = int(now if now is not None else time.time())
    if abs(current - timestamp) > tolerance_seconds:
        return False

    expected = compute_signature(payload, secret, timestamp)

    if len(expected) != len(received):
        return False

    # compare_digest accumulates over every byte without early exit
    return hmac.compare_digest(expected.encode("ascii"), received.encode("ascii", "replace"))
