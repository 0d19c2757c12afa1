"""Encoding and MAC helpers used by the attestation token codec."""
from __future__ import annotations

import base64
import hashlib
import hmac


def b64url_encode(data: bytes) -> str:
    """Encode bytes as unpadded URL-safe base64."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode()


def b64url_decode(data: str) -> bytes:
    """Decode URL-safe base64, accepting omitted padding.

    Raises:
        ValueError: If the input is not valid base64.
    """
    padding = "=" * (-len(data) % 4)
    try:
        return base64.urlsafe_b64decode((data + padding).encode())
    except (ValueError, TypeError) as err:
        raise ValueError(f"Invalid base64 encoding: {err}") from err


def hmac_sha256_hex(secret: str, message: str) -> str:
    """Return the lowercase hex HMAC-SHA256 of ``message`` under ``secret``."""
    return hmac.new(secret.encode(), message.encode(), hashlib.sha256).hexdigest()


def consteq(a: str, b: str) -> bool:
    """Compare two strings in constant time."""
    return hmac.compare_digest(a.encode(), b.encode())
