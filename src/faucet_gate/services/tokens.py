"""Stateless signed attestation tokens.

Token format::

    base64url(JSON payload) + "." + hex(HMAC-SHA256(secret, base64url part))

Verification needs nothing but the secret. Revocation is not possible at
the token level; single use is enforced by the replay guard on the post id.
"""
from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Final

from faucet_gate.core.errors import ConfigurationError
from faucet_gate.core.security import b64url_decode, b64url_encode, consteq, hmac_sha256_hex
from faucet_gate.core.settings import Settings, settings

TOKEN_SEPARATOR: Final[str] = "."
# Tolerated clock skew for tokens stamped slightly in the future.
_FUTURE_SKEW_MS: Final[int] = 60_000

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttestationPayload:
    """Claims carried by an attestation token."""

    wallet_address: str
    post_id: str
    issued_at_ms: int

    def to_json(self) -> str:
        return json.dumps(
            {"walletAddress": self.wallet_address, "postId": self.post_id, "iat": self.issued_at_ms},
            separators=(",", ":"),
        )

    @classmethod
    def from_json(cls, raw: str) -> AttestationPayload:
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("payload must be a JSON object")
        wallet = data["walletAddress"]
        post_id = data["postId"]
        issued_at = data["iat"]
        if not isinstance(wallet, str) or not isinstance(post_id, str):
            raise ValueError("walletAddress and postId must be strings")
        if not isinstance(issued_at, int) or isinstance(issued_at, bool):
            raise ValueError("iat must be an integer")
        return cls(wallet_address=wallet, post_id=post_id, issued_at_ms=issued_at)


def _now_ms() -> int:
    return int(time.time() * 1000)


class TokenCodec:
    """Issue and verify attestation tokens under a server-held secret."""

    def __init__(
        self,
        secret: str | None,
        *,
        max_age_seconds: int = 0,
        clock_ms: Callable[[], int] = _now_ms,
    ) -> None:
        """Initialize the codec.

        Args:
            secret: HMAC secret. Required; a missing secret is a configuration error.
            max_age_seconds: Tokens older than this verify as invalid; 0 disables expiry.
            clock_ms: Source of the current time in epoch milliseconds.
        """
        if not secret:
            raise ConfigurationError("Attestation signing secret is not configured")
        self._secret = secret
        self._max_age_ms = max(0, int(max_age_seconds)) * 1000
        self._clock_ms = clock_ms

    def issue(self, wallet_address: str, post_id: str) -> str:
        """Return a signed token binding ``wallet_address`` to ``post_id``."""
        payload = AttestationPayload(
            wallet_address=wallet_address,
            post_id=post_id,
            issued_at_ms=self._clock_ms(),
        )
        encoded = b64url_encode(payload.to_json().encode())
        return f"{encoded}{TOKEN_SEPARATOR}{hmac_sha256_hex(self._secret, encoded)}"

    def verify(self, token: str) -> AttestationPayload | None:
        """Return the payload of a valid token, or None.

        Fails closed: a missing separator, a signature mismatch, an undecodable
        payload or an expired token all yield None. Never raises.
        """
        try:
            encoded, sep, signature = token.partition(TOKEN_SEPARATOR)
            if not sep or not encoded or not signature:
                return None
            if not consteq(hmac_sha256_hex(self._secret, encoded), signature):
                return None
            payload = AttestationPayload.from_json(b64url_decode(encoded).decode("utf-8"))
        except (AttributeError, KeyError, TypeError, ValueError):
            return None

        if self._max_age_ms:
            age_ms = self._clock_ms() - payload.issued_at_ms
            if age_ms > self._max_age_ms or age_ms < -_FUTURE_SKEW_MS:
                logger.info("Rejected expired attestation for post %s", payload.post_id)
                return None
        return payload


def build_token_codec(config: Settings | None = None) -> TokenCodec:
    """Return a codec configured from settings."""
    cfg = config or settings
    return TokenCodec(cfg.verification_secret, max_age_seconds=cfg.attestation_max_age_seconds)
