"""Replay protection for attestations."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import datetime
from typing import Protocol

from faucet_gate.core.errors import ReplayError
from faucet_gate.db.time import utcnow
from faucet_gate.repositories import (
    LegacyTokenRecord,
    LegacyTokenStore,
    PostUsageRecord,
    PostUsageStore,
)

logger = logging.getLogger(__name__)


class ReplayStore(PostUsageStore, LegacyTokenStore, Protocol):
    """Store capabilities the replay guard needs."""


class ReplayGuard:
    """Service preventing an attestation from backing more than one claim.

    Signed tokens cannot be revoked, so single use is enforced per post id:
    the first successful claim for a post wins and every later one is a replay.
    Opaque legacy tokens are additionally tracked by exact string.
    """

    def __init__(self, store: ReplayStore, *, clock: Callable[[], datetime] = utcnow) -> None:
        self._store = store
        self._clock = clock

    def is_post_used(self, post_id: str) -> bool:
        """Return True if the post already backed a successful claim."""
        return self._store.is_post_used(post_id)

    def get_post_usage(self, post_id: str) -> PostUsageRecord | None:
        return self._store.get_post_usage(post_id)

    def mark_post_used(self, post_id: str, token: str, wallet_address: str) -> PostUsageRecord:
        """Record the post as consumed by ``wallet_address``.

        The first write is authoritative.

        Raises:
            ReplayError: If another claim already marked the post.
        """
        record = PostUsageRecord(
            post_id=post_id,
            used_by_token=token,
            used_by_wallet=wallet_address,
            used_at=self._clock(),
        )
        if not self._store.try_mark_post_used(record):
            raise ReplayError("This post has already been used for a claim")
        logger.info("Post %s consumed by %s", post_id, wallet_address)
        return record

    def reset_post(self, post_id: str) -> bool:
        """Administrative override: make a post usable again."""
        removed = self._store.reset_post_usage(post_id)
        if removed:
            logger.warning("Post usage for %s was reset by an administrator", post_id)
        return removed

    # --- Legacy opaque tokens -------------------------------------------------------
    def create_opaque_token(self, wallet_address: str, post_id: str) -> LegacyTokenRecord:
        """Issue an opaque token that can only be resolved through this store."""
        record = LegacyTokenRecord(
            token=str(uuid.uuid4()),
            wallet_address=wallet_address,
            post_id=post_id,
            created_at=self._clock(),
        )
        self._store.create_legacy_token(record)
        return record

    def lookup_opaque_token(self, token: str) -> LegacyTokenRecord | None:
        """Return the legacy record for an exact token string."""
        return self._store.get_legacy_token(token)

    def mark_opaque_token_used(self, token: str) -> bool:
        """Mark a legacy token used; False if unknown or already used."""
        return self._store.mark_legacy_token_used(token, self._clock())
