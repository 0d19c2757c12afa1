"""Store records and the interfaces the claim engine depends on.

Every store method is a per-key linearizable read-modify-write: concurrent
callers touching the same key observe one another's writes in a single order.
The compare-and-set methods (``try_mark_post_used``, ``mark_legacy_token_used``)
report whether *this* caller won.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol


@dataclass(frozen=True)
class PostUsageRecord:
    """Record that a post has backed a successful claim."""

    post_id: str
    used_by_token: str
    used_by_wallet: str
    used_at: datetime

    @property
    def used(self) -> bool:
        return True


@dataclass(frozen=True)
class LegacyTokenRecord:
    """Opaque token from the pre-signature verification flow."""

    token: str
    wallet_address: str
    post_id: str
    created_at: datetime
    used: bool = False
    used_at: datetime | None = None


@dataclass(frozen=True)
class ClaimRecord:
    """One successful disbursement."""

    id: str
    wallet_address: str
    timestamp: datetime
    amount: int
    tx_ref: str


@dataclass(frozen=True)
class IssuanceRecord:
    """Latest attestation issued to a wallet."""

    wallet_address: str
    post_url: str
    post_id: str
    issued_at: datetime


class PostUsageStore(Protocol):
    """Keyed record of consumed posts."""

    def is_post_used(self, post_id: str) -> bool: ...

    def get_post_usage(self, post_id: str) -> PostUsageRecord | None: ...

    def try_mark_post_used(self, record: PostUsageRecord) -> bool: ...

    def reset_post_usage(self, post_id: str) -> bool: ...


class LegacyTokenStore(Protocol):
    """Lookup table for opaque legacy tokens."""

    def create_legacy_token(self, record: LegacyTokenRecord) -> None: ...

    def get_legacy_token(self, token: str) -> LegacyTokenRecord | None: ...

    def mark_legacy_token_used(self, token: str, used_at: datetime) -> bool: ...


class ClaimHistoryStore(Protocol):
    """Per-wallet, append-only claim history."""

    def append_claim(self, record: ClaimRecord) -> None: ...

    def list_claims(self, wallet_address: str) -> list[ClaimRecord]: ...

    def last_claim_time(self, wallet_address: str) -> datetime | None: ...


class IssuanceStore(Protocol):
    """Per-wallet attestation issuance log."""

    def last_issuance(self, wallet_address: str) -> IssuanceRecord | None: ...

    def record_issuance(self, record: IssuanceRecord) -> None: ...


class FaucetStore(PostUsageStore, LegacyTokenStore, ClaimHistoryStore, IssuanceStore, Protocol):
    """Every store capability the faucet needs, behind one object."""
