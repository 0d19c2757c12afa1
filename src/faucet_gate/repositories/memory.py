"""Process-lifetime in-memory store."""
from __future__ import annotations

from collections import defaultdict
from dataclasses import replace
from datetime import datetime
from threading import Lock

from .base import ClaimRecord, IssuanceRecord, LegacyTokenRecord, PostUsageRecord

__all__ = ["MemoryStore"]


class MemoryStore:
    """Dict-backed store shared by every request handled by this process.

    A single lock guards all maps, which gives per-key linearizability for the
    compare-and-set operations. Nothing survives a restart.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._post_usage: dict[str, PostUsageRecord] = {}
        self._legacy_tokens: dict[str, LegacyTokenRecord] = {}
        self._claims: dict[str, list[ClaimRecord]] = defaultdict(list)
        self._issuance: dict[str, IssuanceRecord] = {}

    # --- Post usage ---------------------------------------------------------------
    def is_post_used(self, post_id: str) -> bool:
        with self._lock:
            return post_id in self._post_usage

    def get_post_usage(self, post_id: str) -> PostUsageRecord | None:
        with self._lock:
            return self._post_usage.get(post_id)

    def try_mark_post_used(self, record: PostUsageRecord) -> bool:
        with self._lock:
            if record.post_id in self._post_usage:
                return False
            self._post_usage[record.post_id] = record
            return True

    def reset_post_usage(self, post_id: str) -> bool:
        with self._lock:
            return self._post_usage.pop(post_id, None) is not None

    # --- Legacy tokens ------------------------------------------------------------
    def create_legacy_token(self, record: LegacyTokenRecord) -> None:
        with self._lock:
            self._legacy_tokens[record.token] = record

    def get_legacy_token(self, token: str) -> LegacyTokenRecord | None:
        with self._lock:
            return self._legacy_tokens.get(token)

    def mark_legacy_token_used(self, token: str, used_at: datetime) -> bool:
        with self._lock:
            record = self._legacy_tokens.get(token)
            if record is None or record.used:
                return False
            self._legacy_tokens[token] = replace(record, used=True, used_at=used_at)
            return True

    # --- Claim history ------------------------------------------------------------
    def append_claim(self, record: ClaimRecord) -> None:
        with self._lock:
            self._claims[record.wallet_address].append(record)

    def list_claims(self, wallet_address: str) -> list[ClaimRecord]:
        with self._lock:
            claims = list(self._claims.get(wallet_address, ()))
        return sorted(claims, key=lambda claim: claim.timestamp, reverse=True)

    def last_claim_time(self, wallet_address: str) -> datetime | None:
        with self._lock:
            claims = self._claims.get(wallet_address)
            if not claims:
                return None
            return max(claim.timestamp for claim in claims)

    # --- Issuance log -------------------------------------------------------------
    def last_issuance(self, wallet_address: str) -> IssuanceRecord | None:
        with self._lock:
            return self._issuance.get(wallet_address)

    def record_issuance(self, record: IssuanceRecord) -> None:
        with self._lock:
            self._issuance[record.wallet_address] = record
