"""SQLAlchemy-backed store for deployments that need state across restarts."""
from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from sqlalchemy import delete, desc, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from faucet_gate.db.time import as_utc
from faucet_gate.models import AttestationIssuance, Claim, LegacyToken, PostUsage

from .base import ClaimRecord, IssuanceRecord, LegacyTokenRecord, PostUsageRecord

__all__ = ["SqlStore"]

logger = logging.getLogger(__name__)


class SqlStore:
    """Store implementation that opens a short-lived session per operation."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        """Initialize the store with a session factory such as ``SessionLocal``."""
        self._session_factory = session_factory

    # --- Post usage ---------------------------------------------------------------
    def is_post_used(self, post_id: str) -> bool:
        return self.get_post_usage(post_id) is not None

    def get_post_usage(self, post_id: str) -> PostUsageRecord | None:
        with self._session_factory() as db:
            row = db.get(PostUsage, post_id)
            if row is None:
                return None
            return PostUsageRecord(
                post_id=row.post_id,
                used_by_token=row.used_by_token,
                used_by_wallet=row.used_by_wallet,
                used_at=as_utc(row.used_at),
            )

    def try_mark_post_used(self, record: PostUsageRecord) -> bool:
        with self._session_factory() as db:
            db.add(
                PostUsage(
                    post_id=record.post_id,
                    used_by_token=record.used_by_token,
                    used_by_wallet=record.used_by_wallet,
                    used_at=record.used_at,
                )
            )
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                logger.info("Post %s was already marked used", record.post_id)
                return False
            return True

    def reset_post_usage(self, post_id: str) -> bool:
        with self._session_factory() as db:
            result = db.execute(delete(PostUsage).where(PostUsage.post_id == post_id))
            db.commit()
            return bool(result.rowcount)

    # --- Legacy tokens ------------------------------------------------------------
    def create_legacy_token(self, record: LegacyTokenRecord) -> None:
        with self._session_factory() as db:
            db.merge(
                LegacyToken(
                    token=record.token,
                    wallet_address=record.wallet_address,
                    post_id=record.post_id,
                    created_at=record.created_at,
                    used=record.used,
                    used_at=record.used_at,
                )
            )
            db.commit()

    def get_legacy_token(self, token: str) -> LegacyTokenRecord | None:
        with self._session_factory() as db:
            row = db.get(LegacyToken, token)
            if row is None:
                return None
            return LegacyTokenRecord(
                token=row.token,
                wallet_address=row.wallet_address,
                post_id=row.post_id,
                created_at=as_utc(row.created_at),
                used=row.used,
                used_at=as_utc(row.used_at) if row.used_at else None,
            )

    def mark_legacy_token_used(self, token: str, used_at: datetime) -> bool:
        with self._session_factory() as db:
            result = db.execute(
                update(LegacyToken)
                .where(LegacyToken.token == token, LegacyToken.used.is_(False))
                .values(used=True, used_at=used_at)
            )
            db.commit()
            return bool(result.rowcount)

    # --- Claim history ------------------------------------------------------------
    def append_claim(self, record: ClaimRecord) -> None:
        with self._session_factory() as db:
            db.add(
                Claim(
                    id=record.id,
                    wallet_address=record.wallet_address,
                    timestamp=record.timestamp,
                    amount=record.amount,
                    tx_ref=record.tx_ref,
                )
            )
            db.commit()

    def list_claims(self, wallet_address: str) -> list[ClaimRecord]:
        with self._session_factory() as db:
            rows = db.scalars(
                select(Claim)
                .where(Claim.wallet_address == wallet_address)
                .order_by(desc(Claim.timestamp))
            ).all()
            return [
                ClaimRecord(
                    id=row.id,
                    wallet_address=row.wallet_address,
                    timestamp=as_utc(row.timestamp),
                    amount=row.amount,
                    tx_ref=row.tx_ref,
                )
                for row in rows
            ]

    def last_claim_time(self, wallet_address: str) -> datetime | None:
        with self._session_factory() as db:
            latest = db.scalar(
                select(func.max(Claim.timestamp)).where(Claim.wallet_address == wallet_address)
            )
            return as_utc(latest) if latest is not None else None

    # --- Issuance log -------------------------------------------------------------
    def last_issuance(self, wallet_address: str) -> IssuanceRecord | None:
        with self._session_factory() as db:
            row = db.get(AttestationIssuance, wallet_address)
            if row is None:
                return None
            return IssuanceRecord(
                wallet_address=row.wallet_address,
                post_url=row.post_url,
                post_id=row.post_id,
                issued_at=as_utc(row.issued_at),
            )

    def record_issuance(self, record: IssuanceRecord) -> None:
        with self._session_factory() as db:
            db.merge(
                AttestationIssuance(
                    wallet_address=record.wallet_address,
                    post_url=record.post_url,
                    post_id=record.post_id,
                    issued_at=record.issued_at,
                )
            )
            db.commit()
