# src/faucet_gate/models/replay_protection.py
"""Models backing the replay guard."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from faucet_gate.db.session import Base


class PostUsage(Base):
    """Row indicating that a social post has backed a successful claim.

    The primary key on ``post_id`` is what makes marking a post used a
    compare-and-set: a second insert fails with an integrity error.
    """

    __tablename__ = "post_usage"

    post_id: Mapped[str] = mapped_column(Text, primary_key=True)
    used_by_token: Mapped[str] = mapped_column(Text, nullable=False)
    used_by_wallet: Mapped[str] = mapped_column(Text, nullable=False)
    used_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class LegacyToken(Base):
    """Opaque verification token issued before signed attestations existed."""

    __tablename__ = "legacy_tokens"

    token: Mapped[str] = mapped_column(Text, primary_key=True)
    wallet_address: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    post_id: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
