# src/faucet_gate/models/issuance.py
"""Attestation issuance log used for per-wallet re-verification limits."""

from datetime import datetime

from sqlalchemy import DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from faucet_gate.db.session import Base


class AttestationIssuance(Base):
    """Most recent attestation issued to a wallet."""

    __tablename__ = "attestation_issuance"

    wallet_address: Mapped[str] = mapped_column(Text, primary_key=True)
    post_url: Mapped[str] = mapped_column(Text, nullable=False)
    post_id: Mapped[str] = mapped_column(Text, nullable=False)
    issued_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
