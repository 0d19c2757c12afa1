# src/faucet_gate/models/claim.py
"""Claim history model."""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from faucet_gate.db.session import Base


class Claim(Base):
    """Append-only record of a disbursement to a wallet."""

    __tablename__ = "claims"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    wallet_address: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    tx_ref: Mapped[str] = mapped_column(Text, nullable=False)
