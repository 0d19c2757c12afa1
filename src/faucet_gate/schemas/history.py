"""Claim history schemas."""
from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import Field

from .common import CamelModel


class HistoryEntryResponse(CamelModel):
    """One claim in a wallet's history."""

    id: str
    timestamp: datetime
    amount: int = Field(..., description="Amount in lamports")
    tx_ref: str
    source: Literal["local", "ledger"]
