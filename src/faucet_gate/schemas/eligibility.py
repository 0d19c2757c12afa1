"""Eligibility-related Pydantic schemas."""
from __future__ import annotations

from datetime import datetime

from .common import CamelModel


class EligibilityResponse(CamelModel):
    """Schema for a wallet's claim eligibility."""

    eligible: bool
    message: str
    last_claim_time: datetime | None = None
    next_claim_time: datetime | None = None
    remaining_hours: int | None = None
    warning: str | None = None
    rpc_status: str
    last_transaction: str | None = None
    transaction_count: int = 0
