"""Claim-related Pydantic schemas."""
from __future__ import annotations

from pydantic import Field

from .common import CamelModel


class ClaimRequest(CamelModel):
    """Schema for claiming the faucet allotment."""

    wallet_address: str = Field(..., min_length=1)
    verification_token: str | None = Field(None, description="Attestation token")


class ClaimResponse(CamelModel):
    """Schema for a dispatched claim."""

    success: bool = True
    signature: str
    amount: int = Field(..., description="Amount sent in lamports")
    recipient: str
    message: str
    explorer_url: str
    verified: bool
    verification_method: str
    provisional: bool = Field(
        False,
        description="True when the transfer was accepted without positive confirmation",
    )
