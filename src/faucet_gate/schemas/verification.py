"""Transaction verification schemas."""
from __future__ import annotations

from typing import Any

from pydantic import Field

from .common import CamelModel


class VerifyTransactionRequest(CamelModel):
    """Schema for verifying a transaction against a wallet."""

    signature: str = Field(..., min_length=1)
    wallet_address: str = Field(..., min_length=1)


class VerifyTransactionResponse(CamelModel):
    """Result of the multi-method confirmation."""

    signature: str
    wallet_address: str
    found: bool
    success: bool
    method: str
    details: dict[str, Any] | None = None
    attempts: int
