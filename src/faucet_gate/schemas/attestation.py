"""Attestation-related Pydantic schemas."""
from __future__ import annotations

from datetime import datetime

from pydantic import Field

from .common import CamelModel


class AttestationRequest(CamelModel):
    """Schema for requesting an attestation for a social post."""

    post_url: str = Field(..., min_length=1, description="Link to the social post")
    wallet_address: str = Field(..., min_length=1, description="Base58 wallet address")


class AttestationResponse(CamelModel):
    """Schema for an issued attestation."""

    success: bool = True
    message: str = "Post verified successfully!"
    post_id: str
    wallet_address: str
    verified_at: datetime
    verification_token: str
    legacy_token: str = Field(..., description="Opaque token for clients predating signed tokens")
