"""Schemas for operational endpoints."""
from __future__ import annotations

from .common import CamelModel


class FaucetStatusResponse(CamelModel):
    """Funding-account configuration and reachability."""

    status: str
    message: str
    faucet_configured: bool
    faucet_address: str | None = None
    balance: int | None = None
    rpc_url: str | None = None


class PostResetResponse(CamelModel):
    """Outcome of an administrative post reset."""

    post_id: str
    reset: bool
