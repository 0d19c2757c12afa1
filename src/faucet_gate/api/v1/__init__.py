# src/faucet_gate/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    admin_router,
    attestations_router,
    claims_router,
    eligibility_router,
    history_router,
    system_router,
    transactions_router,
)

__all__ = [
    "admin_router",
    "attestations_router",
    "claims_router",
    "eligibility_router",
    "history_router",
    "system_router",
    "transactions_router",
]
