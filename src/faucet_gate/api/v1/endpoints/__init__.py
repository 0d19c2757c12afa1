# src/faucet_gate/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .admin import router as admin_router
from .attestations import router as attestations_router
from .claims import router as claims_router
from .eligibility import router as eligibility_router
from .history import router as history_router
from .system import router as system_router
from .transactions import router as transactions_router

__all__ = [
    "admin_router",
    "attestations_router",
    "claims_router",
    "eligibility_router",
    "history_router",
    "system_router",
    "transactions_router",
]
