# src/faucet_gate/services/__init__.py
"""Claim engine services for Faucet Gate."""

from .confirmation import ConfirmationVerifier, VerificationResult
from .dispatcher import TransferDispatcher
from .eligibility import EligibilityResolver, EligibilityResult
from .ledger import LedgerClient, get_ledger_client
from .orchestrator import ClaimOrchestrator, get_claim_orchestrator
from .posts import PostInspector
from .replay import ReplayGuard
from .tokens import AttestationPayload, TokenCodec

__all__ = [
    "AttestationPayload",
    "ClaimOrchestrator",
    "ConfirmationVerifier",
    "EligibilityResolver",
    "EligibilityResult",
    "LedgerClient",
    "PostInspector",
    "ReplayGuard",
    "TokenCodec",
    "TransferDispatcher",
    "VerificationResult",
    "get_claim_orchestrator",
    "get_ledger_client",
]
