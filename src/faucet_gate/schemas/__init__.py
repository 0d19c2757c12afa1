# src/faucet_gate/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .attestation import AttestationRequest, AttestationResponse
from .claim import ClaimRequest, ClaimResponse
from .eligibility import EligibilityResponse
from .history import HistoryEntryResponse
from .system import FaucetStatusResponse, PostResetResponse
from .verification import VerifyTransactionRequest, VerifyTransactionResponse

__all__ = [
    "AttestationRequest", "AttestationResponse",
    "ClaimRequest", "ClaimResponse",
    "EligibilityResponse",
    "FaucetStatusResponse", "PostResetResponse",
    "HistoryEntryResponse",
    "VerifyTransactionRequest", "VerifyTransactionResponse",
]
