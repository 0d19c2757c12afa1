# src/faucet_gate/models/__init__.py
"""SQLAlchemy models for the SQL-backed faucet store."""

from .claim import Claim
from .issuance import AttestationIssuance
from .replay_protection import LegacyToken, PostUsage

__all__ = [
    "Claim",
    "AttestationIssuance",
    "LegacyToken", "PostUsage",
]
