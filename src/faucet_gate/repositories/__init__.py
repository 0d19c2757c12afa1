"""Store interfaces and their in-memory and SQL implementations."""
from __future__ import annotations

from faucet_gate.core.errors import ConfigurationError
from faucet_gate.core.settings import Settings

from .base import (
    ClaimHistoryStore,
    ClaimRecord,
    FaucetStore,
    IssuanceRecord,
    IssuanceStore,
    LegacyTokenRecord,
    LegacyTokenStore,
    PostUsageRecord,
    PostUsageStore,
)
from .memory import MemoryStore
from .sql import SqlStore

__all__ = [
    "ClaimHistoryStore", "ClaimRecord",
    "FaucetStore",
    "IssuanceRecord", "IssuanceStore",
    "LegacyTokenRecord", "LegacyTokenStore",
    "MemoryStore",
    "PostUsageRecord", "PostUsageStore",
    "SqlStore",
    "build_store",
]


def build_store(config: Settings) -> FaucetStore:
    """Return the store selected by ``config.store_backend``."""
    backend = config.store_backend.lower()
    if backend == "memory":
        return MemoryStore()
    if backend == "sql":
        from faucet_gate.db.session import SessionLocal, create_tables

        create_tables()
        return SqlStore(SessionLocal)
    raise ConfigurationError(f"Unknown store backend: {config.store_backend}")
