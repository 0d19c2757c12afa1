"""Multi-method confirmation of submitted transfers."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Final

from faucet_gate.core.errors import TransportError
from faucet_gate.core.settings import Settings, settings
from faucet_gate.services.ledger import LedgerClient, LedgerTransaction, parse_transaction

logger = logging.getLogger(__name__)

METHOD_DIRECT_LOOKUP: Final[str] = "direct-lookup"
METHOD_RAW_QUERY: Final[str] = "raw-query"
METHOD_STATUS_CHECK: Final[str] = "status-check"
METHOD_UNVERIFIED: Final[str] = "unverified"

FINALIZED: Final[str] = "finalized"


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of confirming one transaction for one wallet."""

    found: bool
    success: bool
    method: str
    details: dict[str, Any] | None = None
    attempts: int = 0

    @property
    def unverified(self) -> bool:
        return not self.found


# A probe returns a definitive result, or None to try again.
_Probe = Callable[[str, str], Awaitable["VerificationResult | None"]]


@dataclass
class _Attempts:
    count: int = 0
    errors: list[str] = field(default_factory=list)


class ConfirmationVerifier:
    """Confirm a transaction through three independent methods in priority order.

    1. ``direct-lookup``: the parsed transaction query.
    2. ``raw-query``: the lowest-level JSON-RPC transaction query.
    3. ``status-check``: signature status without transaction detail.

    Each method is tried up to ``confirmation_max_attempts`` times with a fixed
    backoff; the first definitive answer wins. When nothing is found the result
    is ``unverified`` and the caller applies its own policy.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        *,
        config: Settings | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._ledger = ledger
        self._config = config or settings
        self._sleep = sleep

    async def verify(self, signature: str, wallet_address: str) -> VerificationResult:
        """Return the first definitive verification result for ``signature``."""
        attempts = _Attempts()
        probes: list[tuple[str, _Probe]] = [
            (METHOD_DIRECT_LOOKUP, self._direct_lookup),
            (METHOD_RAW_QUERY, self._raw_query),
            (METHOD_STATUS_CHECK, self._status_check),
        ]
        for method, probe in probes:
            result = await self._run(method, probe, signature, wallet_address, attempts)
            if result is not None:
                logger.info(
                    "Transaction %s verified by %s: success=%s", signature, method, result.success
                )
                return result

        logger.warning("Transaction %s could not be verified by any method", signature)
        return VerificationResult(
            found=False,
            success=False,
            method=METHOD_UNVERIFIED,
            details={"errors": attempts.errors} if attempts.errors else None,
            attempts=attempts.count,
        )

    async def _run(
        self,
        method: str,
        probe: _Probe,
        signature: str,
        wallet_address: str,
        attempts: _Attempts,
    ) -> VerificationResult | None:
        max_attempts = max(1, self._config.confirmation_max_attempts)
        for attempt in range(1, max_attempts + 1):
            attempts.count += 1
            try:
                result = await probe(signature, wallet_address)
            except TransportError as exc:
                logger.debug("%s attempt %s for %s failed: %s", method, attempt, signature, exc)
                attempts.errors.append(f"{method}: {exc.message}")
                result = None
            if result is not None:
                return VerificationResult(
                    found=result.found,
                    success=result.success,
                    method=method,
                    details=result.details,
                    attempts=attempts.count,
                )
            if attempt < max_attempts:
                await self._sleep(self._config.confirmation_backoff_seconds)
        return None

    @staticmethod
    def _judge(tx: LedgerTransaction, wallet_address: str) -> VerificationResult:
        is_for_wallet = tx.involves(wallet_address)
        details = tx.to_details()
        details["isForWallet"] = is_for_wallet
        return VerificationResult(
            found=True,
            success=tx.succeeded and is_for_wallet,
            method="",
            details=details,
        )

    async def _direct_lookup(
        self, signature: str, wallet_address: str
    ) -> VerificationResult | None:
        tx = await self._ledger.get_transaction(signature)
        return None if tx is None else self._judge(tx, wallet_address)

    async def _raw_query(self, signature: str, wallet_address: str) -> VerificationResult | None:
        raw = await self._ledger.get_transaction_raw(signature)
        return None if raw is None else self._judge(parse_transaction(signature, raw), wallet_address)

    async def _status_check(
        self, signature: str, wallet_address: str
    ) -> VerificationResult | None:
        status = await self._ledger.get_signature_status(signature)
        if status is None:
            return None
        # Finalized statuses report no confirmation count.
        confirmed = status.confirmations is not None or status.confirmation_status == FINALIZED
        if status.err is None and not confirmed:
            return None
        return VerificationResult(
            found=True,
            success=status.err is None,
            method="",
            details={
                "slot": status.slot,
                "confirmations": status.confirmations,
                "err": status.err,
                "confirmationStatus": status.confirmation_status,
            },
        )
