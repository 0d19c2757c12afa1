"""Claim eligibility from ledger history and local claim records."""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Final

from faucet_gate.core.errors import TransportError
from faucet_gate.core.settings import Settings, settings
from faucet_gate.db.time import utcnow
from faucet_gate.repositories import ClaimHistoryStore
from faucet_gate.services.ledger import LedgerClient

logger = logging.getLogger(__name__)

RPC_AVAILABLE: Final[str] = "available"
RPC_UNAVAILABLE: Final[str] = "unavailable"

ELIGIBLE_MESSAGE: Final[str] = "Wallet is eligible to claim tokens"
FAIL_OPEN_MESSAGE: Final[str] = "Eligibility check failed due to network issues, allowing claim"
LEDGER_WARNING: Final[str] = "Ledger unavailable; claim history could not be verified"


@dataclass(frozen=True)
class LedgerTransfer:
    """Incoming transfer that looks like a faucet disbursement."""

    signature: str
    timestamp: datetime
    amount: int


@dataclass(frozen=True)
class EligibilityResult:
    """Snapshot answer to "may this wallet claim now?"."""

    eligible: bool
    message: str
    last_claim_time: datetime | None = None
    next_claim_time: datetime | None = None
    remaining_hours: int | None = None
    warning: str | None = None
    rpc_status: str = RPC_AVAILABLE
    last_transaction: str | None = None
    transaction_count: int = 0


@dataclass(frozen=True)
class _CacheEntry:
    result: EligibilityResult
    cached_at: datetime


class EligibilityResolver:
    """Derive eligibility for a wallet with a short-lived per-wallet cache.

    The ledger is the authoritative source; local claim records are merged in
    so a claim recorded by this process counts even before the ledger shows
    it. If the ledger cannot be queried and no local record blocks the wallet,
    the resolver fails open (``eligibility_fail_open``) and flags the result.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        claims: ClaimHistoryStore,
        *,
        config: Settings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._ledger = ledger
        self._claims = claims
        self._config = config or settings
        self._clock = clock
        self._cache: dict[str, _CacheEntry] = {}

    @property
    def cooldown(self) -> timedelta:
        return timedelta(seconds=self._config.claim_cooldown_seconds)

    @property
    def cache_ttl(self) -> timedelta:
        return timedelta(seconds=self._config.eligibility_cache_ttl_seconds)

    def invalidate(self, wallet_address: str) -> None:
        """Drop the cached result for ``wallet_address``."""
        if self._cache.pop(wallet_address, None) is not None:
            logger.debug("Cleared eligibility cache for %s", wallet_address)

    async def check(self, wallet_address: str, *, force_refresh: bool = False) -> EligibilityResult:
        """Return the eligibility of ``wallet_address``.

        Raises:
            TransportError: If the ledger is unreachable, nothing local blocks
                the wallet and fail-open is disabled.
        """
        now = self._clock()
        if not force_refresh:
            entry = self._cache.get(wallet_address)
            if entry is not None and now - entry.cached_at < self.cache_ttl:
                logger.debug("Eligibility cache hit for %s", wallet_address)
                return entry.result

        local_last = self._claims.last_claim_time(wallet_address)
        try:
            transfers = await self.fetch_ledger_transfers(wallet_address)
        except TransportError as exc:
            result = self._resolve_without_ledger(wallet_address, local_last, now, exc)
        else:
            last_time = local_last
            last_signature = None
            if transfers and (last_time is None or transfers[0].timestamp > last_time):
                last_time = transfers[0].timestamp
                last_signature = transfers[0].signature
            result = self._evaluate(
                last_time,
                now,
                last_transaction=last_signature,
                transaction_count=len(transfers),
            )

        self._prune(now)
        self._cache[wallet_address] = _CacheEntry(result=result, cached_at=now)
        return result

    def _prune(self, now: datetime) -> None:
        """Evict cached results that have outlived the TTL."""
        ttl = self.cache_ttl
        for wallet, entry in list(self._cache.items()):
            if now - entry.cached_at >= ttl:
                del self._cache[wallet]

    def _resolve_without_ledger(
        self,
        wallet_address: str,
        local_last: datetime | None,
        now: datetime,
        exc: TransportError,
    ) -> EligibilityResult:
        if local_last is not None and now - local_last < self.cooldown:
            logger.warning(
                "Ledger unavailable for %s; applying local cooldown record", wallet_address
            )
            return self._evaluate(
                local_last,
                now,
                warning=LEDGER_WARNING,
                rpc_status=RPC_UNAVAILABLE,
            )
        if not self._config.eligibility_fail_open:
            raise TransportError(f"Eligibility could not be determined: {exc.message}")
        logger.warning("Ledger unavailable for %s; failing open: %s", wallet_address, exc)
        return EligibilityResult(
            eligible=True,
            message=FAIL_OPEN_MESSAGE,
            last_claim_time=local_last,
            warning=LEDGER_WARNING,
            rpc_status=RPC_UNAVAILABLE,
        )

    def _evaluate(
        self,
        last_claim_time: datetime | None,
        now: datetime,
        *,
        warning: str | None = None,
        rpc_status: str = RPC_AVAILABLE,
        last_transaction: str | None = None,
        transaction_count: int = 0,
    ) -> EligibilityResult:
        if last_claim_time is None or now - last_claim_time >= self.cooldown:
            return EligibilityResult(
                eligible=True,
                message=ELIGIBLE_MESSAGE,
                last_claim_time=last_claim_time,
                warning=warning,
                rpc_status=rpc_status,
                last_transaction=last_transaction,
                transaction_count=transaction_count,
            )
        next_claim_time = last_claim_time + self.cooldown
        remaining_hours = math.ceil((next_claim_time - now).total_seconds() / 3600)
        return EligibilityResult(
            eligible=False,
            message=f"Wallet must wait {remaining_hours} hours before claiming again",
            last_claim_time=last_claim_time,
            next_claim_time=next_claim_time,
            remaining_hours=remaining_hours,
            warning=warning,
            rpc_status=rpc_status,
            last_transaction=last_transaction,
            transaction_count=transaction_count,
        )

    async def fetch_ledger_transfers(self, wallet_address: str) -> list[LedgerTransfer]:
        """Return faucet-sized incoming transfers to ``wallet_address``, newest first.

        Only the address-history query failing is a transport failure; a
        transaction whose detail cannot be fetched in time is skipped.

        Raises:
            TransportError: If the address history cannot be queried.
        """
        history_timeout = self._config.history_query_timeout_seconds
        try:
            signatures = await asyncio.wait_for(
                self._ledger.get_signatures_for_address(
                    wallet_address,
                    limit=self._config.history_limit,
                    timeout=history_timeout,
                ),
                timeout=history_timeout,
            )
        except TimeoutError as err:
            raise TransportError("Ledger history query timed out") from err

        low, high = self._config.claim_amount_band
        fetch_timeout = self._config.transaction_fetch_timeout_seconds
        transfers: list[LedgerTransfer] = []
        for info in signatures:
            if info.err is not None:
                continue
            try:
                tx = await asyncio.wait_for(
                    self._ledger.get_transaction(info.signature, timeout=fetch_timeout),
                    timeout=fetch_timeout,
                )
            except (TransportError, TimeoutError) as exc:
                logger.debug("Skipping transaction %s: %s", info.signature, exc)
                continue
            if tx is None or not tx.succeeded:
                continue
            change = tx.balance_change(wallet_address)
            if change is None or not low < change < high:
                continue
            block_time = info.block_time or tx.block_time
            timestamp = (
                datetime.fromtimestamp(block_time, tz=UTC) if block_time else self._clock()
            )
            transfers.append(
                LedgerTransfer(signature=info.signature, timestamp=timestamp, amount=change)
            )

        transfers.sort(key=lambda transfer: transfer.timestamp, reverse=True)
        return transfers
