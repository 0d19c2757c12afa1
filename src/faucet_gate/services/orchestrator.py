"""End-to-end claim protocol.

The orchestrator composes the token codec, replay guard, eligibility
resolver, transfer dispatcher and confirmation verifier:

    issue attestation -> claim -> dispatch -> confirm -> record

Claims for one wallet, and claims backed by one post, are serialised with
in-process locks so the eligibility check, the dispatch and the record of a
claim happen as one critical section.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from faucet_gate.core.errors import (
    ClaimError,
    ConfigurationError,
    EligibilityError,
    FaucetError,
    RateLimitError,
    ReplayError,
    TransportError,
    ValidationError,
)
from faucet_gate.core.settings import Settings, settings
from faucet_gate.db.time import utcnow
from faucet_gate.repositories import ClaimRecord, FaucetStore, IssuanceRecord, build_store
from faucet_gate.services.confirmation import ConfirmationVerifier, VerificationResult
from faucet_gate.services.dispatcher import TransferDispatcher
from faucet_gate.services.eligibility import EligibilityResolver, EligibilityResult
from faucet_gate.services.ledger import LedgerClient, get_ledger_client
from faucet_gate.services.posts import PostInspector
from faucet_gate.services.replay import ReplayGuard
from faucet_gate.services.tokens import TokenCodec, build_token_codec
from faucet_gate.utils.txcodec import is_valid_address

logger = logging.getLogger(__name__)


class KeyedLocks:
    """Lazily created asyncio locks, one per key, dropped when idle."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if not self._holders[key]:
                del self._holders[key]
                del self._locks[key]


@dataclass(frozen=True)
class AttestationReceipt:
    token: str
    legacy_token: str
    wallet_address: str
    post_id: str
    post_url: str
    verified_at: datetime


@dataclass(frozen=True)
class ClaimReceipt:
    signature: str
    wallet_address: str
    amount: int
    post_id: str
    claimed_at: datetime
    verification: VerificationResult
    explorer_url: str

    @property
    def provisional(self) -> bool:
        return not self.verification.found


@dataclass(frozen=True)
class HistoryEntry:
    id: str
    timestamp: datetime
    amount: int
    tx_ref: str
    source: str


@dataclass(frozen=True)
class HistoryResult:
    entries: list[HistoryEntry] = field(default_factory=list)
    ledger_available: bool = True


@dataclass(frozen=True)
class FaucetStatus:
    status: str
    message: str
    faucet_configured: bool
    faucet_address: str | None = None
    balance: int | None = None
    rpc_url: str | None = None


def _require_wallet(wallet_address: str) -> None:
    if not is_valid_address(wallet_address):
        length = len(wallet_address) if isinstance(wallet_address, str) else 0
        raise ValidationError(
            "Invalid wallet address format. Expected 32-44 base58 characters, "
            f"received {length} characters"
        )


class ClaimOrchestrator:
    """Service exposing the faucet's boundary operations."""

    def __init__(
        self,
        store: FaucetStore,
        ledger: LedgerClient,
        *,
        config: Settings | None = None,
        codec: TokenCodec | None = None,
        posts: PostInspector | None = None,
        eligibility: EligibilityResolver | None = None,
        dispatcher: TransferDispatcher | None = None,
        verifier: ConfirmationVerifier | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.config = config or settings
        self.store = store
        self.ledger = ledger
        self._codec = codec
        self._clock = clock
        self.replay = ReplayGuard(store, clock=clock)
        self.posts = posts or PostInspector(self.config, clock=clock)
        self.eligibility = eligibility or EligibilityResolver(
            ledger, store, config=self.config, clock=clock
        )
        self.dispatcher = dispatcher or TransferDispatcher(ledger, config=self.config)
        self.verifier = verifier or ConfirmationVerifier(ledger, config=self.config)
        self._wallet_locks = KeyedLocks()
        self._post_locks = KeyedLocks()

    @property
    def codec(self) -> TokenCodec:
        """Return the token codec; raises ConfigurationError without a secret."""
        if self._codec is None:
            self._codec = build_token_codec(self.config)
        return self._codec

    def explorer_url(self, signature: str) -> str:
        return f"{self.config.explorer_base_url.rstrip('/')}/tx/{signature}"

    # --- Attestations ---------------------------------------------------------------
    async def issue_attestation(self, post_url: str, wallet_address: str) -> AttestationReceipt:
        """Issue an attestation binding ``wallet_address`` to the post at ``post_url``.

        Raises:
            ValidationError: Malformed wallet or URL, or a post outside the freshness window.
            RateLimitError: The wallet obtained an attestation inside the re-verification window.
            ReplayError: The post already backed a claim.
            ConfigurationError: The signing secret is missing.
        """
        _require_wallet(wallet_address)
        post_id = self.posts.validate(post_url)

        # Rate-limit check and issuance record are atomic per wallet.
        async with self._wallet_locks.hold(wallet_address):
            now = self._clock()
            previous = self.store.last_issuance(wallet_address)
            window = timedelta(seconds=self.config.reverification_cooldown_seconds)
            if previous is not None and now - previous.issued_at < window:
                retry_at = previous.issued_at + window
                remaining = math.ceil((retry_at - now).total_seconds() / 3600)
                raise RateLimitError(
                    f"Already verified recently. Try again in {remaining} hours.",
                    remaining_hours=remaining,
                    next_claim_time=retry_at,
                )

            if self.replay.is_post_used(post_id):
                raise ReplayError("This post link has already been used for a claim")

            if not await self.posts.is_fresh(post_url):
                raise ValidationError(
                    "Post must be within the last 24 hours", reason="post_too_old"
                )

            codec = self.codec
            self.store.record_issuance(
                IssuanceRecord(
                    wallet_address=wallet_address,
                    post_url=post_url,
                    post_id=post_id,
                    issued_at=now,
                )
            )
            legacy = self.replay.create_opaque_token(wallet_address, post_id)
            token = codec.issue(wallet_address, post_id)
            logger.info("Attestation issued for %s on post %s", wallet_address, post_id)
            return AttestationReceipt(
                token=token,
                legacy_token=legacy.token,
                wallet_address=wallet_address,
                post_id=post_id,
                post_url=post_url,
                verified_at=now,
            )

    def _resolve_token(self, token: str, wallet_address: str) -> tuple[str, bool]:
        """Return ``(post_id, is_legacy)`` for a claim token."""
        if not token:
            raise ValidationError("Verification token is required", reason="missing_token")

        payload = self.codec.verify(token)
        if payload is not None:
            if payload.wallet_address != wallet_address:
                raise ValidationError(
                    "Verification token does not match recipient wallet",
                    reason="wallet_mismatch",
                )
            return payload.post_id, False

        legacy = self.replay.lookup_opaque_token(token)
        if legacy is None:
            raise ValidationError("Invalid verification token", reason="invalid_token")
        if legacy.used:
            raise ReplayError("Verification token already used")
        if legacy.wallet_address != wallet_address:
            raise ValidationError(
                "Verification token does not match recipient wallet",
                reason="wallet_mismatch",
            )
        return legacy.post_id, True

    # --- Claims -----------------------------------------------------------------------
    async def claim(self, wallet_address: str, token: str) -> ClaimReceipt:
        """Run the claim protocol for ``wallet_address`` backed by ``token``.

        A rejected or failed claim never marks the post used, so the same
        attestation can be retried.

        Raises:
            FaucetError: The typed rejection; unexpected failures become ClaimError.
        """
        post_id, is_legacy = self._resolve_token(token, wallet_address)

        async with self._wallet_locks.hold(wallet_address), self._post_locks.hold(post_id):
            try:
                return await self._claim_locked(wallet_address, token, post_id, is_legacy)
            except FaucetError:
                raise
            except Exception as err:
                logger.error("Unexpected claim failure for %s", wallet_address, exc_info=True)
                raise ClaimError("Failed to process claim") from err

    async def _claim_locked(
        self,
        wallet_address: str,
        token: str,
        post_id: str,
        is_legacy: bool,
    ) -> ClaimReceipt:
        if self.replay.is_post_used(post_id):
            raise ReplayError("This post has already been used for a claim")

        eligibility = await self.eligibility.check(wallet_address, force_refresh=True)
        if not eligibility.eligible:
            raise EligibilityError(
                eligibility.message,
                remaining_hours=eligibility.remaining_hours or 0,
                next_claim_time=eligibility.next_claim_time,
            )

        amount = self.config.claim_amount_lamports
        signature = await self.dispatcher.dispatch(wallet_address, amount)
        verification = await self.verifier.verify(signature, wallet_address)
        if verification.found and not verification.success:
            logger.error("Transfer %s failed on the ledger: %s", signature, verification.details)
            raise ClaimError("Transfer failed on the ledger")
        if not verification.found:
            if not self.config.confirmation_assume_success:
                raise ClaimError("Transfer could not be confirmed")
            logger.warning("Transfer %s unverified; accepting as provisional success", signature)

        claimed_at = self._clock()
        self.store.append_claim(
            ClaimRecord(
                id=f"{wallet_address}-{int(claimed_at.timestamp() * 1000)}",
                wallet_address=wallet_address,
                timestamp=claimed_at,
                amount=amount,
                tx_ref=signature,
            )
        )
        try:
            self.replay.mark_post_used(post_id, token, wallet_address)
        except ReplayError:
            # Funds are already sent; another process won the post concurrently.
            logger.error("Post %s was consumed concurrently; claim %s stands", post_id, signature)
        if is_legacy:
            self.replay.mark_opaque_token_used(token)
        self.eligibility.invalidate(wallet_address)

        logger.info("Claim recorded for %s: %s", wallet_address, signature)
        return ClaimReceipt(
            signature=signature,
            wallet_address=wallet_address,
            amount=amount,
            post_id=post_id,
            claimed_at=claimed_at,
            verification=verification,
            explorer_url=self.explorer_url(signature),
        )

    # --- Queries ------------------------------------------------------------------------
    async def check_eligibility(
        self, wallet_address: str, *, force_refresh: bool = False
    ) -> EligibilityResult:
        _require_wallet(wallet_address)
        return await self.eligibility.check(wallet_address, force_refresh=force_refresh)

    async def get_history(self, wallet_address: str) -> HistoryResult:
        """Return local and ledger-discovered claims, most recent first."""
        _require_wallet(wallet_address)
        entries = [
            HistoryEntry(
                id=record.id,
                timestamp=record.timestamp,
                amount=record.amount,
                tx_ref=record.tx_ref,
                source="local",
            )
            for record in self.store.list_claims(wallet_address)
        ]
        try:
            transfers = await self.eligibility.fetch_ledger_transfers(wallet_address)
        except TransportError as exc:
            logger.warning("Ledger history unavailable for %s: %s", wallet_address, exc)
            return HistoryResult(entries=entries, ledger_available=False)

        known = {entry.tx_ref for entry in entries}
        entries.extend(
            HistoryEntry(
                id=f"ledger-{transfer.signature}",
                timestamp=transfer.timestamp,
                amount=transfer.amount,
                tx_ref=transfer.signature,
                source="ledger",
            )
            for transfer in transfers
            if transfer.signature not in known
        )
        entries.sort(key=lambda entry: entry.timestamp, reverse=True)
        return HistoryResult(entries=entries, ledger_available=True)

    async def verify_transaction(self, signature: str, wallet_address: str) -> VerificationResult:
        if not signature or not signature.strip():
            raise ValidationError("Transaction signature is required")
        _require_wallet(wallet_address)
        return await self.verifier.verify(signature.strip(), wallet_address)

    def reset_post(self, post_id: str) -> bool:
        """Administrative override making ``post_id`` usable again."""
        return self.replay.reset_post(post_id)

    async def status(self) -> FaucetStatus:
        """Report funding-account configuration and reachability."""
        if not self.dispatcher.configured:
            return FaucetStatus(
                status="error",
                message="Faucet private key not configured",
                faucet_configured=False,
            )
        try:
            address = self.dispatcher.funding_keypair().address
        except ConfigurationError:
            return FaucetStatus(
                status="error",
                message="Invalid faucet private key",
                faucet_configured=False,
            )
        try:
            balance = await self.ledger.get_balance(address)
        except TransportError as exc:
            logger.warning("Status balance lookup failed: %s", exc)
            return FaucetStatus(
                status="error",
                message="Failed to connect to ledger",
                faucet_configured=True,
                faucet_address=address,
                rpc_url=self.ledger.active_endpoint,
            )
        return FaucetStatus(
            status="ok",
            message="Faucet configured and connected",
            faucet_configured=True,
            faucet_address=address,
            balance=balance,
            rpc_url=self.ledger.active_endpoint,
        )


class _ClaimOrchestratorSingleton:
    """Singleton wrapper for ClaimOrchestrator."""

    _instance: ClaimOrchestrator | None = None

    @classmethod
    def get_instance(cls) -> ClaimOrchestrator:
        if cls._instance is None:
            cls._instance = ClaimOrchestrator(build_store(settings), get_ledger_client())
        return cls._instance


def get_claim_orchestrator() -> ClaimOrchestrator:
    """Return the process-wide orchestrator."""
    return _ClaimOrchestratorSingleton.get_instance()
