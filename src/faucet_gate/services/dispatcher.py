"""Build, sign and submit faucet transfers."""

from __future__ import annotations

import asyncio
import logging

from faucet_gate.core.errors import ConfigurationError, InsufficientFundsError, ValidationError
from faucet_gate.core.settings import Settings, settings
from faucet_gate.services.ledger import LedgerClient
from faucet_gate.utils.txcodec import Keypair, build_signed_transfer, is_valid_address

logger = logging.getLogger(__name__)


class TransferDispatcher:
    """Submit value transfers from the funding account.

    Submissions are serialised through one lock so that the balance check and
    the submit of one transfer are not interleaved with another's. The call
    returns as soon as the ledger accepts the transaction; confirmation is a
    separate step.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        *,
        config: Settings | None = None,
        keypair: Keypair | None = None,
    ) -> None:
        self._ledger = ledger
        self._config = config or settings
        self._keypair = keypair
        self._submit_lock = asyncio.Lock()

    @property
    def configured(self) -> bool:
        return self._keypair is not None or bool(self._config.faucet_private_key)

    def funding_keypair(self) -> Keypair:
        """Return the decoded funding credential.

        Raises:
            ConfigurationError: If the credential is missing or undecodable.
        """
        if self._keypair is None:
            secret = self._config.faucet_private_key
            if not secret:
                raise ConfigurationError("Faucet funding key is not configured")
            try:
                self._keypair = Keypair.from_secret(secret)
            except ValueError as err:
                raise ConfigurationError(f"Invalid faucet funding key format: {err}") from err
        return self._keypair

    async def dispatch(self, recipient: str, amount: int) -> str:
        """Send ``amount`` lamports to ``recipient``; return the transaction reference.

        Raises:
            ValidationError: If the recipient is malformed or is the funding account.
            ConfigurationError: If the funding credential is unusable.
            InsufficientFundsError: If the funding balance is below ``amount``.
            TransportError: If the ledger cannot be reached or rejects the submission.
        """
        if not is_valid_address(recipient):
            raise ValidationError("Invalid recipient address")
        if amount <= 0:
            raise ValidationError("Transfer amount must be positive")
        keypair = self.funding_keypair()
        if recipient == keypair.address:
            raise ValidationError("Recipient cannot be the funding account")

        async with self._submit_lock:
            balance = await self._ledger.get_balance(keypair.address)
            if balance < amount:
                logger.warning(
                    "Funding balance %s below transfer amount %s", balance, amount
                )
                raise InsufficientFundsError("Faucet has insufficient funds")

            blockhash = await self._ledger.get_latest_blockhash()
            transfer = build_signed_transfer(keypair, recipient, amount, blockhash.blockhash)
            reference = await self._ledger.send_transaction(transfer.to_base64())

        if reference != transfer.signature:
            logger.warning(
                "Ledger reported reference %s for locally signed %s", reference, transfer.signature
            )
        logger.info("Dispatched %s lamports to %s: %s", amount, recipient, reference)
        return reference
