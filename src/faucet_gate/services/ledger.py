"""JSON-RPC client for the ledger network.

This module provides the LedgerClient class, the only way the faucet talks to
the ledger. It includes:

- An httpx async client per configured endpoint
- Endpoint fallback in configured order when a transport failure occurs
- Typed views of the responses the claim engine relies on
- A low-level ``call`` for raw queries that bypass response parsing
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import httpx

from faucet_gate.core.errors import LedgerRpcError, SubmissionRejectedError, TransportError
from faucet_gate.core.settings import settings

# Configure logger for this module
logger = logging.getLogger(__name__)

HTTP_OK = 200


@dataclass(frozen=True)
class LedgerConfig:
    """Immutable configuration for ledger access."""

    endpoints: tuple[str, ...]
    commitment: str
    timeout_seconds: float


@dataclass(frozen=True)
class Blockhash:
    """Recent blockhash needed to build a transaction."""

    blockhash: str
    last_valid_block_height: int


@dataclass(frozen=True)
class SignatureInfo:
    """Entry from an address's transaction history."""

    signature: str
    slot: int
    block_time: int | None
    err: Any = None


@dataclass(frozen=True)
class SignatureStatus:
    """Confirmation status of a submitted transaction."""

    slot: int
    confirmations: int | None
    err: Any
    confirmation_status: str | None


@dataclass(frozen=True)
class LedgerTransaction:
    """Confirmed transaction detail."""

    signature: str
    slot: int
    block_time: int | None
    err: Any
    fee: int | None
    account_keys: list[str] = field(default_factory=list)
    pre_balances: list[int] = field(default_factory=list)
    post_balances: list[int] = field(default_factory=list)
    log_messages: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.err is None

    def involves(self, address: str) -> bool:
        return address in self.account_keys

    def balance_change(self, address: str) -> int | None:
        """Return the lamport delta for ``address`` or None if it cannot be computed."""
        try:
            index = self.account_keys.index(address)
        except ValueError:
            return None
        if index >= len(self.pre_balances) or index >= len(self.post_balances):
            return None
        return self.post_balances[index] - self.pre_balances[index]

    def to_details(self) -> dict[str, Any]:
        return {
            "slot": self.slot,
            "blockTime": self.block_time,
            "err": self.err,
            "fee": self.fee,
            "preBalances": self.pre_balances,
            "postBalances": self.post_balances,
            "logMessages": self.log_messages,
        }


def load_ledger_config() -> LedgerConfig:
    """Build configuration object from global settings."""
    return LedgerConfig(
        endpoints=tuple(settings.ledger_rpc_urls),
        commitment=settings.ledger_commitment,
        timeout_seconds=float(settings.ledger_request_timeout_seconds),
    )


def parse_transaction(signature: str, result: Mapping[str, Any]) -> LedgerTransaction:
    """Build a LedgerTransaction from a ``getTransaction`` result object.

    Raises:
        TransportError: If the result does not have the expected shape.
    """
    try:
        meta = result.get("meta") or {}
        message = (result.get("transaction") or {}).get("message") or {}
        keys: list[str] = []
        for key in message.get("accountKeys") or []:
            # "json" encoding yields strings, "jsonParsed" yields objects.
            keys.append(key["pubkey"] if isinstance(key, Mapping) else str(key))
        block_time = result.get("blockTime")
        fee = meta.get("fee")
        return LedgerTransaction(
            signature=signature,
            slot=int(result.get("slot") or 0),
            block_time=int(block_time) if block_time is not None else None,
            err=meta.get("err"),
            fee=int(fee) if fee is not None else None,
            account_keys=keys,
            pre_balances=[int(value) for value in meta.get("preBalances") or []],
            post_balances=[int(value) for value in meta.get("postBalances") or []],
            log_messages=[str(line) for line in meta.get("logMessages") or []],
        )
    except (AttributeError, KeyError, TypeError, ValueError) as err:
        raise TransportError("Malformed getTransaction response") from err


class LedgerClient:
    """Async JSON-RPC wrapper with ordered endpoint fallback."""

    def __init__(
        self,
        config: LedgerConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or load_ledger_config()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()
        self._ids = itertools.count(1)
        self.active_endpoint: str | None = self.config.endpoints[0] if self.config.endpoints else None

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    transport=self._transport,
                )
        return self._client

    async def call(
        self,
        method: str,
        params: Sequence[Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> Any:
        """Invoke a JSON-RPC method and return its ``result`` member.

        Endpoints are tried in configured order; only transport failures move
        on to the next endpoint.

        Raises:
            TransportError: If every endpoint failed at the transport level.
            LedgerRpcError: If an endpoint answered with a JSON-RPC error.
        """
        if not self.config.endpoints:
            raise TransportError("No ledger endpoints configured")

        client = await self._ensure_client()
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": list(params or []),
        }
        request_timeout = httpx.Timeout(timeout) if timeout is not None else httpx.USE_CLIENT_DEFAULT
        failures: list[str] = []
        for endpoint in self.config.endpoints:
            try:
                response = await client.post(endpoint, json=payload, timeout=request_timeout)
                if response.status_code != HTTP_OK:
                    raise TransportError(f"HTTP {response.status_code}")
                body = response.json()
                if not isinstance(body, Mapping):
                    raise TransportError("Malformed JSON-RPC response")
            except (httpx.HTTPError, TransportError, ValueError) as exc:
                logger.warning("Ledger endpoint %s failed for %s: %s", endpoint, method, exc)
                failures.append(f"{endpoint}: {exc}")
                continue

            if self.active_endpoint != endpoint:
                logger.info("Ledger endpoint switched to %s", endpoint)
                self.active_endpoint = endpoint
            error = body.get("error")
            if error:
                message = error.get("message") if isinstance(error, Mapping) else str(error)
                code = error.get("code") if isinstance(error, Mapping) else None
                raise LedgerRpcError(f"{method} failed: {message}", code=code)
            return body.get("result")

        raise TransportError(f"All ledger endpoints failed for {method}: " + "; ".join(failures))

    async def get_balance(self, address: str) -> int:
        """Return the balance of ``address`` in lamports."""
        result = await self.call("getBalance", [address, {"commitment": self.config.commitment}])
        try:
            return int(result["value"])
        except (KeyError, TypeError, ValueError) as err:
            raise TransportError("Malformed getBalance response") from err

    async def get_latest_blockhash(self) -> Blockhash:
        """Return the checkpoint a new transaction must reference."""
        result = await self.call("getLatestBlockhash", [{"commitment": self.config.commitment}])
        try:
            value = result["value"]
            return Blockhash(
                blockhash=str(value["blockhash"]),
                last_valid_block_height=int(value["lastValidBlockHeight"]),
            )
        except (KeyError, TypeError, ValueError) as err:
            raise TransportError("Malformed getLatestBlockhash response") from err

    async def send_transaction(self, wire_base64: str) -> str:
        """Submit a signed transaction; return the reference the ledger assigned.

        Raises:
            SubmissionRejectedError: If the ledger refused the transaction.
        """
        try:
            result = await self.call(
                "sendTransaction",
                [wire_base64, {"encoding": "base64", "preflightCommitment": self.config.commitment}],
            )
        except LedgerRpcError as err:
            raise SubmissionRejectedError(str(err)) from err
        if not isinstance(result, str) or not result:
            raise SubmissionRejectedError("Ledger returned no transaction reference")
        return result

    async def get_transaction(
        self, signature: str, *, timeout: float | None = None
    ) -> LedgerTransaction | None:
        """Fetch and parse a confirmed transaction; None if unknown."""
        result = await self.call(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "json",
                    "commitment": self.config.commitment,
                    "maxSupportedTransactionVersion": 0,
                },
            ],
            timeout=timeout,
        )
        if result is None:
            return None
        if not isinstance(result, Mapping):
            raise TransportError("Malformed getTransaction response")
        return parse_transaction(signature, result)

    async def get_transaction_raw(self, signature: str) -> dict[str, Any] | None:
        """Issue the lowest-level transaction query and return the raw result."""
        result = await self.call(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "jsonParsed",
                    "commitment": self.config.commitment,
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        )
        return dict(result) if isinstance(result, Mapping) else None

    async def get_signature_status(self, signature: str) -> SignatureStatus | None:
        """Return the confirmation status of ``signature`` without its detail."""
        result = await self.call(
            "getSignatureStatuses",
            [[signature], {"searchTransactionHistory": True}],
        )
        try:
            value = (result or {}).get("value") or []
            entry = value[0] if value else None
            if entry is None:
                return None
            confirmations = entry.get("confirmations")
            return SignatureStatus(
                slot=int(entry.get("slot") or 0),
                confirmations=int(confirmations) if confirmations is not None else None,
                err=entry.get("err"),
                confirmation_status=entry.get("confirmationStatus"),
            )
        except (AttributeError, KeyError, TypeError, ValueError) as err:
            raise TransportError("Malformed getSignatureStatuses response") from err

    async def get_signatures_for_address(
        self, address: str, *, limit: int, timeout: float | None = None
    ) -> list[SignatureInfo]:
        """Return the most recent transaction references touching ``address``."""
        result = await self.call(
            "getSignaturesForAddress",
            [address, {"limit": limit, "commitment": self.config.commitment}],
            timeout=timeout,
        )
        if not isinstance(result, list):
            raise TransportError("Malformed getSignaturesForAddress response")
        try:
            return [
                SignatureInfo(
                    signature=str(entry["signature"]),
                    slot=int(entry.get("slot") or 0),
                    block_time=(
                        int(entry["blockTime"]) if entry.get("blockTime") is not None else None
                    ),
                    err=entry.get("err"),
                )
                for entry in result
                if isinstance(entry, Mapping) and entry.get("signature")
            ]
        except (KeyError, TypeError, ValueError) as err:
            raise TransportError("Malformed getSignaturesForAddress response") from err

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None


class _LedgerClientSingleton:
    """Singleton wrapper for LedgerClient."""

    _instance: LedgerClient | None = None

    @classmethod
    def get_instance(cls) -> LedgerClient:
        """Get or create the singleton LedgerClient instance."""
        if cls._instance is None:
            cls._instance = LedgerClient()
        return cls._instance


def get_ledger_client() -> LedgerClient:
    """Return a singleton ledger client instance."""
    return _LedgerClientSingleton.get_instance()
