# tests/conftest.py
from __future__ import annotations

import base64
import os
import struct
from collections import defaultdict
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime, timedelta
from itertools import count
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from nacl.signing import SigningKey

os.environ.setdefault("PYTEST_RUNNING", "true")
os.environ.setdefault("VERIFICATION_SECRET", "test-verification-secret")

from faucet_gate.api.v1.dependencies import get_orchestrator_dep
from faucet_gate.core.errors import TransportError
from faucet_gate.core.settings import Settings
from faucet_gate.db.time import utcnow
from faucet_gate.main import app as fastapi_app
from faucet_gate.repositories import MemoryStore
from faucet_gate.services.ledger import (
    Blockhash,
    LedgerTransaction,
    SignatureInfo,
    SignatureStatus,
)
from faucet_gate.services.orchestrator import ClaimOrchestrator
from faucet_gate.utils.txcodec import (
    ADDRESS_LENGTH_BYTES,
    SIGNATURE_LENGTH_BYTES,
    SYSTEM_PROGRAM_ID,
    SYSTEM_TRANSFER_INSTRUCTION,
    encode_address,
)

CLAIM_AMOUNT = 500_000_000
POST_URL = "https://x.com/alice/status/1790000000000000001"
OTHER_POST_URL = "https://twitter.com/bob/status/1790000000000000002"

_SIGNATURE_COUNTER = count(1)


def make_keypair_secret(seed_byte: int) -> str:
    """Return a base58 64-byte secret key (seed + public key)."""
    key = SigningKey(bytes([seed_byte]) * 32)
    return encode_address(bytes(key) + bytes(key.verify_key))


def make_address(seed_byte: int) -> str:
    return encode_address(bytes(SigningKey(bytes([seed_byte]) * 32).verify_key))


FAUCET_SECRET = make_keypair_secret(7)
FAUCET_ADDRESS = make_address(7)


@dataclass(frozen=True)
class DecodedTransfer:
    """Fields recovered from a serialized transfer transaction."""

    signature: str
    sender: str
    recipient: str
    lamports: int
    recent_blockhash: str


def decode_compact_u16(data: bytes, offset: int = 0) -> tuple[int, int]:
    """Decode a compact-u16 at ``offset``; return ``(value, next_offset)``."""
    value = 0
    for shift_index in range(3):
        if offset >= len(data):
            raise ValueError("Truncated compact-u16")
        byte = data[offset]
        offset += 1
        value |= (byte & 0x7F) << (7 * shift_index)
        if not byte & 0x80:
            return value, offset
    raise ValueError("compact-u16 longer than 3 bytes")


def decode_transfer(wire: bytes) -> DecodedTransfer:
    """Parse a transaction produced by ``build_signed_transfer``."""
    sig_count, offset = decode_compact_u16(wire)
    if sig_count < 1:
        raise ValueError("Transaction carries no signatures")
    signature = wire[offset:offset + SIGNATURE_LENGTH_BYTES]
    offset += SIGNATURE_LENGTH_BYTES * sig_count
    offset += 3  # header
    key_count, offset = decode_compact_u16(wire, offset)
    keys = [
        wire[offset + i * ADDRESS_LENGTH_BYTES: offset + (i + 1) * ADDRESS_LENGTH_BYTES]
        for i in range(key_count)
    ]
    offset += key_count * ADDRESS_LENGTH_BYTES
    blockhash = wire[offset:offset + 32]
    offset += 32
    ix_count, offset = decode_compact_u16(wire, offset)
    if ix_count != 1:
        raise ValueError("Expected exactly one instruction")
    program_index = wire[offset]
    offset += 1
    account_count, offset = decode_compact_u16(wire, offset)
    accounts = list(wire[offset:offset + account_count])
    offset += account_count
    data_len, offset = decode_compact_u16(wire, offset)
    data = wire[offset:offset + data_len]
    if keys[program_index] != SYSTEM_PROGRAM_ID or len(data) != 12:
        raise ValueError("Not a system-program transfer")
    kind, lamports = struct.unpack("<IQ", data)
    if kind != SYSTEM_TRANSFER_INSTRUCTION:
        raise ValueError("Not a transfer instruction")
    return DecodedTransfer(
        signature=encode_address(signature),
        sender=encode_address(keys[accounts[0]]),
        recipient=encode_address(keys[accounts[1]]),
        lamports=lamports,
        recent_blockhash=encode_address(blockhash),
    )


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or utcnow()

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class FakeLedger:
    """In-memory ledger speaking the LedgerClient interface.

    Submitted transactions are decoded with the real wire codec and applied to
    balances, so a claim's transfer shows up in history and lookups.
    """

    def __init__(self, clock: FakeClock) -> None:
        self._clock = clock
        self.balances: dict[str, int] = defaultdict(int)
        self.transactions: dict[str, LedgerTransaction] = {}
        self.history: dict[str, list[SignatureInfo]] = defaultdict(list)
        self.statuses: dict[str, SignatureStatus] = {}
        self.submitted: list[Any] = []
        self.unavailable = False
        self.hide_transactions = False
        self.fail_transfers = False
        self.broken_lookups: set[str] = set()
        self.active_endpoint = "https://ledger.test"
        self.blockhash = encode_address(bytes(range(32)))
        self.calls: list[str] = []

    def _enter(self, method: str) -> None:
        self.calls.append(method)
        if self.unavailable:
            raise TransportError("All ledger endpoints failed")

    def _record(
        self,
        signature: str,
        sender: str,
        recipient: str,
        amount: int,
        at: datetime,
        err: Any = None,
    ) -> LedgerTransaction:
        pre = [self.balances[sender], self.balances[recipient], 1]
        if err is None:
            self.balances[sender] -= amount
            self.balances[recipient] += amount
        post = [self.balances[sender], self.balances[recipient], 1]
        block_time = int(at.timestamp())
        tx = LedgerTransaction(
            signature=signature,
            slot=len(self.transactions) + 1,
            block_time=block_time,
            err=err,
            fee=5000,
            account_keys=[sender, recipient, encode_address(SYSTEM_PROGRAM_ID)],
            pre_balances=pre,
            post_balances=post,
        )
        self.transactions[signature] = tx
        info = SignatureInfo(signature=signature, slot=tx.slot, block_time=block_time, err=err)
        for address in (sender, recipient):
            self.history[address].insert(0, info)
        return tx

    def add_transfer(
        self,
        recipient: str,
        amount: int,
        at: datetime,
        *,
        sender: str | None = None,
        err: Any = None,
    ) -> str:
        """Seed a past transfer and return its signature."""
        signature = encode_address(next(_SIGNATURE_COUNTER).to_bytes(64, "big"))
        sender = sender or make_address(99)
        self.balances[sender] += amount
        self._record(signature, sender, recipient, amount, at, err=err)
        return signature

    async def get_balance(self, address: str) -> int:
        self._enter("getBalance")
        return self.balances[address]

    async def get_latest_blockhash(self) -> Blockhash:
        self._enter("getLatestBlockhash")
        return Blockhash(blockhash=self.blockhash, last_valid_block_height=100)

    async def send_transaction(self, wire_base64: str) -> str:
        self._enter("sendTransaction")
        decoded = decode_transfer(base64.b64decode(wire_base64))
        self.submitted.append(decoded)
        err = {"InstructionError": [0, "Custom"]} if self.fail_transfers else None
        self._record(
            decoded.signature,
            decoded.sender,
            decoded.recipient,
            decoded.lamports,
            self._clock(),
            err=err,
        )
        return decoded.signature

    async def get_transaction(
        self, signature: str, *, timeout: float | None = None
    ) -> LedgerTransaction | None:
        self._enter("getTransaction")
        if signature in self.broken_lookups:
            raise TransportError("Transaction fetch timed out")
        if self.hide_transactions:
            return None
        return self.transactions.get(signature)

    async def get_transaction_raw(self, signature: str) -> dict[str, Any] | None:
        self._enter("getTransaction:raw")
        tx = None if self.hide_transactions else self.transactions.get(signature)
        if tx is None:
            return None
        return {
            "slot": tx.slot,
            "blockTime": tx.block_time,
            "meta": {
                "err": tx.err,
                "fee": tx.fee,
                "preBalances": tx.pre_balances,
                "postBalances": tx.post_balances,
                "logMessages": [],
            },
            "transaction": {
                "message": {"accountKeys": [{"pubkey": key} for key in tx.account_keys]}
            },
        }

    async def get_signature_status(self, signature: str) -> SignatureStatus | None:
        self._enter("getSignatureStatuses")
        return self.statuses.get(signature)

    async def get_signatures_for_address(
        self, address: str, *, limit: int, timeout: float | None = None
    ) -> list[SignatureInfo]:
        self._enter("getSignaturesForAddress")
        return self.history[address][:limit]

    async def close(self) -> None:
        return None


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def test_settings() -> Settings:
    """Settings with a funding key, no backoff and no outbound post lookup."""
    return Settings(
        verification_secret="test-verification-secret",
        faucet_private_key=FAUCET_SECRET,
        claim_amount_lamports=CLAIM_AMOUNT,
        confirmation_backoff_seconds=0.0,
        post_freshness_check_enabled=False,
        ledger_rpc_urls=["https://ledger.test"],
    )


@pytest.fixture()
def fake_ledger(clock: FakeClock) -> FakeLedger:
    ledger = FakeLedger(clock)
    ledger.balances[FAUCET_ADDRESS] = 100 * CLAIM_AMOUNT
    return ledger


@pytest.fixture()
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture()
def orchestrator(
    store: MemoryStore,
    fake_ledger: FakeLedger,
    test_settings: Settings,
    clock: FakeClock,
) -> ClaimOrchestrator:
    return ClaimOrchestrator(store, fake_ledger, config=test_settings, clock=clock)


@pytest.fixture()
def wallet() -> str:
    return make_address(1)


@pytest.fixture()
def other_wallet() -> str:
    return make_address(2)


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture()
def client(app: FastAPI, orchestrator: ClaimOrchestrator) -> Iterator[TestClient]:
    app.dependency_overrides[get_orchestrator_dep] = lambda: orchestrator
    try:
        with TestClient(app, base_url="http://test") as test_client:
            yield test_client
    finally:
        app.dependency_overrides.pop(get_orchestrator_dep, None)
