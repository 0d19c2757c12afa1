"""Tests for the ledger JSON-RPC client."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from faucet_gate.core.errors import LedgerRpcError, SubmissionRejectedError, TransportError
from faucet_gate.services.ledger import LedgerClient, LedgerConfig, parse_transaction

PRIMARY = "https://primary.ledger.test"
SECONDARY = "https://secondary.ledger.test"


def _config(*endpoints: str) -> LedgerConfig:
    return LedgerConfig(endpoints=endpoints or (PRIMARY, SECONDARY), commitment="confirmed", timeout_seconds=5.0)


class RecordingHandler:
    """MockTransport handler answering per-host with canned behaviour."""

    def __init__(self, routes: dict[str, Callable[[dict[str, Any]], Any]]) -> None:
        self.routes = routes
        self.requests: list[tuple[str, dict[str, Any]]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        host = f"{request.url.scheme}://{request.url.host}"
        self.requests.append((host, body))
        behaviour = self.routes[host]
        outcome = behaviour(body)
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, httpx.Response):
            return outcome
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], **outcome})


def _client(handler: RecordingHandler, *endpoints: str) -> LedgerClient:
    return LedgerClient(_config(*endpoints), transport=httpx.MockTransport(handler))


def _down(request_body: dict[str, Any]) -> Exception:
    return httpx.ConnectError("connection refused")


@pytest.mark.asyncio
async def test_get_balance_uses_primary_endpoint() -> None:
    handler = RecordingHandler({PRIMARY: lambda body: {"result": {"context": {"slot": 1}, "value": 1234}}})
    client = _client(handler)

    assert await client.get_balance("Addr") == 1234

    host, body = handler.requests[0]
    assert host == PRIMARY
    assert body["method"] == "getBalance"
    assert body["params"] == ["Addr", {"commitment": "confirmed"}]
    assert client.active_endpoint == PRIMARY
    await client.close()


@pytest.mark.asyncio
async def test_transport_failure_falls_back_to_next_endpoint() -> None:
    handler = RecordingHandler(
        {
            PRIMARY: _down,
            SECONDARY: lambda body: {"result": {"value": {"blockhash": "Hash", "lastValidBlockHeight": 9}}},
        }
    )
    client = _client(handler)

    blockhash = await client.get_latest_blockhash()

    assert blockhash.blockhash == "Hash"
    assert blockhash.last_valid_block_height == 9
    assert [host for host, _ in handler.requests] == [PRIMARY, SECONDARY]
    assert client.active_endpoint == SECONDARY
    await client.close()


@pytest.mark.asyncio
async def test_http_error_status_falls_back() -> None:
    handler = RecordingHandler(
        {
            PRIMARY: lambda body: httpx.Response(503, text="busy"),
            SECONDARY: lambda body: {"result": {"value": 1}},
        }
    )
    client = _client(handler)

    assert await client.get_balance("Addr") == 1
    await client.close()


@pytest.mark.asyncio
async def test_all_endpoints_failing_raises_transport_error() -> None:
    handler = RecordingHandler({PRIMARY: _down, SECONDARY: _down})
    client = _client(handler)

    with pytest.raises(TransportError) as exc_info:
        await client.get_balance("Addr")

    assert not isinstance(exc_info.value, LedgerRpcError)
    assert len(handler.requests) == 2
    await client.close()


@pytest.mark.asyncio
async def test_rpc_error_object_is_not_failed_over() -> None:
    handler = RecordingHandler(
        {
            PRIMARY: lambda body: {"error": {"code": -32602, "message": "Invalid param"}},
            SECONDARY: lambda body: {"result": {"value": 1}},
        }
    )
    client = _client(handler)

    with pytest.raises(LedgerRpcError) as exc_info:
        await client.get_balance("Addr")

    assert exc_info.value.code == -32602
    assert [host for host, _ in handler.requests] == [PRIMARY]
    await client.close()


@pytest.mark.asyncio
async def test_send_transaction_rejection() -> None:
    handler = RecordingHandler(
        {PRIMARY: lambda body: {"error": {"code": -32002, "message": "Blockhash not found"}}}
    )
    client = _client(handler, PRIMARY)

    with pytest.raises(SubmissionRejectedError):
        await client.send_transaction("AQID")

    _, body = handler.requests[0]
    assert body["params"][0] == "AQID"
    assert body["params"][1]["encoding"] == "base64"
    await client.close()


@pytest.mark.asyncio
async def test_send_transaction_returns_reference() -> None:
    handler = RecordingHandler({PRIMARY: lambda body: {"result": "5igSig"}})
    client = _client(handler, PRIMARY)

    assert await client.send_transaction("AQID") == "5igSig"
    await client.close()


@pytest.mark.asyncio
async def test_get_transaction_parses_result() -> None:
    result = {
        "slot": 77,
        "blockTime": 1_700_000_000,
        "meta": {
            "err": None,
            "fee": 5000,
            "preBalances": [10, 0, 1],
            "postBalances": [5, 5, 1],
            "logMessages": ["ok"],
        },
        "transaction": {"message": {"accountKeys": ["Sender", "Wallet", "System"]}},
    }
    handler = RecordingHandler({PRIMARY: lambda body: {"result": result}})
    client = _client(handler, PRIMARY)

    tx = await client.get_transaction("Sig")

    assert tx is not None
    assert tx.succeeded
    assert tx.involves("Wallet")
    assert tx.balance_change("Wallet") == 5
    assert tx.balance_change("Nobody") is None
    assert tx.to_details()["slot"] == 77
    _, body = handler.requests[0]
    assert body["params"][1] == {
        "encoding": "json",
        "commitment": "confirmed",
        "maxSupportedTransactionVersion": 0,
    }
    await client.close()


@pytest.mark.asyncio
async def test_get_transaction_unknown_returns_none() -> None:
    handler = RecordingHandler({PRIMARY: lambda body: {"result": None}})
    client = _client(handler, PRIMARY)

    assert await client.get_transaction("Sig") is None
    assert await client.get_transaction_raw("Sig") is None
    await client.close()


@pytest.mark.asyncio
async def test_get_transaction_raw_uses_json_parsed() -> None:
    raw = {"slot": 1, "meta": {"err": None}, "transaction": {"message": {"accountKeys": [{"pubkey": "Wallet"}]}}}
    handler = RecordingHandler({PRIMARY: lambda body: {"result": raw}})
    client = _client(handler, PRIMARY)

    assert await client.get_transaction_raw("Sig") == raw
    _, body = handler.requests[0]
    assert body["params"][1]["encoding"] == "jsonParsed"
    await client.close()


@pytest.mark.asyncio
async def test_get_signature_status() -> None:
    handler = RecordingHandler(
        {
            PRIMARY: lambda body: {
                "result": {
                    "value": [
                        {"slot": 5, "confirmations": None, "err": None, "confirmationStatus": "finalized"}
                    ]
                }
            }
        }
    )
    client = _client(handler, PRIMARY)

    status = await client.get_signature_status("Sig")

    assert status is not None
    assert status.confirmations is None
    assert status.confirmation_status == "finalized"
    _, body = handler.requests[0]
    assert body["params"] == [["Sig"], {"searchTransactionHistory": True}]
    await client.close()


@pytest.mark.asyncio
async def test_get_signature_status_unknown() -> None:
    handler = RecordingHandler({PRIMARY: lambda body: {"result": {"value": [None]}}})
    client = _client(handler, PRIMARY)

    assert await client.get_signature_status("Sig") is None
    await client.close()


@pytest.mark.asyncio
async def test_get_signatures_for_address() -> None:
    handler = RecordingHandler(
        {
            PRIMARY: lambda body: {
                "result": [
                    {"signature": "A", "slot": 3, "blockTime": 30, "err": None},
                    {"signature": "B", "slot": 2, "blockTime": None, "err": {"x": 1}},
                    {"slot": 1},
                ]
            }
        }
    )
    client = _client(handler, PRIMARY)

    entries = await client.get_signatures_for_address("Wallet", limit=20)

    assert [entry.signature for entry in entries] == ["A", "B"]
    assert entries[1].err == {"x": 1}
    _, body = handler.requests[0]
    assert body["params"] == ["Wallet", {"limit": 20, "commitment": "confirmed"}]
    await client.close()


@pytest.mark.asyncio
async def test_malformed_result_is_transport_error() -> None:
    handler = RecordingHandler({PRIMARY: lambda body: {"result": {"unexpected": True}}})
    client = _client(handler, PRIMARY)

    with pytest.raises(TransportError):
        await client.get_balance("Addr")
    await client.close()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("method", "result"),
    [
        ("get_transaction", {"slot": "n/a", "meta": {"err": None}}),
        ("get_transaction", {"slot": 1, "meta": "broken"}),
        ("get_transaction", {"slot": 1, "meta": {"preBalances": [None]}}),
        ("get_transaction", {"slot": 1, "transaction": {"message": {"accountKeys": [{}]}}}),
        ("get_signature_status", {"value": ["not-an-object"]}),
        ("get_signature_status", {"value": [{"slot": 1, "confirmations": "many"}]}),
    ],
)
async def test_malformed_transaction_data_is_transport_error(method: str, result: Any) -> None:
    handler = RecordingHandler({PRIMARY: lambda body: {"result": result}})
    client = _client(handler, PRIMARY)

    with pytest.raises(TransportError):
        await getattr(client, method)("Sig")
    await client.close()


@pytest.mark.asyncio
async def test_malformed_address_history_is_transport_error() -> None:
    history = [{"signature": "Sig", "slot": "tomorrow", "blockTime": None}]
    handler = RecordingHandler({PRIMARY: lambda body: {"result": history}})
    client = _client(handler, PRIMARY)

    with pytest.raises(TransportError):
        await client.get_signatures_for_address("Wallet", limit=20)
    await client.close()


def test_parse_transaction_rejects_malformed_raw_result() -> None:
    with pytest.raises(TransportError):
        parse_transaction("Sig", {"slot": 1, "blockTime": "yesterday", "meta": {}})


@pytest.mark.asyncio
async def test_no_endpoints_configured() -> None:
    client = LedgerClient(LedgerConfig(endpoints=(), commitment="confirmed", timeout_seconds=1.0))

    with pytest.raises(TransportError):
        await client.call("getHealth")
