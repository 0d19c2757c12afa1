# tests/test_api.py
"""HTTP-level tests for the /api/v1 surface."""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from conftest import CLAIM_AMOUNT, POST_URL, FakeClock, FakeLedger
from faucet_gate.core.settings import settings

API = "/api/v1"
POST_ID = "1790000000000000001"


def _attest(client: TestClient, wallet: str, post_url: str = POST_URL) -> dict:
    response = client.post(
        f"{API}/attestations", json={"postUrl": post_url, "walletAddress": wallet}
    )
    assert response.status_code == 200, response.text
    return response.json()


def _claim(client: TestClient, wallet: str, token: str):
    return client.post(
        f"{API}/claims", json={"walletAddress": wallet, "verificationToken": token}
    )


def test_health(client: TestClient) -> None:
    """Health and root endpoints respond."""
    assert client.get("/health").json() == {"status": "ok"}
    assert client.get("/").status_code == 200


def test_attestation_rejects_malformed_wallet(client: TestClient) -> None:
    response = client.post(
        f"{API}/attestations", json={"postUrl": POST_URL, "walletAddress": "abc"}
    )

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["reason"] == "invalid_request"
    assert "Invalid wallet address format" in detail["message"]


def test_attestation_rejects_non_post_link(client: TestClient, wallet: str) -> None:
    response = client.post(
        f"{API}/attestations",
        json={"postUrl": "https://example.com/post/1", "walletAddress": wallet},
    )

    assert response.status_code == 400


def test_claim_flow(client: TestClient, wallet: str) -> None:
    """Attest, claim, observe the cooldown, then fail to replay."""
    before = client.get(f"{API}/eligibility/{wallet}").json()
    assert before["eligible"] is True
    assert before["rpcStatus"] == "available"

    attestation = _attest(client, wallet)
    assert attestation["postId"] == POST_ID
    assert attestation["success"] is True

    response = _claim(client, wallet, attestation["verificationToken"])
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["amount"] == CLAIM_AMOUNT
    assert body["recipient"] == wallet
    assert body["message"] == "0.5 tokens sent successfully"
    assert body["verificationMethod"] == "direct-lookup"
    assert body["verified"] is True
    assert body["provisional"] is False
    assert body["explorerUrl"].endswith(body["signature"])

    after = client.get(f"{API}/eligibility/{wallet}", params={"forceRefresh": "true"}).json()
    assert after["eligible"] is False
    assert after["remainingHours"] == 24

    replay = _claim(client, wallet, attestation["verificationToken"])
    assert replay.status_code == 409
    assert replay.json()["detail"]["reason"] == "already_used"


def test_claim_during_cooldown_is_429(
    client: TestClient, fake_ledger: FakeLedger, clock: FakeClock, wallet: str
) -> None:
    fake_ledger.add_transfer(wallet, CLAIM_AMOUNT, clock() - timedelta(hours=2))
    attestation = _attest(client, wallet)

    response = _claim(client, wallet, attestation["verificationToken"])

    assert response.status_code == 429
    assert int(response.headers["Retry-After"]) > 0
    detail = response.json()["detail"]
    assert detail["reason"] == "not_eligible"
    assert detail["remainingHours"] == 22
    assert "nextClaimTime" in detail


def test_second_attestation_is_rate_limited(client: TestClient, wallet: str) -> None:
    _attest(client, wallet)

    response = client.post(
        f"{API}/attestations",
        json={"postUrl": "https://x.com/alice/status/42", "walletAddress": wallet},
    )

    assert response.status_code == 429
    assert response.json()["detail"]["reason"] == "rate_limited"
    assert "Retry-After" in response.headers


def test_claim_without_token(client: TestClient, wallet: str) -> None:
    response = client.post(f"{API}/claims", json={"walletAddress": wallet})

    assert response.status_code == 400
    assert response.json()["detail"]["reason"] == "missing_token"


def test_history(client: TestClient, fake_ledger: FakeLedger, wallet: str) -> None:
    attestation = _attest(client, wallet)
    signature = _claim(client, wallet, attestation["verificationToken"]).json()["signature"]

    response = client.get(f"{API}/history/{wallet}")
    assert response.status_code == 200
    entries = response.json()
    assert [entry["txRef"] for entry in entries] == [signature]
    assert entries[0]["source"] == "local"

    fake_ledger.unavailable = True
    partial = client.get(f"{API}/history/{wallet}")
    assert partial.status_code == 206
    assert partial.headers["X-Ledger-Status"] == "unavailable"
    assert len(partial.json()) == 1


def test_verify_transaction(
    client: TestClient, fake_ledger: FakeLedger, clock: FakeClock, wallet: str
) -> None:
    signature = fake_ledger.add_transfer(wallet, CLAIM_AMOUNT, clock())

    response = client.post(
        f"{API}/transactions/verify", json={"signature": signature, "walletAddress": wallet}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["found"] is True
    assert body["success"] is True
    assert body["method"] == "direct-lookup"


def test_system_status_and_config(client: TestClient) -> None:
    status = client.get(f"{API}/system/status").json()
    assert status["status"] == "ok"
    assert status["faucetConfigured"] is True
    assert status["balance"] == 100 * CLAIM_AMOUNT

    config = client.get(f"{API}/system/config")
    assert config.status_code == 200
    assert set(config.json()) == {"app", "claim", "posts", "ledger"}
    assert "private" not in config.text.lower()


class TestAdmin:
    """Administrative post reset."""

    def test_disabled_without_token(
        self, client: TestClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(settings, "admin_token", None)

        response = client.post(f"{API}/admin/posts/{POST_ID}/reset")

        assert response.status_code == 403

    def test_wrong_token(self, client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings, "admin_token", "s3cret")

        response = client.post(
            f"{API}/admin/posts/{POST_ID}/reset", headers={"X-Admin-Token": "nope"}
        )

        assert response.status_code == 401

    def test_reset_makes_post_usable(
        self,
        client: TestClient,
        monkeypatch: pytest.MonkeyPatch,
        wallet: str,
        other_wallet: str,
    ) -> None:
        monkeypatch.setattr(settings, "admin_token", "s3cret")
        attestation = _attest(client, wallet)
        assert _claim(client, wallet, attestation["verificationToken"]).status_code == 200

        response = client.post(
            f"{API}/admin/posts/{POST_ID}/reset", headers={"X-Admin-Token": "s3cret"}
        )

        assert response.status_code == 200
        assert response.json() == {"postId": POST_ID, "reset": True}
        _attest(client, other_wallet)
