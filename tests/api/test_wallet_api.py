"""
API tests for wallet endpoints.

Tests cover:
- Onboarding (201, 409 on duplicate, 422 without caller header)
- Account and balance reads
- Sending tokens (202, validation 400, funds 409, gateway 502/503)
- Idempotency-Key replay
- Ledger and on-chain history
"""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from tests.conftest import EXTERNAL_ADDRESS, owner_headers


# =============================================================================
# HELPER FIXTURES
# =============================================================================


@pytest.fixture
def alice(client: TestClient, gateway) -> dict:
    """Onboard alice and give her 100 tokens and 5 native coins."""
    response = client.post("/wallet", headers=owner_headers("alice"))
    account = response.json()
    gateway.credit(account["address"], token=Decimal("100"), native=Decimal("5"))
    return account


# =============================================================================
# ONBOARDING TESTS
# =============================================================================


class TestOnboardAPI:
    """Tests for POST /wallet and GET /wallet."""

    def test_onboard_success(self, client: TestClient):
        """
        GIVEN no accounts exist
        WHEN alice POSTs /wallet
        THEN response is 201 with her new address and no key material
        """
        response = client.post("/wallet", headers=owner_headers("alice"))

        assert response.status_code == 201
        data = response.json()
        assert data["owner_id"] == "alice"
        assert data["role"] == "USER"
        assert data["address"].startswith("T")
        assert "encrypted_private_key" not in data

    def test_onboard_twice_conflicts(self, client: TestClient, alice: dict):
        response = client.post("/wallet", headers=owner_headers("alice"))

        assert response.status_code == 409
        assert response.json()["error"] == "CONFLICT"

    def test_missing_owner_header(self, client: TestClient):
        response = client.post("/wallet")

        assert response.status_code == 422

    def test_get_wallet(self, client: TestClient, alice: dict):
        response = client.get("/wallet", headers=owner_headers("alice"))

        assert response.status_code == 200
        assert response.json()["account_id"] == alice["account_id"]

    def test_get_wallet_not_onboarded(self, client: TestClient):
        response = client.get("/wallet", headers=owner_headers("nobody"))

        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"


# =============================================================================
# BALANCE TESTS
# =============================================================================


class TestBalancesAPI:
    """Tests for GET /wallet/balances."""

    def test_balances(self, client: TestClient, alice: dict):
        response = client.get("/wallet/balances", headers=owner_headers("alice"))

        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["token"]) == Decimal("100")
        assert Decimal(data["native"]) == Decimal("5")
        assert Decimal(data["locked"]) == Decimal("0")
        assert Decimal(data["available"]) == Decimal("100")

    def test_balances_gateway_down_without_cache(self, client: TestClient, alice: dict, gateway):
        gateway.unavailable = True

        response = client.get("/wallet/balances", headers=owner_headers("alice"))

        assert response.status_code == 503
        assert response.json()["error"] == "GATEWAY_UNAVAILABLE"


# =============================================================================
# SEND TESTS
# =============================================================================


class TestSendAPI:
    """Tests for POST /wallet/send."""

    def test_send_success(self, client: TestClient, alice: dict, gateway):
        """
        GIVEN alice holds 100 tokens
        WHEN she sends 50.123456 to an external address
        THEN response is 202 with a BROADCASTED transaction
        """
        response = client.post(
            "/wallet/send",
            headers=owner_headers("alice"),
            json={"to_address": EXTERNAL_ADDRESS, "amount": "50.123456"},
        )

        assert response.status_code == 202
        data = response.json()
        assert data["state"] == "BROADCASTED"
        assert data["chain_tx_id"] is not None
        assert gateway.get_token_balance(alice["address"]) == Decimal("49.876544")

    def test_too_many_decimals(self, client: TestClient, alice: dict):
        response = client.post(
            "/wallet/send",
            headers=owner_headers("alice"),
            json={"to_address": EXTERNAL_ADDRESS, "amount": "50.1234567"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_AMOUNT"

    def test_invalid_address(self, client: TestClient, alice: dict):
        response = client.post(
            "/wallet/send",
            headers=owner_headers("alice"),
            json={"to_address": "nope", "amount": "1"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_insufficient_funds(self, client: TestClient, alice: dict):
        response = client.post(
            "/wallet/send",
            headers=owner_headers("alice"),
            json={"to_address": EXTERNAL_ADDRESS, "amount": "100.5"},
        )

        assert response.status_code == 409
        assert response.json()["error"] == "INSUFFICIENT_FUNDS"

    def test_missing_amount(self, client: TestClient, alice: dict):
        response = client.post(
            "/wallet/send",
            headers=owner_headers("alice"),
            json={"to_address": EXTERNAL_ADDRESS},
        )

        assert response.status_code == 422

    def test_gateway_rejection(self, client: TestClient, alice: dict, gateway):
        """
        GIVEN the gateway will reject the next transfer
        WHEN alice sends
        THEN response is 502 with the FAILED transaction id
        """
        gateway.fail_next_send("REVERT")

        response = client.post(
            "/wallet/send",
            headers=owner_headers("alice"),
            json={"to_address": EXTERNAL_ADDRESS, "amount": "10"},
        )

        assert response.status_code == 502
        data = response.json()
        assert data["error"] == "GATEWAY_FAILURE"
        assert data["transaction_id"]

        rows = client.get("/wallet/transactions", headers=owner_headers("alice")).json()
        assert rows["transactions"][0]["state"] == "FAILED"
        assert rows["transactions"][0]["fail_code"] == "GATEWAY_REJECTED"

    def test_idempotency_key_replays(self, client: TestClient, alice: dict, gateway):
        """
        GIVEN a send made with Idempotency-Key "k-1"
        WHEN the same request is repeated with "k-1"
        THEN the same transaction comes back and only one ledger row exists
        """
        body = {"to_address": EXTERNAL_ADDRESS, "amount": "50.123456"}
        headers = owner_headers("alice", idempotency_key="k-1")

        first = client.post("/wallet/send", headers=headers, json=body)
        second = client.post("/wallet/send", headers=headers, json=body)

        assert first.status_code == second.status_code == 202
        assert first.json()["transaction_id"] == second.json()["transaction_id"]
        rows = client.get("/wallet/transactions", headers=owner_headers("alice")).json()
        assert rows["count"] == 1
        assert len(gateway.submissions) == 1


# =============================================================================
# HISTORY TESTS
# =============================================================================


class TestHistoryAPI:
    """Tests for GET /wallet/transactions and GET /wallet/onchain."""

    def test_transactions_newest_first(self, client: TestClient, alice: dict, clock):
        for amount in ("1", "2"):
            client.post(
                "/wallet/send",
                headers=owner_headers("alice"),
                json={"to_address": EXTERNAL_ADDRESS, "amount": amount},
            )
            clock.advance(seconds=1)

        response = client.get("/wallet/transactions", headers=owner_headers("alice"))

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 2
        assert [Decimal(t["amount"]) for t in data["transactions"]] == [Decimal("2"), Decimal("1")]

    def test_transactions_state_filter(self, client: TestClient, alice: dict):
        client.post(
            "/wallet/send",
            headers=owner_headers("alice"),
            json={"to_address": EXTERNAL_ADDRESS, "amount": "1"},
        )

        response = client.get(
            "/wallet/transactions", headers=owner_headers("alice"), params={"state": "CONFIRMED"}
        )

        assert response.json()["count"] == 0

    def test_onchain_history(self, client: TestClient, alice: dict):
        client.post(
            "/wallet/send",
            headers=owner_headers("alice"),
            json={"to_address": EXTERNAL_ADDRESS, "amount": "7"},
        )

        response = client.get("/wallet/onchain", headers=owner_headers("alice"))

        assert response.status_code == 200
        data = response.json()
        assert data["address"] == alice["address"]
        assert len(data["items"]) == 1
        item = data["items"][0]
        assert item["direction"] == "out"
        assert item["currency"] == "USDT"
        assert Decimal(item["amount"]) == Decimal("7")

    def test_onchain_invalid_direction(self, client: TestClient, alice: dict):
        response = client.get(
            "/wallet/onchain", headers=owner_headers("alice"), params={"direction": "up"}
        )

        assert response.status_code == 400


# =============================================================================
# SERVICE ENDPOINT TESTS
# =============================================================================


class TestServiceEndpoints:
    """Tests for /health and /."""

    def test_health(self, client: TestClient):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_root(self, client: TestClient):
        assert "version" in client.get("/").json()
