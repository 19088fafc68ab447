"""
Unit tests for the HTTP gateway adapter and the Binance price oracle.

Tests cover:
- Token value parsing (decimal, hex, with/without 0x)
- Error mapping (timeouts, 5xx, throttling and unreadable send bodies -> unavailable;
  explicit rejection)
- Receipt interpretation
- Transfer history parsing and cursors
- Oracle averaging and failure handling
"""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
import requests

from custody.core.exceptions import GatewayFailure, GatewayUnavailable
from custody.domain.views import ReceiptStatus
from custody.providers import BinancePriceOracle, HttpBlockchainGateway
from custody.providers.http_gateway import parse_token_value


def _response(status_code: int = 200, body=None) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    if isinstance(body, Exception):
        response.json.side_effect = body
    else:
        response.json.return_value = body if body is not None else {}
    return response


def _gateway(*responses) -> tuple[HttpBlockchainGateway, MagicMock]:
    session = MagicMock()
    session.headers = {}
    session.request.side_effect = list(responses)
    gateway = HttpBlockchainGateway("https://bridge.example/", api_key="secret", session=session)
    return gateway, session


# =============================================================================
# TOKEN VALUE PARSING TESTS
# =============================================================================


class TestParseTokenValue:
    """Tests for raw token values from the chain."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("50123456", Decimal("50.123456")),
            (50123456, Decimal("50.123456")),
            ("0x2fcd2c0", Decimal("50.123456")),
            ("2fcd2c0", Decimal("50.123456")),
            ("0", Decimal("0")),
        ],
    )
    def test_parses(self, raw, expected):
        assert parse_token_value(raw) == expected

    def test_custom_decimals(self):
        assert parse_token_value("1500", decimals=2) == Decimal("15.00")

    @pytest.mark.parametrize("raw", [None, "", "xyz", True])
    def test_unparseable(self, raw):
        assert parse_token_value(raw) is None


# =============================================================================
# TRANSPORT TESTS
# =============================================================================


class TestTransport:
    """Tests for request handling and error mapping."""

    def test_api_key_header_and_url(self):
        gateway, session = _gateway(_response(body={"balance": "12.5"}))

        assert gateway.get_token_balance("TAddr") == Decimal("12.5")
        assert session.headers["x-api-key"] == "secret"
        method, url = session.request.call_args.args
        assert method == "GET"
        assert url == "https://bridge.example/wallet/usdt/TAddr"
        assert session.request.call_args.kwargs["timeout"] == 30

    def test_timeout_is_unavailable(self):
        gateway, _ = _gateway(requests.Timeout("read timed out"))

        with pytest.raises(GatewayUnavailable):
            gateway.get_native_balance("TAddr")

    def test_connection_error_is_unavailable(self):
        gateway, _ = _gateway(requests.ConnectionError("refused"))

        with pytest.raises(GatewayUnavailable):
            gateway.get_native_balance("TAddr")

    def test_server_error_is_unavailable(self):
        gateway, _ = _gateway(_response(502))

        with pytest.raises(GatewayUnavailable):
            gateway.get_token_balance("TAddr")

    def test_client_error_is_failure(self):
        gateway, _ = _gateway(_response(400, {"error": "bad address"}))

        with pytest.raises(GatewayFailure):
            gateway.get_token_balance("TAddr")

    def test_create_wallet(self):
        gateway, _ = _gateway(_response(body={"address": "TNew", "privateKey": "ab" * 32}))

        assert gateway.create_wallet() == ("TNew", "ab" * 32)

    def test_is_valid_address(self):
        gateway, _ = _gateway(_response(body={"ok": True}), _response(body={"ok": False}))

        assert gateway.is_valid_address("TGood") is True
        assert gateway.is_valid_address("bad") is False


# =============================================================================
# SEND TESTS
# =============================================================================


class TestSend:
    """Tests for transfer submission."""

    def test_accepted_transfer(self):
        gateway, session = _gateway(_response(body={"ok": True, "txid": "abc123"}))

        outcome = gateway.send_token("TFrom", "pk", "TTo", Decimal("50.123456"))

        assert outcome.ok
        assert outcome.chain_tx_id == "abc123"
        payload = session.request.call_args.kwargs["json"]
        assert payload["from"] == "TFrom"
        assert payload["to"] == "TTo"
        assert payload["amount"] == 50.123456

    def test_explicit_rejection(self):
        gateway, _ = _gateway(_response(body={"ok": False, "error": "REVERT"}))

        outcome = gateway.send_token("TFrom", "pk", "TTo", Decimal("1"))

        assert not outcome.ok
        assert outcome.error == "REVERT"

    def test_client_error_is_rejection(self):
        gateway, _ = _gateway(_response(400, {"error": "balance is not sufficient"}))

        outcome = gateway.send_native("TFrom", "pk", "TTo", Decimal("1"))

        assert not outcome.ok
        assert outcome.error == "balance is not sufficient"

    def test_send_timeout_is_unavailable(self):
        gateway, _ = _gateway(requests.Timeout("read timed out"))

        with pytest.raises(GatewayUnavailable):
            gateway.send_token("TFrom", "pk", "TTo", Decimal("1"))

    @pytest.mark.parametrize("status_code", [408, 429])
    def test_throttled_send_is_unavailable(self, status_code):
        gateway, _ = _gateway(_response(status_code, {"error": "slow down"}))

        with pytest.raises(GatewayUnavailable):
            gateway.send_token("TFrom", "pk", "TTo", Decimal("1"))

    @pytest.mark.parametrize(
        "body",
        [ValueError("Expecting value"), ["ok"], {"txid": "abc123"}],
        ids=["not-json", "not-an-object", "no-ok-flag"],
    )
    def test_unreadable_accepted_response_is_unavailable(self, body):
        """
        GIVEN the bridge answers 200 with a body that does not state the result
        WHEN I send
        THEN the outcome is unknown rather than a rejection
        """
        gateway, _ = _gateway(_response(body=body))

        with pytest.raises(GatewayUnavailable):
            gateway.send_token("TFrom", "pk", "TTo", Decimal("1"))

    def test_client_error_without_body_is_rejection(self):
        gateway, _ = _gateway(_response(403, ValueError("Expecting value")))

        outcome = gateway.send_token("TFrom", "pk", "TTo", Decimal("1"))

        assert not outcome.ok
        assert outcome.error == "HTTP 403"


# =============================================================================
# RECEIPT TESTS
# =============================================================================


class TestReceipts:
    """Tests for receipt interpretation."""

    def test_success(self):
        body = {"id": "abc", "receipt": {"result": "SUCCESS"}}
        gateway, _ = _gateway(_response(body=body))

        receipt = gateway.get_receipt("abc")

        assert receipt.status == ReceiptStatus.SUCCESS
        assert receipt.raw == body

    def test_failure_result(self):
        gateway, _ = _gateway(_response(body={"id": "abc", "receipt": {"result": "OUT_OF_ENERGY"}}))

        receipt = gateway.get_receipt("abc")

        assert receipt.status == ReceiptStatus.FAILED
        assert receipt.result_code == "OUT_OF_ENERGY"

    def test_unknown_transaction(self):
        gateway, _ = _gateway(_response(404))

        assert gateway.get_receipt("abc") is None

    def test_not_yet_executed(self):
        gateway, _ = _gateway(_response(body={}), _response(body={"id": "abc", "receipt": {}}))

        assert gateway.get_receipt("abc") is None
        assert gateway.get_receipt("abc") is None


# =============================================================================
# HISTORY TESTS
# =============================================================================


class TestHistory:
    """Tests for transfer history parsing."""

    def test_token_transfers(self):
        body = {
            "data": [
                {
                    "transaction_id": "t1",
                    "from": "TA",
                    "to": "TB",
                    "value": "50123456",
                    "block_timestamp": 1767268800000,
                    "token_info": {"symbol": "USDT", "decimals": 6},
                },
                {"transaction_id": "t2", "from": "TA", "to": "TB", "value": None},
            ],
            "meta": {"fingerprint": "next-page"},
        }
        gateway, session = _gateway(_response(body=body))

        page = gateway.list_token_transfers("TA", limit=10, cursor="this-page")

        assert [t.chain_tx_id for t in page.items] == ["t1"]
        assert page.items[0].amount == Decimal("50.123456")
        assert page.items[0].currency == "USDT"
        assert page.next_cursor == "next-page"
        assert session.request.call_args.kwargs["params"] == {"limit": 10, "fingerprint": "this-page"}

    def test_native_transfers(self):
        body = {
            "data": [
                {
                    "txID": "n1",
                    "block_timestamp": 1767268800000,
                    "ret": [{"contractRet": "SUCCESS"}],
                    "raw_data": {
                        "contract": [
                            {
                                "type": "TransferContract",
                                "parameter": {
                                    "value": {
                                        "owner_address": "TA",
                                        "to_address": "TB",
                                        "amount": 2500000,
                                    }
                                },
                            }
                        ]
                    },
                },
                {"txID": "n2", "raw_data": {"contract": [{"type": "TriggerSmartContract"}]}},
            ]
        }
        gateway, _ = _gateway(_response(body=body))

        page = gateway.list_native_transfers("TA", limit=10)

        assert len(page.items) == 1
        assert page.items[0].amount == Decimal("2.5")
        assert page.items[0].currency == "TRX"
        assert page.items[0].confirmed
        assert page.next_cursor is None


# =============================================================================
# PRICE ORACLE TESTS
# =============================================================================


class TestBinancePriceOracle:
    """Tests for the P2P price average."""

    def _oracle(self, response) -> tuple[BinancePriceOracle, MagicMock]:
        session = MagicMock()
        if isinstance(response, Exception):
            session.post.side_effect = response
        else:
            session.post.return_value = response
        return BinancePriceOracle(session=session), session

    def test_average_of_sampled_prices(self):
        body = {"data": [{"adv": {"price": "9.40"}}, {"adv": {"price": "9.60"}}, {"adv": {"price": "bad"}}]}
        oracle, session = self._oracle(_response(body=body))

        price = oracle.get_average_buy_price("USDT", "BOB", 10)

        assert price == Decimal("9.50")
        payload = session.post.call_args.kwargs["json"]
        assert payload["tradeType"] == "BUY"
        assert payload["rows"] == 10
        assert payload["fiat"] == "BOB"

    def test_sample_size_limits_prices(self):
        body = {"data": [{"adv": {"price": "9"}}, {"adv": {"price": "11"}}]}
        oracle, _ = self._oracle(_response(body=body))

        assert oracle.get_average_sell_price("USDT", "BOB", 1) == Decimal("9")

    def test_request_error_returns_none(self):
        oracle, _ = self._oracle(requests.ConnectionError("refused"))

        assert oracle.get_average_sell_price("USDT", "BOB", 10) is None

    def test_http_error_returns_none(self):
        oracle, _ = self._oracle(_response(503))

        assert oracle.get_average_buy_price("USDT", "BOB", 10) is None

    def test_empty_data_returns_none(self):
        oracle, _ = self._oracle(_response(body={"data": []}))

        assert oracle.get_average_buy_price("USDT", "BOB", 10) is None
