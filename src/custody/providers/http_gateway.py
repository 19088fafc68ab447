"""HTTP adapter for the wallet gateway (TRON-style REST bridge)."""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import requests

from custody.core.exceptions import GatewayFailure, GatewayUnavailable
from custody.core.money import to_decimal, TOKEN_DECIMALS
from custody.core.timezone import from_unix_millis, now_utc
from custody.domain.views import (
    SendOutcome,
    Receipt,
    ReceiptStatus,
    OnChainTransfer,
    TransferPage,
)

logger = logging.getLogger(__name__)

# Native amounts are reported in the chain's smallest unit
NATIVE_UNITS_PER_COIN = Decimal("1000000")
TOKEN_CURRENCY = "USDT"
NATIVE_CURRENCY = "TRX"
# 4xx answers that do not reject the transfer itself
TRANSIENT_STATUS_CODES = frozenset({408, 425, 429})


def parse_token_value(value: Any, decimals: int = TOKEN_DECIMALS) -> Optional[Decimal]:
    """
    Parse a raw token value into a token amount.

    Values arrive as JSON numbers, decimal strings or hex strings (with or
    without a 0x prefix). Returns None if the value cannot be parsed.
    """
    if value is None or isinstance(value, bool):
        return None

    raw: Optional[int] = None
    if isinstance(value, int):
        raw = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        is_hex = text.lower().startswith("0x")
        digits = text[2:] if is_hex else text
        if is_hex or any(c in "abcdefABCDEF" for c in digits):
            try:
                raw = int(digits, 16)
            except ValueError:
                raw = None
        if raw is None:
            try:
                raw = int(digits)
            except ValueError:
                return None
    else:
        try:
            raw = int(Decimal(str(value)))
        except (InvalidOperation, ValueError):
            return None

    return Decimal(raw).scaleb(-decimals)


class HttpBlockchainGateway:
    """
    Gateway backed by the wallet bridge REST API.

    Every request carries the x-api-key header and a bounded timeout. Timeouts,
    connection errors and 5xx responses raise GatewayUnavailable.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout_seconds: float = 30,
        session: Optional[requests.Session] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._session = session or requests.Session()
        if api_key:
            self._session.headers.update({"x-api-key": api_key})

    # =========================================================================
    # Transport
    # =========================================================================

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
    ) -> requests.Response:
        url = f"{self._base_url}{path}"
        try:
            response = self._session.request(
                method, url, params=params, json=json, timeout=self._timeout
            )
        except requests.Timeout as e:
            logger.warning(f"Gateway timeout on {method} {path}: {e}")
            raise GatewayUnavailable(f"Gateway timeout on {path}")
        except requests.RequestException as e:
            logger.warning(f"Gateway unreachable on {method} {path}: {e}")
            raise GatewayUnavailable(f"Gateway unreachable on {path}")

        if response.status_code >= 500:
            logger.warning(f"Gateway returned {response.status_code} on {method} {path}")
            raise GatewayUnavailable(f"Gateway returned {response.status_code} on {path}")
        return response

    def _get_json(self, path: str, params: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        response = self._request("GET", path, params=params)
        if not response.ok:
            raise GatewayFailure(f"{path} returned {response.status_code}")
        return self._decode(response, path)

    @staticmethod
    def _decode(response: requests.Response, path: str) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            raise GatewayUnavailable(f"Gateway returned non-JSON body on {path}")
        if not isinstance(body, dict):
            raise GatewayUnavailable(f"Gateway returned unexpected body on {path}")
        return body

    # =========================================================================
    # Wallets
    # =========================================================================

    def create_wallet(self) -> tuple[str, str]:
        body = self._get_json("/wallet/create")
        address = body.get("address")
        private_key = body.get("privateKey") or body.get("private_key")
        if not address or not private_key:
            raise GatewayFailure("create_wallet response missing address or key")
        return address, private_key

    def address_from_private_key(self, private_key: str) -> str:
        address = self._get_json(f"/wallet/address-from-key/{private_key}").get("address")
        if not address:
            raise GatewayFailure("address-from-key response missing address")
        return address

    def is_valid_address(self, address: str) -> bool:
        if not address:
            return False
        response = self._request("GET", f"/wallet/isAddress/{address}")
        if not response.ok:
            return False
        body = self._decode(response, "/wallet/isAddress")
        return bool(body.get("ok", False))

    # =========================================================================
    # Balances
    # =========================================================================

    def get_native_balance(self, address: str) -> Decimal:
        body = self._get_json(f"/wallet/balance/{address}")
        return to_decimal(body.get("balance", body.get("trx")))

    def get_token_balance(self, address: str) -> Decimal:
        body = self._get_json(f"/wallet/usdt/{address}")
        return to_decimal(body.get("balance", body.get("usdt")))

    # =========================================================================
    # Transfers
    # =========================================================================

    def send_token(
        self, from_address: str, private_key: str, to_address: str, amount: Decimal
    ) -> SendOutcome:
        return self._send("/wallet/usdt/send", from_address, private_key, to_address, amount)

    def send_native(
        self, from_address: str, private_key: str, to_address: str, amount: Decimal
    ) -> SendOutcome:
        return self._send("/wallet/trx/send", from_address, private_key, to_address, amount)

    def _send(
        self,
        path: str,
        from_address: str,
        private_key: str,
        to_address: str,
        amount: Decimal,
    ) -> SendOutcome:
        payload = {
            "from": from_address,
            "pk": private_key,
            "to": to_address,
            # The bridge expects a JSON number; 6 decimals survive a double
            "amount": float(amount),
        }
        logger.info(f"Submitting {amount} from {from_address} to {to_address} via {path}")
        response = self._request("POST", path, json=payload)

        # Throttled or timed out at the bridge: the transfer may still go out
        if response.status_code in TRANSIENT_STATUS_CODES:
            logger.warning(f"Gateway returned {response.status_code} on POST {path}")
            raise GatewayUnavailable(f"Gateway returned {response.status_code} on {path}")

        if not response.ok:
            try:
                body = response.json()
            except ValueError:
                body = None
            error = body.get("error") if isinstance(body, dict) else None
            return SendOutcome(
                ok=False, chain_tx_id=None, error=str(error or f"HTTP {response.status_code}")
            )

        # An accepted request with an unreadable body says nothing about the transfer
        body = self._decode(response, path)
        if "ok" not in body:
            raise GatewayUnavailable(f"Gateway response on {path} has no ok flag")

        ok = bool(body["ok"])
        txid = body.get("txid") or body.get("txId")
        error = body.get("error")
        return SendOutcome(ok=ok, chain_tx_id=txid, error=str(error) if error else None)

    def get_receipt(self, chain_tx_id: str) -> Optional[Receipt]:
        response = self._request("GET", f"/wallet/tx/{chain_tx_id}")
        if response.status_code == 404:
            return None
        if not response.ok:
            raise GatewayFailure(f"Receipt lookup returned {response.status_code}")

        body = self._decode(response, "/wallet/tx")
        receipt = body.get("receipt")
        if not body or not isinstance(receipt, dict) or not receipt.get("result"):
            # Known to the node but not yet executed
            return None

        result = str(receipt["result"])
        status = ReceiptStatus.SUCCESS if result == "SUCCESS" else ReceiptStatus.FAILED
        return Receipt(chain_tx_id=chain_tx_id, status=status, result_code=result, raw=body)

    # =========================================================================
    # History
    # =========================================================================

    def list_token_transfers(
        self, address: str, limit: int, cursor: Optional[str] = None
    ) -> TransferPage:
        params: dict[str, Any] = {"limit": limit}
        if cursor:
            params["fingerprint"] = cursor
        body = self._get_json(f"/wallet/trc20/{address}", params=params)

        items = []
        for item in body.get("data") or []:
            token_info = item.get("token_info") or {}
            decimals = int(token_info.get("decimals", TOKEN_DECIMALS))
            amount = parse_token_value(item.get("value"), decimals)
            if amount is None:
                logger.warning(f"Skipping token transfer with unparseable value: {item.get('value')!r}")
                continue
            timestamp = item.get("block_timestamp")
            items.append(
                OnChainTransfer(
                    chain_tx_id=item.get("transaction_id", ""),
                    from_address=item.get("from", ""),
                    to_address=item.get("to", ""),
                    currency=token_info.get("symbol") or TOKEN_CURRENCY,
                    amount=amount,
                    timestamp=from_unix_millis(timestamp) if timestamp else now_utc(),
                    confirmed=bool(item.get("confirmed", True)),
                )
            )
        return TransferPage(items=items, next_cursor=self._next_cursor(body))

    def list_native_transfers(
        self, address: str, limit: int, cursor: Optional[str] = None
    ) -> TransferPage:
        params: dict[str, Any] = {"limit": limit}
        if cursor:
            params["fingerprint"] = cursor
        body = self._get_json(f"/wallet/transactions/{address}", params=params)

        items = []
        for item in body.get("data") or []:
            contracts = (item.get("raw_data") or {}).get("contract") or []
            transfer = next(
                (c for c in contracts if c.get("type") == "TransferContract"), None
            )
            if transfer is None:
                continue
            value = (transfer.get("parameter") or {}).get("value") or {}
            sun = value.get("amount")
            if sun is None:
                continue
            timestamp = item.get("block_timestamp")
            ret = item.get("ret") or [{}]
            items.append(
                OnChainTransfer(
                    chain_tx_id=item.get("txID", ""),
                    from_address=value.get("owner_address", ""),
                    to_address=value.get("to_address", ""),
                    currency=NATIVE_CURRENCY,
                    amount=Decimal(str(sun)) / NATIVE_UNITS_PER_COIN,
                    timestamp=from_unix_millis(timestamp) if timestamp else now_utc(),
                    confirmed=ret[0].get("contractRet", "SUCCESS") == "SUCCESS",
                )
            )
        return TransferPage(items=items, next_cursor=self._next_cursor(body))

    @staticmethod
    def _next_cursor(body: dict[str, Any]) -> Optional[str]:
        meta = body.get("meta") or {}
        return meta.get("fingerprint") or body.get("fingerprint")
