"""In-memory blockchain gateway for offline/testing use."""

import hashlib
import itertools
import threading
from decimal import Decimal
from typing import Optional

from custody.core.exceptions import GatewayUnavailable
from custody.core.timezone import now_utc
from custody.domain.views import (
    SendOutcome,
    Receipt,
    ReceiptStatus,
    OnChainTransfer,
    TransferPage,
)

ADDRESS_LENGTH = 34


def _derive_address(private_key: str) -> str:
    digest = hashlib.sha256(private_key.encode("utf-8")).hexdigest()
    return "T" + digest[: ADDRESS_LENGTH - 1]


class InMemoryBlockchainGateway:
    """
    Deterministic gateway that keeps balances and transfers in memory.

    Transfers settle instantly against the in-memory balances but stay
    unconfirmed until confirm() or fail() is called, unless auto_confirm is
    set. Tests steer failure paths with fail_next_send() and the unavailable
    flag.
    """

    def __init__(self, auto_confirm: bool = False):
        self.auto_confirm = auto_confirm
        self.unavailable = False
        self.receipts_unavailable = False

        self._lock = threading.Lock()
        self._counter = itertools.count(1)
        self._keys: dict[str, str] = {}
        self._native: dict[str, Decimal] = {}
        self._token: dict[str, Decimal] = {}
        self._receipts: dict[str, Receipt] = {}
        self._history: list[OnChainTransfer] = []
        self._next_send_errors: list[str] = []
        self.submissions: list[dict] = []

    # =========================================================================
    # Test controls
    # =========================================================================

    def credit(
        self,
        address: str,
        token: Decimal = Decimal("0"),
        native: Decimal = Decimal("0"),
    ) -> None:
        """Add funds to an address out of thin air."""
        with self._lock:
            self._token[address] = self._token.get(address, Decimal("0")) + Decimal(token)
            self._native[address] = self._native.get(address, Decimal("0")) + Decimal(native)

    def set_token_balance(self, address: str, amount: Decimal) -> None:
        with self._lock:
            self._token[address] = Decimal(amount)

    def fail_next_send(self, error: str = "REVERT") -> None:
        """Make the next send_* call an explicit rejection."""
        with self._lock:
            self._next_send_errors.append(error)

    def confirm(self, chain_tx_id: str) -> None:
        with self._lock:
            self._receipts[chain_tx_id] = Receipt(
                chain_tx_id=chain_tx_id,
                status=ReceiptStatus.SUCCESS,
                result_code="SUCCESS",
                raw={"id": chain_tx_id, "receipt": {"result": "SUCCESS"}},
            )

    def fail(self, chain_tx_id: str, result_code: str = "OUT_OF_ENERGY") -> None:
        with self._lock:
            self._receipts[chain_tx_id] = Receipt(
                chain_tx_id=chain_tx_id,
                status=ReceiptStatus.FAILED,
                result_code=result_code,
                raw={"id": chain_tx_id, "receipt": {"result": result_code}},
            )

    def _check_available(self) -> None:
        if self.unavailable:
            raise GatewayUnavailable("In-memory gateway marked unavailable")

    # =========================================================================
    # BlockchainGateway
    # =========================================================================

    def create_wallet(self) -> tuple[str, str]:
        self._check_available()
        with self._lock:
            private_key = hashlib.sha256(f"stub-key-{next(self._counter)}".encode()).hexdigest()
            address = _derive_address(private_key)
            self._keys[address] = private_key
        return address, private_key

    def address_from_private_key(self, private_key: str) -> str:
        self._check_available()
        address = _derive_address(private_key)
        with self._lock:
            self._keys.setdefault(address, private_key)
        return address

    def is_valid_address(self, address: str) -> bool:
        self._check_available()
        return (
            isinstance(address, str)
            and len(address) == ADDRESS_LENGTH
            and address.startswith("T")
            and address.isalnum()
        )

    def get_native_balance(self, address: str) -> Decimal:
        self._check_available()
        with self._lock:
            return self._native.get(address, Decimal("0"))

    def get_token_balance(self, address: str) -> Decimal:
        self._check_available()
        with self._lock:
            return self._token.get(address, Decimal("0"))

    def send_token(
        self, from_address: str, private_key: str, to_address: str, amount: Decimal
    ) -> SendOutcome:
        return self._send(self._token, "USDT", from_address, private_key, to_address, amount)

    def send_native(
        self, from_address: str, private_key: str, to_address: str, amount: Decimal
    ) -> SendOutcome:
        return self._send(self._native, "TRX", from_address, private_key, to_address, amount)

    def _send(
        self,
        balances: dict[str, Decimal],
        currency: str,
        from_address: str,
        private_key: str,
        to_address: str,
        amount: Decimal,
    ) -> SendOutcome:
        self._check_available()
        with self._lock:
            self.submissions.append(
                {"currency": currency, "from": from_address, "to": to_address, "amount": amount}
            )
            if self._next_send_errors:
                return SendOutcome(ok=False, error=self._next_send_errors.pop(0))
            if self._keys.get(from_address) not in (None, private_key):
                return SendOutcome(ok=False, error="SIGNATURE_MISMATCH")
            if balances.get(from_address, Decimal("0")) < amount:
                return SendOutcome(ok=False, error="INSUFFICIENT_BALANCE")

            balances[from_address] = balances.get(from_address, Decimal("0")) - amount
            balances[to_address] = balances.get(to_address, Decimal("0")) + amount

            chain_tx_id = hashlib.sha256(
                f"{from_address}:{to_address}:{amount}:{next(self._counter)}".encode()
            ).hexdigest()
            self._history.append(
                OnChainTransfer(
                    chain_tx_id=chain_tx_id,
                    from_address=from_address,
                    to_address=to_address,
                    currency=currency,
                    amount=amount,
                    timestamp=now_utc(),
                    confirmed=self.auto_confirm,
                )
            )

        if self.auto_confirm:
            self.confirm(chain_tx_id)
        return SendOutcome(ok=True, chain_tx_id=chain_tx_id)

    def get_receipt(self, chain_tx_id: str) -> Optional[Receipt]:
        self._check_available()
        if self.receipts_unavailable:
            raise GatewayUnavailable("Receipt lookups unavailable")
        with self._lock:
            return self._receipts.get(chain_tx_id)

    def list_token_transfers(
        self, address: str, limit: int, cursor: Optional[str] = None
    ) -> TransferPage:
        return self._page("USDT", address, limit, cursor)

    def list_native_transfers(
        self, address: str, limit: int, cursor: Optional[str] = None
    ) -> TransferPage:
        return self._page("TRX", address, limit, cursor)

    def _page(
        self, currency: str, address: str, limit: int, cursor: Optional[str]
    ) -> TransferPage:
        self._check_available()
        with self._lock:
            matching = [
                t
                for t in reversed(self._history)
                if t.currency == currency and address in (t.from_address, t.to_address)
            ]
        offset = int(cursor) if cursor else 0
        items = matching[offset: offset + limit]
        next_cursor = str(offset + limit) if offset + limit < len(matching) else None
        return TransferPage(items=items, next_cursor=next_cursor)
