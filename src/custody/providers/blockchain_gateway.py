"""Blockchain gateway protocol."""

from decimal import Decimal
from typing import Optional, Protocol

from custody.domain.views import SendOutcome, Receipt, TransferPage


class BlockchainGateway(Protocol):
    """
    Protocol for the chain-facing wallet gateway.

    Every call is blocking with a bounded timeout. Network errors and timeouts
    raise GatewayUnavailable; they never mean the operation failed. An explicit
    rejection of a transfer comes back as SendOutcome(ok=False, error=...).
    """

    def create_wallet(self) -> tuple[str, str]:
        """Generate a new key pair; returns (address, private_key)."""
        ...

    def address_from_private_key(self, private_key: str) -> str:
        """Derive the address that belongs to a private key."""
        ...

    def is_valid_address(self, address: str) -> bool:
        """Check address syntax/checksum with the chain."""
        ...

    def get_native_balance(self, address: str) -> Decimal:
        """Native coin balance (pays network fees)."""
        ...

    def get_token_balance(self, address: str) -> Decimal:
        """Custodied token balance, 6 decimals."""
        ...

    def send_token(
        self, from_address: str, private_key: str, to_address: str, amount: Decimal
    ) -> SendOutcome:
        """Sign and submit a token transfer."""
        ...

    def send_native(
        self, from_address: str, private_key: str, to_address: str, amount: Decimal
    ) -> SendOutcome:
        """Sign and submit a native coin transfer."""
        ...

    def get_receipt(self, chain_tx_id: str) -> Optional[Receipt]:
        """Execution receipt, or None while the transaction is not yet known."""
        ...

    def list_token_transfers(
        self, address: str, limit: int, cursor: Optional[str] = None
    ) -> TransferPage:
        """Token transfers touching address, newest first."""
        ...

    def list_native_transfers(
        self, address: str, limit: int, cursor: Optional[str] = None
    ) -> TransferPage:
        """Native coin transfers touching address, newest first."""
        ...
