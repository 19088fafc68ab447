"""Value objects exchanged with the blockchain gateway."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


@dataclass(frozen=True)
class SendOutcome:
    """Result of a transfer submission: ok with a chain id, or an error."""

    ok: bool
    chain_tx_id: Optional[str] = None
    error: Optional[str] = None


class ReceiptStatus(str, Enum):
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


@dataclass(frozen=True)
class Receipt:
    """On-chain execution receipt for a transaction."""

    chain_tx_id: str
    status: ReceiptStatus
    result_code: Optional[str] = None
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == ReceiptStatus.SUCCESS


@dataclass(frozen=True)
class OnChainTransfer:
    """One transfer as reported by the chain history endpoints."""

    chain_tx_id: str
    from_address: str
    to_address: str
    currency: str
    amount: Decimal
    timestamp: datetime
    confirmed: bool = True
    direction: Optional[str] = None  # "in" / "out", relative to the queried address


@dataclass
class TransferPage:
    """A page of transfers plus the cursor for the next page."""

    items: list[OnChainTransfer] = field(default_factory=list)
    next_cursor: Optional[str] = None
