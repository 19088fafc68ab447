"""View models for gateway exchanges and service outputs."""

from custody.domain.views.chain import (
    SendOutcome,
    Receipt,
    ReceiptStatus,
    OnChainTransfer,
    TransferPage,
)
from custody.domain.views.custody import (
    BalanceView,
    SendResult,
    CloseResult,
    OnChainHistory,
    TickSummary,
)

__all__ = [
    "SendOutcome",
    "Receipt",
    "ReceiptStatus",
    "OnChainTransfer",
    "TransferPage",
    "BalanceView",
    "SendResult",
    "CloseResult",
    "OnChainHistory",
    "TickSummary",
]
