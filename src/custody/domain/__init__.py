"""Domain layer - pure business models with no external dependencies."""

from custody.domain.models import (
    AccountRole,
    TransactionState,
    StakeStatus,
    ExchangeKind,
    ExchangeStatus,
    CustodyAccount,
    LedgerTransaction,
    StakePosition,
    ExchangeRequest,
    IdempotencyRecord,
)

__all__ = [
    "AccountRole",
    "TransactionState",
    "StakeStatus",
    "ExchangeKind",
    "ExchangeStatus",
    "CustodyAccount",
    "LedgerTransaction",
    "StakePosition",
    "ExchangeRequest",
    "IdempotencyRecord",
]
