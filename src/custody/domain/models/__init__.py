"""Domain models package."""

from custody.domain.models.enums import (
    AccountRole,
    TransactionState,
    StakeStatus,
    ExchangeKind,
    ExchangeStatus,
)
from custody.domain.models.account import CustodyAccount
from custody.domain.models.transaction import LedgerTransaction
from custody.domain.models.stake import StakePosition
from custody.domain.models.exchange import ExchangeRequest
from custody.domain.models.idempotency import IdempotencyRecord

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
