"""Enumerations for domain models."""

from enum import Enum


class AccountRole(str, Enum):
    """Role of a custody account."""

    USER = "USER"
    TREASURY = "TREASURY"  # counterparty for stakes and settlements


class TransactionState(str, Enum):
    """Lifecycle of a ledger transaction. Moves forward only."""

    PENDING = "PENDING"
    BROADCASTED = "BROADCASTED"
    CONFIRMED = "CONFIRMED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (TransactionState.CONFIRMED, TransactionState.FAILED)


# Allowed forward transitions
TRANSACTION_TRANSITIONS: dict[TransactionState, frozenset[TransactionState]] = {
    TransactionState.PENDING: frozenset({TransactionState.BROADCASTED, TransactionState.FAILED}),
    TransactionState.BROADCASTED: frozenset({TransactionState.CONFIRMED, TransactionState.FAILED}),
    TransactionState.CONFIRMED: frozenset(),
    TransactionState.FAILED: frozenset(),
}


class StakeStatus(str, Enum):
    """Status of a stake position."""

    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"


class ExchangeKind(str, Enum):
    """Fiat exchange request kinds."""

    PURCHASE = "PURCHASE"  # user buys tokens; treasury pays out
    WITHDRAWAL = "WITHDRAWAL"  # user sells tokens; treasury receives


class ExchangeStatus(str, Enum):
    """Status of a fiat exchange request."""

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"
