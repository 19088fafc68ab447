"""Repository protocol definitions (interfaces)."""

from custody.repositories.protocols.account_repo import AccountRepository
from custody.repositories.protocols.transaction_repo import TransactionRepository
from custody.repositories.protocols.stake_repo import StakeRepository
from custody.repositories.protocols.exchange_repo import ExchangeRepository
from custody.repositories.protocols.idempotency_repo import IdempotencyRepository

__all__ = [
    "AccountRepository",
    "TransactionRepository",
    "StakeRepository",
    "ExchangeRepository",
    "IdempotencyRepository",
]
