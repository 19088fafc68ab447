"""Repository layer - data access abstractions and implementations."""

from custody.repositories.protocols import (
    AccountRepository,
    TransactionRepository,
    StakeRepository,
    ExchangeRepository,
    IdempotencyRepository,
)

__all__ = [
    "AccountRepository",
    "TransactionRepository",
    "StakeRepository",
    "ExchangeRepository",
    "IdempotencyRepository",
]
