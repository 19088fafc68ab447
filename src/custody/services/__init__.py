"""Service layer - business logic orchestration."""

from custody.services.account_service import AccountService
from custody.services.treasury import TreasuryResolver
from custody.services.balance_calculator import BalanceCache, BalanceCalculator
from custody.services.idempotency import IdempotencyService
from custody.services.event_channel import (
    TransactionEventChannel,
    TransactionNotificationHandler,
    NotificationDispatcher,
)
from custody.services.money_movement import MoneyMovementService
from custody.services.staking_engine import StakingEngine
from custody.services.quote_service import QuoteService
from custody.services.exchange_service import ExchangeService
from custody.services.transfer_history import TransferHistoryService

__all__ = [
    "AccountService",
    "TreasuryResolver",
    "BalanceCache",
    "BalanceCalculator",
    "IdempotencyService",
    "TransactionEventChannel",
    "TransactionNotificationHandler",
    "NotificationDispatcher",
    "MoneyMovementService",
    "StakingEngine",
    "QuoteService",
    "ExchangeService",
    "TransferHistoryService",
]
