"""Typed events published after ledger transaction transitions."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union

from custody.core.timezone import now_utc


@dataclass(frozen=True)
class TransactionBroadcasted:
    transaction_id: str
    account_id: str
    chain_tx_id: str
    occurred_at: datetime = field(default_factory=now_utc)


@dataclass(frozen=True)
class TransactionConfirmed:
    transaction_id: str
    account_id: str
    chain_tx_id: str
    occurred_at: datetime = field(default_factory=now_utc)


@dataclass(frozen=True)
class TransactionFailed:
    transaction_id: str
    account_id: str
    error: str
    chain_tx_id: Optional[str] = None
    occurred_at: datetime = field(default_factory=now_utc)


TransactionEvent = Union[TransactionBroadcasted, TransactionConfirmed, TransactionFailed]
