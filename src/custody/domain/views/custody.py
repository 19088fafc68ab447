"""View models for service outputs."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from custody.domain.models.enums import TransactionState
from custody.domain.views.chain import OnChainTransfer


@dataclass(frozen=True)
class BalanceView:
    """On-chain balances and derived availability for one account."""

    account_id: str
    address: str
    native: Decimal
    token: Decimal
    locked: Decimal
    available: Decimal
    as_of: Optional[datetime] = None


@dataclass(frozen=True)
class SendResult:
    """Outcome of a custodial transfer accepted by the gateway."""

    transaction_id: str
    chain_tx_id: Optional[str]
    state: TransactionState


@dataclass(frozen=True)
class CloseResult:
    """Principal/rewards split returned when a stake is closed."""

    position_id: str
    principal: Decimal
    rewards: Decimal
    total: Decimal
    transaction_id: str
    chain_tx_id: Optional[str] = None


@dataclass
class OnChainHistory:
    """Merged token + native transfer history for an address."""

    address: str
    items: list[OnChainTransfer] = field(default_factory=list)
    cursor: Optional[str] = None


@dataclass
class TickSummary:
    """Counts produced by one confirmation watcher tick."""

    checked: int = 0
    confirmed: int = 0
    failed: int = 0
    unresolved: int = 0
    errors: int = 0
    stale_pending: int = 0
    interrupted: bool = False
