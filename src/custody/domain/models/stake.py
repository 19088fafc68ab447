"""Stake position domain model."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from custody.domain.models.enums import StakeStatus


@dataclass
class StakePosition:
    """
    Principal moved to the treasury account, accruing simple daily interest.

    principal is fixed at creation. accrued never decreases while ACTIVE.
    settlement_txn_id references the opening transfer; closing_txn_id the
    payout of principal + accrued. close_claim is held by the close that
    is currently paying out.
    """

    position_id: str
    account_id: str
    principal: Decimal
    daily_rate_bp: int
    accrued: Decimal = field(default_factory=lambda: Decimal("0"))
    status: StakeStatus = StakeStatus.ACTIVE
    started_at: Optional[datetime] = field(default=None)
    last_accrual_at: Optional[datetime] = field(default=None)
    closed_at: Optional[datetime] = field(default=None)
    settlement_txn_id: Optional[str] = None
    closing_txn_id: Optional[str] = None
    close_claim: Optional[str] = None
    created_at: Optional[datetime] = field(default=None)
    updated_at: Optional[datetime] = field(default=None)

    def __post_init__(self) -> None:
        if isinstance(self.status, str):
            self.status = StakeStatus(self.status)

    @property
    def is_active(self) -> bool:
        return self.status == StakeStatus.ACTIVE
