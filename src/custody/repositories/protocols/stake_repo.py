"""Stake position repository protocol."""

from datetime import datetime
from decimal import Decimal
from typing import Protocol, Optional

from custody.domain.models import StakePosition, StakeStatus


class StakeRepository(Protocol):
    """Interface for stake position data access."""

    def create(self, position: StakePosition) -> StakePosition:
        """Persist a new position."""
        ...

    def get_by_id(self, position_id: str) -> Optional[StakePosition]:
        """Retrieve position by ID."""
        ...

    def list_by_account(
        self,
        account_id: str,
        status: Optional[StakeStatus] = None,
    ) -> list[StakePosition]:
        """List an account's positions, newest first."""
        ...

    def sum_active_principal(self, account_id: str) -> Decimal:
        """Sum of principal over the account's ACTIVE positions."""
        ...

    def update_accrual(
        self,
        position_id: str,
        expected_last_accrual: Optional[datetime],
        accrued: Decimal,
        last_accrual_at: datetime,
    ) -> bool:
        """Conditionally store a new accrual; False if the row moved on."""
        ...

    def claim_close(self, position_id: str, claim: str) -> bool:
        """Reserve an ACTIVE, unclaimed position for one close."""
        ...

    def release_close(self, position_id: str, claim: str) -> bool:
        """Drop a close reservation held under claim."""
        ...

    def mark_closed(
        self,
        position_id: str,
        claim: str,
        accrued: Decimal,
        closed_at: datetime,
        closing_txn_id: str,
    ) -> bool:
        """Conditionally move an ACTIVE position claimed under claim to CLOSED."""
        ...
