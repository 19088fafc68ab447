"""Ledger transaction domain model."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from custody.domain.models.enums import TransactionState, TRANSACTION_TRANSITIONS


@dataclass
class LedgerTransaction:
    """
    Local record of one custodial transfer and its on-chain status.

    - chain_tx_id is set only once BROADCASTED
    - fail_code/fail_reason are set only when FAILED
    - receipt holds the raw gateway receipt once CONFIRMED
    """

    transaction_id: str
    account_id: str
    to_address: str
    amount: Decimal
    state: TransactionState = TransactionState.PENDING
    chain_tx_id: Optional[str] = None
    fail_code: Optional[str] = None
    fail_reason: Optional[str] = None
    receipt: Optional[dict[str, Any]] = None
    created_at: Optional[datetime] = field(default=None)
    updated_at: Optional[datetime] = field(default=None)

    def __post_init__(self) -> None:
        if isinstance(self.state, str):
            self.state = TransactionState(self.state)

    def can_transition_to(self, target: TransactionState) -> bool:
        """Return True if moving to target keeps the state machine forward-only."""
        return target in TRANSACTION_TRANSITIONS[self.state]
