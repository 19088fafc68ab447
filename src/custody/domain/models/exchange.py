"""Fiat exchange request domain model."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from custody.domain.models.enums import ExchangeKind, ExchangeStatus


@dataclass
class ExchangeRequest:
    """
    A user's request to buy or sell tokens against fiat.

    Settled on-chain against the treasury account once an admin approves it.
    """

    request_id: str
    account_id: str
    kind: ExchangeKind
    amount: Decimal
    fiat_amount: Decimal
    price_per_token: Decimal
    status: ExchangeStatus = ExchangeStatus.PENDING
    rejection_reason: Optional[str] = None
    admin_notes: Optional[str] = None
    processed_by: Optional[str] = None
    processed_at: Optional[datetime] = None
    settlement_txn_id: Optional[str] = None
    created_at: Optional[datetime] = field(default=None)
    updated_at: Optional[datetime] = field(default=None)

    def __post_init__(self) -> None:
        if isinstance(self.kind, str):
            self.kind = ExchangeKind(self.kind)
        if isinstance(self.status, str):
            self.status = ExchangeStatus(self.status)
