"""Exchange request repository protocol."""

from datetime import datetime
from typing import Protocol, Optional

from custody.domain.models import ExchangeRequest, ExchangeKind, ExchangeStatus


class ExchangeRepository(Protocol):
    """Interface for purchase/withdrawal request data access."""

    def create(self, request: ExchangeRequest) -> ExchangeRequest:
        """Persist a new request."""
        ...

    def get_by_id(self, request_id: str) -> Optional[ExchangeRequest]:
        """Retrieve request by ID."""
        ...

    def transition(
        self,
        request_id: str,
        expected: ExchangeStatus,
        target: ExchangeStatus,
        processed_by: Optional[str] = None,
        processed_at: Optional[datetime] = None,
        admin_notes: Optional[str] = None,
        rejection_reason: Optional[str] = None,
        settlement_txn_id: Optional[str] = None,
    ) -> bool:
        """Conditionally move a request between statuses."""
        ...

    def query(
        self,
        account_id: Optional[str] = None,
        kind: Optional[ExchangeKind] = None,
        status: Optional[ExchangeStatus] = None,
        limit: Optional[int] = None,
    ) -> list[ExchangeRequest]:
        """Query requests with filters, newest first."""
        ...
