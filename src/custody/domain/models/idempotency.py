"""Idempotency record for money-movement requests."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class IdempotencyRecord:
    """
    Outcome recorded under a caller-supplied idempotency key.

    outcome_json is None while the first request is still in flight.
    """

    key: str
    created_at: datetime
    outcome_json: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return self.outcome_json is not None
