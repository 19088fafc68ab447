"""Idempotency record repository protocol."""

from datetime import datetime
from typing import Protocol, Optional

from custody.domain.models import IdempotencyRecord


class IdempotencyRepository(Protocol):
    """Interface for idempotency record data access."""

    def reserve(self, key: str, created_at: datetime) -> bool:
        """Insert an in-flight record; False if the key already exists."""
        ...

    def get(self, key: str) -> Optional[IdempotencyRecord]:
        """Retrieve a record by key."""
        ...

    def complete(self, key: str, outcome_json: str) -> None:
        """Store the outcome for a reserved key."""
        ...

    def release(self, key: str) -> None:
        """Drop a reservation that produced no recordable outcome."""
        ...

    def purge_older_than(self, cutoff: datetime) -> int:
        """Delete records created before cutoff; return count."""
        ...
