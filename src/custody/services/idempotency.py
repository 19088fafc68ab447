"""Idempotency keys for money-movement requests."""

import json
import logging
from datetime import timedelta
from typing import Any, Optional

from custody.core.exceptions import ConflictError
from custody.core.timezone import Clock, now_utc
from custody.repositories.protocols import IdempotencyRepository

logger = logging.getLogger(__name__)


class IdempotencyService:
    """
    Records the first outcome seen for a key and replays it.

    A key is claimed by inserting a row; the insert is the lock, so two
    concurrent requests with the same key cannot both proceed. Records older
    than the retention window are purged lazily on claim.
    """

    def __init__(
        self,
        repo: IdempotencyRepository,
        ttl_seconds: int = 600,
        clock: Clock = now_utc,
    ):
        self._repo = repo
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock

    def claim(self, key: str) -> Optional[dict[str, Any]]:
        """
        Claim a key for a new request.

        Returns None when the caller now owns the key and should run the
        operation, or the recorded outcome when a previous request finished.

        Raises:
            ConflictError: A request with this key is still in flight
        """
        now = self._clock()
        purged = self._repo.purge_older_than(now - self._ttl)
        if purged:
            logger.debug(f"Purged {purged} expired idempotency records")

        if self._repo.reserve(key, now):
            return None

        record = self._repo.get(key)
        if record is None:
            # Released between our insert and read; try once more
            if self._repo.reserve(key, now):
                return None
            raise ConflictError(f"Request with idempotency key {key} is in progress")

        if not record.is_complete:
            raise ConflictError(f"Request with idempotency key {key} is in progress")
        return json.loads(record.outcome_json)

    def complete(self, key: str, outcome: dict[str, Any]) -> None:
        """Record the outcome for a claimed key."""
        self._repo.complete(key, json.dumps(outcome))

    def release(self, key: str) -> None:
        """Give up a claimed key without recording an outcome."""
        self._repo.release(key)
