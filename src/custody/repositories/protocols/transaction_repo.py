"""Ledger transaction repository protocol."""

from datetime import datetime
from typing import Any, Protocol, Optional

from custody.domain.models import LedgerTransaction, TransactionState


class TransactionRepository(Protocol):
    """Interface for ledger transaction data access."""

    def create(self, transaction: LedgerTransaction) -> LedgerTransaction:
        """Persist a new transaction."""
        ...

    def get_by_id(self, transaction_id: str) -> Optional[LedgerTransaction]:
        """Retrieve transaction by ID."""
        ...

    def transition(
        self,
        transaction_id: str,
        expected: TransactionState,
        target: TransactionState,
        chain_tx_id: Optional[str] = None,
        fail_code: Optional[str] = None,
        fail_reason: Optional[str] = None,
        receipt: Optional[dict[str, Any]] = None,
    ) -> bool:
        """
        Conditionally move a row from expected to target.

        Returns False (and writes nothing) if the row is no longer in the
        expected state.
        """
        ...

    def list_by_state(
        self,
        state: TransactionState,
        limit: int,
        created_before: Optional[datetime] = None,
    ) -> list[LedgerTransaction]:
        """List rows in a state, oldest first."""
        ...

    def list_by_account(
        self,
        account_id: str,
        limit: Optional[int] = None,
        state: Optional[TransactionState] = None,
    ) -> list[LedgerTransaction]:
        """List an account's transactions, newest first."""
        ...

    def count_by_account(self, account_id: str) -> int:
        """Count an account's transactions."""
        ...
