"""SQLAlchemy implementation of TransactionRepository."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy.orm import Session

from custody.core.timezone import now_utc, optional_utc
from custody.domain.models import LedgerTransaction, TransactionState
from custody.repositories.sqlalchemy.orm_models import LedgerTransactionORM


class SqlAlchemyTransactionRepository:
    """SQLAlchemy-backed ledger transaction repository."""

    def __init__(self, db: Session):
        self._db = db

    def create(self, transaction: LedgerTransaction) -> LedgerTransaction:
        """Persist a new transaction."""
        orm_txn = self._to_orm(transaction)
        self._db.add(orm_txn)
        self._db.commit()
        self._db.refresh(orm_txn)
        return self._to_domain(orm_txn)

    def get_by_id(self, transaction_id: str) -> Optional[LedgerTransaction]:
        """Retrieve transaction by ID."""
        orm_txn = self._db.query(LedgerTransactionORM).filter(
            LedgerTransactionORM.transaction_id == transaction_id
        ).first()
        return self._to_domain(orm_txn) if orm_txn else None

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

        The UPDATE is guarded on the current state, so two writers racing on
        the same row cannot both succeed.
        """
        values: dict[Any, Any] = {
            LedgerTransactionORM.state: target,
            LedgerTransactionORM.updated_at: now_utc(),
        }
        if chain_tx_id is not None:
            values[LedgerTransactionORM.chain_tx_id] = chain_tx_id
        if fail_code is not None:
            values[LedgerTransactionORM.fail_code] = fail_code
        if fail_reason is not None:
            values[LedgerTransactionORM.fail_reason] = fail_reason
        if receipt is not None:
            values[LedgerTransactionORM.receipt] = receipt

        updated = (
            self._db.query(LedgerTransactionORM)
            .filter(
                LedgerTransactionORM.transaction_id == transaction_id,
                LedgerTransactionORM.state == expected,
            )
            .update(values, synchronize_session=False)
        )
        self._db.commit()
        # Later reads must not see the pre-update identity map entry
        self._db.expire_all()
        return updated == 1

    def list_by_state(
        self,
        state: TransactionState,
        limit: int,
        created_before: Optional[datetime] = None,
    ) -> list[LedgerTransaction]:
        """List rows in a state, oldest first."""
        query = self._db.query(LedgerTransactionORM).filter(
            LedgerTransactionORM.state == state
        )
        if created_before is not None:
            query = query.filter(LedgerTransactionORM.created_at < created_before)
        query = query.order_by(LedgerTransactionORM.created_at).limit(limit)
        return [self._to_domain(t) for t in query.all()]

    def list_by_account(
        self,
        account_id: str,
        limit: Optional[int] = None,
        state: Optional[TransactionState] = None,
    ) -> list[LedgerTransaction]:
        """List an account's transactions, newest first."""
        query = self._db.query(LedgerTransactionORM).filter(
            LedgerTransactionORM.account_id == account_id
        )
        if state is not None:
            query = query.filter(LedgerTransactionORM.state == state)
        query = query.order_by(LedgerTransactionORM.created_at.desc())
        if limit is not None:
            query = query.limit(limit)
        return [self._to_domain(t) for t in query.all()]

    def count_by_account(self, account_id: str) -> int:
        """Count an account's transactions."""
        return self._db.query(LedgerTransactionORM).filter(
            LedgerTransactionORM.account_id == account_id
        ).count()

    def _to_orm(self, txn: LedgerTransaction) -> LedgerTransactionORM:
        """Convert domain model to ORM model."""
        created_at = txn.created_at or now_utc()
        return LedgerTransactionORM(
            transaction_id=txn.transaction_id,
            account_id=txn.account_id,
            to_address=txn.to_address,
            amount=txn.amount,
            state=txn.state,
            chain_tx_id=txn.chain_tx_id,
            fail_code=txn.fail_code,
            fail_reason=txn.fail_reason,
            receipt=txn.receipt,
            created_at=created_at,
            updated_at=txn.updated_at or created_at,
        )

    @staticmethod
    def _to_domain(orm: LedgerTransactionORM) -> LedgerTransaction:
        """Convert ORM model to domain model."""
        return LedgerTransaction(
            transaction_id=orm.transaction_id,
            account_id=orm.account_id,
            to_address=orm.to_address,
            amount=Decimal(str(orm.amount)),
            state=orm.state,
            chain_tx_id=orm.chain_tx_id,
            fail_code=orm.fail_code,
            fail_reason=orm.fail_reason,
            receipt=orm.receipt,
            created_at=optional_utc(orm.created_at),
            updated_at=optional_utc(orm.updated_at),
        )
