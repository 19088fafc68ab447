"""SQLAlchemy implementation of ExchangeRepository."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import and_
from sqlalchemy.orm import Session

from custody.core.timezone import now_utc, optional_utc
from custody.domain.models import ExchangeRequest, ExchangeKind, ExchangeStatus
from custody.repositories.sqlalchemy.orm_models import ExchangeRequestORM


class SqlAlchemyExchangeRepository:
    """SQLAlchemy-backed purchase/withdrawal request repository."""

    def __init__(self, db: Session):
        self._db = db

    def create(self, request: ExchangeRequest) -> ExchangeRequest:
        """Persist a new request."""
        created_at = request.created_at or now_utc()
        orm_req = ExchangeRequestORM(
            request_id=request.request_id,
            account_id=request.account_id,
            kind=request.kind,
            amount=request.amount,
            fiat_amount=request.fiat_amount,
            price_per_token=request.price_per_token,
            status=request.status,
            rejection_reason=request.rejection_reason,
            admin_notes=request.admin_notes,
            processed_by=request.processed_by,
            processed_at=request.processed_at,
            settlement_txn_id=request.settlement_txn_id,
            created_at=created_at,
            updated_at=request.updated_at or created_at,
        )
        self._db.add(orm_req)
        self._db.commit()
        self._db.refresh(orm_req)
        return self._to_domain(orm_req)

    def get_by_id(self, request_id: str) -> Optional[ExchangeRequest]:
        """Retrieve request by ID."""
        orm_req = self._db.query(ExchangeRequestORM).filter(
            ExchangeRequestORM.request_id == request_id
        ).first()
        return self._to_domain(orm_req) if orm_req else None

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
        values: dict[Any, Any] = {
            ExchangeRequestORM.status: target,
            ExchangeRequestORM.updated_at: now_utc(),
        }
        if processed_by is not None:
            values[ExchangeRequestORM.processed_by] = processed_by
        if processed_at is not None:
            values[ExchangeRequestORM.processed_at] = processed_at
        if admin_notes is not None:
            values[ExchangeRequestORM.admin_notes] = admin_notes
        if rejection_reason is not None:
            values[ExchangeRequestORM.rejection_reason] = rejection_reason
        if settlement_txn_id is not None:
            values[ExchangeRequestORM.settlement_txn_id] = settlement_txn_id

        updated = (
            self._db.query(ExchangeRequestORM)
            .filter(
                ExchangeRequestORM.request_id == request_id,
                ExchangeRequestORM.status == expected,
            )
            .update(values, synchronize_session=False)
        )
        self._db.commit()
        self._db.expire_all()
        return updated == 1

    def query(
        self,
        account_id: Optional[str] = None,
        kind: Optional[ExchangeKind] = None,
        status: Optional[ExchangeStatus] = None,
        limit: Optional[int] = None,
    ) -> list[ExchangeRequest]:
        """Query requests with filters, newest first."""
        query = self._db.query(ExchangeRequestORM)

        conditions = []
        if account_id:
            conditions.append(ExchangeRequestORM.account_id == account_id)
        if kind:
            conditions.append(ExchangeRequestORM.kind == kind)
        if status:
            conditions.append(ExchangeRequestORM.status == status)

        if conditions:
            query = query.filter(and_(*conditions))

        query = query.order_by(ExchangeRequestORM.created_at.desc())
        if limit is not None:
            query = query.limit(limit)
        return [self._to_domain(r) for r in query.all()]

    @staticmethod
    def _to_domain(orm: ExchangeRequestORM) -> ExchangeRequest:
        """Convert ORM model to domain model."""
        return ExchangeRequest(
            request_id=orm.request_id,
            account_id=orm.account_id,
            kind=orm.kind,
            amount=Decimal(str(orm.amount)),
            fiat_amount=Decimal(str(orm.fiat_amount)),
            price_per_token=Decimal(str(orm.price_per_token)),
            status=orm.status,
            rejection_reason=orm.rejection_reason,
            admin_notes=orm.admin_notes,
            processed_by=orm.processed_by,
            processed_at=optional_utc(orm.processed_at),
            settlement_txn_id=orm.settlement_txn_id,
            created_at=optional_utc(orm.created_at),
            updated_at=optional_utc(orm.updated_at),
        )
