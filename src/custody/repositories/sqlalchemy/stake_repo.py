"""SQLAlchemy implementation of StakeRepository."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from custody.core.timezone import now_utc, optional_utc
from custody.domain.models import StakePosition, StakeStatus
from custody.repositories.sqlalchemy.orm_models import StakePositionORM


class SqlAlchemyStakeRepository:
    """SQLAlchemy-backed stake position repository."""

    def __init__(self, db: Session):
        self._db = db

    def create(self, position: StakePosition) -> StakePosition:
        """Persist a new position."""
        created_at = position.created_at or now_utc()
        orm_pos = StakePositionORM(
            position_id=position.position_id,
            account_id=position.account_id,
            principal=position.principal,
            accrued=position.accrued,
            daily_rate_bp=position.daily_rate_bp,
            status=position.status,
            started_at=position.started_at or created_at,
            last_accrual_at=position.last_accrual_at,
            closed_at=position.closed_at,
            settlement_txn_id=position.settlement_txn_id,
            closing_txn_id=position.closing_txn_id,
            created_at=created_at,
            updated_at=position.updated_at or created_at,
        )
        self._db.add(orm_pos)
        self._db.commit()
        self._db.refresh(orm_pos)
        return self._to_domain(orm_pos)

    def get_by_id(self, position_id: str) -> Optional[StakePosition]:
        """Retrieve position by ID."""
        orm_pos = self._db.query(StakePositionORM).filter(
            StakePositionORM.position_id == position_id
        ).first()
        return self._to_domain(orm_pos) if orm_pos else None

    def list_by_account(
        self,
        account_id: str,
        status: Optional[StakeStatus] = None,
    ) -> list[StakePosition]:
        """List an account's positions, newest first."""
        query = self._db.query(StakePositionORM).filter(
            StakePositionORM.account_id == account_id
        )
        if status is not None:
            query = query.filter(StakePositionORM.status == status)
        query = query.order_by(StakePositionORM.started_at.desc())
        return [self._to_domain(p) for p in query.all()]

    def sum_active_principal(self, account_id: str) -> Decimal:
        """Sum of principal over the account's ACTIVE positions."""
        rows = (
            self._db.query(StakePositionORM.principal)
            .filter(
                StakePositionORM.account_id == account_id,
                StakePositionORM.status == StakeStatus.ACTIVE,
            )
            .all()
        )
        # Summed in Python to stay exact on backends that store NUMERIC as REAL
        return sum((Decimal(str(principal)) for (principal,) in rows), Decimal("0"))

    def update_accrual(
        self,
        position_id: str,
        expected_last_accrual: Optional[datetime],
        accrued: Decimal,
        last_accrual_at: datetime,
    ) -> bool:
        """Conditionally store a new accrual; False if the row moved on."""
        query = self._db.query(StakePositionORM).filter(
            StakePositionORM.position_id == position_id,
            StakePositionORM.status == StakeStatus.ACTIVE,
            StakePositionORM.close_claim.is_(None),
        )
        if expected_last_accrual is None:
            query = query.filter(StakePositionORM.last_accrual_at.is_(None))
        else:
            query = query.filter(StakePositionORM.last_accrual_at == expected_last_accrual)

        updated = query.update(
            {
                StakePositionORM.accrued: accrued,
                StakePositionORM.last_accrual_at: last_accrual_at,
                StakePositionORM.updated_at: now_utc(),
            },
            synchronize_session=False,
        )
        self._db.commit()
        self._db.expire_all()
        return updated == 1

    def claim_close(self, position_id: str, claim: str) -> bool:
        """Reserve an ACTIVE, unclaimed position for one close."""
        updated = (
            self._db.query(StakePositionORM)
            .filter(
                StakePositionORM.position_id == position_id,
                StakePositionORM.status == StakeStatus.ACTIVE,
                StakePositionORM.close_claim.is_(None),
            )
            .update(
                {
                    StakePositionORM.close_claim: claim,
                    StakePositionORM.updated_at: now_utc(),
                },
                synchronize_session=False,
            )
        )
        self._db.commit()
        self._db.expire_all()
        return updated == 1

    def release_close(self, position_id: str, claim: str) -> bool:
        """Drop a close reservation held under claim."""
        updated = (
            self._db.query(StakePositionORM)
            .filter(
                StakePositionORM.position_id == position_id,
                StakePositionORM.close_claim == claim,
            )
            .update(
                {
                    StakePositionORM.close_claim: None,
                    StakePositionORM.updated_at: now_utc(),
                },
                synchronize_session=False,
            )
        )
        self._db.commit()
        self._db.expire_all()
        return updated == 1

    def mark_closed(
        self,
        position_id: str,
        claim: str,
        accrued: Decimal,
        closed_at: datetime,
        closing_txn_id: str,
    ) -> bool:
        """Conditionally move an ACTIVE position claimed under claim to CLOSED."""
        updated = (
            self._db.query(StakePositionORM)
            .filter(
                StakePositionORM.position_id == position_id,
                StakePositionORM.status == StakeStatus.ACTIVE,
                StakePositionORM.close_claim == claim,
            )
            .update(
                {
                    StakePositionORM.status: StakeStatus.CLOSED,
                    StakePositionORM.accrued: accrued,
                    StakePositionORM.closed_at: closed_at,
                    StakePositionORM.closing_txn_id: closing_txn_id,
                    StakePositionORM.close_claim: None,
                    StakePositionORM.updated_at: now_utc(),
                },
                synchronize_session=False,
            )
        )
        self._db.commit()
        self._db.expire_all()
        return updated == 1

    @staticmethod
    def _to_domain(orm: StakePositionORM) -> StakePosition:
        """Convert ORM model to domain model."""
        return StakePosition(
            position_id=orm.position_id,
            account_id=orm.account_id,
            principal=Decimal(str(orm.principal)),
            accrued=Decimal(str(orm.accrued)) if orm.accrued is not None else Decimal("0"),
            daily_rate_bp=orm.daily_rate_bp,
            status=orm.status,
            started_at=optional_utc(orm.started_at),
            last_accrual_at=optional_utc(orm.last_accrual_at),
            closed_at=optional_utc(orm.closed_at),
            settlement_txn_id=orm.settlement_txn_id,
            closing_txn_id=orm.closing_txn_id,
            close_claim=orm.close_claim,
            created_at=optional_utc(orm.created_at),
            updated_at=optional_utc(orm.updated_at),
        )
