"""SQLAlchemy implementation of IdempotencyRepository."""

from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError as SqlIntegrityError
from sqlalchemy.orm import Session

from custody.core.timezone import to_utc
from custody.domain.models import IdempotencyRecord
from custody.repositories.sqlalchemy.orm_models import IdempotencyRecordORM


class SqlAlchemyIdempotencyRepository:
    """SQLAlchemy-backed idempotency record repository."""

    def __init__(self, db: Session):
        self._db = db

    def reserve(self, key: str, created_at: datetime) -> bool:
        """Insert an in-flight record; False if the key already exists."""
        self._db.add(IdempotencyRecordORM(key=key, created_at=created_at, outcome_json=None))
        try:
            self._db.commit()
        except SqlIntegrityError:
            # Primary key collision: another request owns this key
            self._db.rollback()
            return False
        return True

    def get(self, key: str) -> Optional[IdempotencyRecord]:
        """Retrieve a record by key."""
        orm_rec = self._db.query(IdempotencyRecordORM).filter(
            IdempotencyRecordORM.key == key
        ).first()
        return self._to_domain(orm_rec) if orm_rec else None

    def complete(self, key: str, outcome_json: str) -> None:
        """Store the outcome for a reserved key."""
        self._db.query(IdempotencyRecordORM).filter(
            IdempotencyRecordORM.key == key
        ).update({IdempotencyRecordORM.outcome_json: outcome_json}, synchronize_session=False)
        self._db.commit()
        self._db.expire_all()

    def release(self, key: str) -> None:
        """Drop a reservation that produced no recordable outcome."""
        self._db.query(IdempotencyRecordORM).filter(
            IdempotencyRecordORM.key == key
        ).delete(synchronize_session=False)
        self._db.commit()

    def purge_older_than(self, cutoff: datetime) -> int:
        """Delete records created before cutoff; return count."""
        deleted = self._db.query(IdempotencyRecordORM).filter(
            IdempotencyRecordORM.created_at < cutoff
        ).delete(synchronize_session=False)
        self._db.commit()
        return deleted

    @staticmethod
    def _to_domain(orm: IdempotencyRecordORM) -> IdempotencyRecord:
        """Convert ORM model to domain model."""
        return IdempotencyRecord(
            key=orm.key,
            created_at=to_utc(orm.created_at),
            outcome_json=orm.outcome_json,
        )
