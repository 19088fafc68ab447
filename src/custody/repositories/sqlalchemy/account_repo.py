"""SQLAlchemy implementation of AccountRepository."""

from typing import Optional

from sqlalchemy.exc import IntegrityError as SqlIntegrityError
from sqlalchemy.orm import Session

from custody.core.exceptions import ConflictError
from custody.core.timezone import now_utc, optional_utc
from custody.domain.models import CustodyAccount, AccountRole
from custody.repositories.sqlalchemy.orm_models import CustodyAccountORM


class SqlAlchemyAccountRepository:
    """SQLAlchemy-backed custody account repository."""

    def __init__(self, db: Session):
        self._db = db

    def create(self, account: CustodyAccount) -> CustodyAccount:
        """Persist a new account. Raises ConflictError on a duplicate owner or address."""
        created_at = account.created_at or now_utc()
        orm_account = CustodyAccountORM(
            account_id=account.account_id,
            owner_id=account.owner_id,
            address=account.address,
            encrypted_private_key=account.encrypted_private_key,
            role=account.role,
            created_at=created_at,
            updated_at=account.updated_at or created_at,
        )
        self._db.add(orm_account)
        try:
            self._db.commit()
        except SqlIntegrityError:
            self._db.rollback()
            raise ConflictError(
                f"Account already exists for owner {account.owner_id} or address {account.address}"
            )
        self._db.refresh(orm_account)
        return self._to_domain(orm_account)

    def get_by_id(self, account_id: str) -> Optional[CustodyAccount]:
        """Retrieve account by ID."""
        orm_account = self._db.query(CustodyAccountORM).filter(
            CustodyAccountORM.account_id == account_id
        ).first()
        return self._to_domain(orm_account) if orm_account else None

    def get_by_owner(self, owner_id: str) -> Optional[CustodyAccount]:
        """Retrieve the account owned by owner_id."""
        orm_account = self._db.query(CustodyAccountORM).filter(
            CustodyAccountORM.owner_id == owner_id
        ).first()
        return self._to_domain(orm_account) if orm_account else None

    def get_by_address(self, address: str) -> Optional[CustodyAccount]:
        """Retrieve account by blockchain address."""
        orm_account = self._db.query(CustodyAccountORM).filter(
            CustodyAccountORM.address == address
        ).first()
        return self._to_domain(orm_account) if orm_account else None

    def get_by_role(self, role: AccountRole) -> Optional[CustodyAccount]:
        """Retrieve the oldest account holding a role."""
        orm_account = (
            self._db.query(CustodyAccountORM)
            .filter(CustodyAccountORM.role == role)
            .order_by(CustodyAccountORM.created_at)
            .first()
        )
        return self._to_domain(orm_account) if orm_account else None

    def list_all(self) -> list[CustodyAccount]:
        """List all accounts."""
        orm_accounts = self._db.query(CustodyAccountORM).order_by(
            CustodyAccountORM.created_at
        ).all()
        return [self._to_domain(a) for a in orm_accounts]

    @staticmethod
    def _to_domain(orm: CustodyAccountORM) -> CustodyAccount:
        """Convert ORM model to domain model."""
        return CustodyAccount(
            account_id=orm.account_id,
            owner_id=orm.owner_id,
            address=orm.address,
            encrypted_private_key=orm.encrypted_private_key,
            role=orm.role,
            created_at=optional_utc(orm.created_at),
            updated_at=optional_utc(orm.updated_at),
        )
