"""SQLAlchemy repository implementations."""

from custody.repositories.sqlalchemy.database import (
    get_engine,
    get_session_factory,
    get_db,
    get_session,
    init_db,
    reset_database,
    Base,
)
from custody.repositories.sqlalchemy.account_repo import SqlAlchemyAccountRepository
from custody.repositories.sqlalchemy.transaction_repo import SqlAlchemyTransactionRepository
from custody.repositories.sqlalchemy.stake_repo import SqlAlchemyStakeRepository
from custody.repositories.sqlalchemy.exchange_repo import SqlAlchemyExchangeRepository
from custody.repositories.sqlalchemy.idempotency_repo import SqlAlchemyIdempotencyRepository

__all__ = [
    "get_engine",
    "get_session_factory",
    "get_db",
    "get_session",
    "init_db",
    "reset_database",
    "Base",
    "SqlAlchemyAccountRepository",
    "SqlAlchemyTransactionRepository",
    "SqlAlchemyStakeRepository",
    "SqlAlchemyExchangeRepository",
    "SqlAlchemyIdempotencyRepository",
]
