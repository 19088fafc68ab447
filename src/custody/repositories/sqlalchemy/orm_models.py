"""SQLAlchemy ORM model definitions."""

from decimal import Decimal

from sqlalchemy import (
    Column,
    String,
    DateTime,
    Integer,
    Text,
    ForeignKey,
    Numeric,
    JSON,
    Index,
    Enum as SqlEnum,
)
from sqlalchemy.orm import relationship

from custody.core.timezone import now_utc
from custody.repositories.sqlalchemy.database import Base
from custody.domain.models.enums import (
    AccountRole,
    TransactionState,
    StakeStatus,
    ExchangeKind,
    ExchangeStatus,
)

# 6 fractional digits: the token's native precision
TokenAmount = Numeric(precision=24, scale=6)


class CustodyAccountORM(Base):
    """SQLAlchemy model for CustodyAccount."""

    __tablename__ = "custody_accounts"

    account_id = Column(String(36), primary_key=True)
    owner_id = Column(String(255), unique=True, nullable=False)
    address = Column(String(128), unique=True, nullable=False)
    encrypted_private_key = Column(Text, nullable=False)
    role = Column(SqlEnum(AccountRole), default=AccountRole.USER, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=now_utc)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=now_utc, onupdate=now_utc)

    transactions = relationship("LedgerTransactionORM", back_populates="account")
    stakes = relationship("StakePositionORM", back_populates="account")


class LedgerTransactionORM(Base):
    """SQLAlchemy model for LedgerTransaction."""

    __tablename__ = "ledger_transactions"
    __table_args__ = (Index("ix_ledger_transactions_state_created", "state", "created_at"),)

    transaction_id = Column(String(36), primary_key=True)
    account_id = Column(
        String(36), ForeignKey("custody_accounts.account_id"), nullable=False, index=True
    )
    to_address = Column(String(128), nullable=False)
    amount = Column(TokenAmount, nullable=False)
    state = Column(SqlEnum(TransactionState), nullable=False, default=TransactionState.PENDING)
    chain_tx_id = Column(String(128), nullable=True, unique=True)
    fail_code = Column(String(64), nullable=True)
    fail_reason = Column(Text, nullable=True)
    receipt = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=now_utc)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=now_utc)

    account = relationship("CustodyAccountORM", back_populates="transactions")


class StakePositionORM(Base):
    """SQLAlchemy model for StakePosition."""

    __tablename__ = "stake_positions"

    position_id = Column(String(36), primary_key=True)
    account_id = Column(
        String(36), ForeignKey("custody_accounts.account_id"), nullable=False, index=True
    )
    principal = Column(TokenAmount, nullable=False)
    accrued = Column(TokenAmount, nullable=False, default=Decimal("0"))
    daily_rate_bp = Column(Integer, nullable=False)
    status = Column(SqlEnum(StakeStatus), nullable=False, default=StakeStatus.ACTIVE)
    started_at = Column(DateTime(timezone=True), nullable=False)
    last_accrual_at = Column(DateTime(timezone=True), nullable=True)
    closed_at = Column(DateTime(timezone=True), nullable=True)
    settlement_txn_id = Column(
        String(36), ForeignKey("ledger_transactions.transaction_id"), nullable=True
    )
    closing_txn_id = Column(
        String(36), ForeignKey("ledger_transactions.transaction_id"), nullable=True
    )
    # Set while a close is paying out; only one close may hold it
    close_claim = Column(String(36), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=now_utc)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=now_utc)

    account = relationship("CustodyAccountORM", back_populates="stakes")


class ExchangeRequestORM(Base):
    """SQLAlchemy model for ExchangeRequest (purchase / withdrawal)."""

    __tablename__ = "exchange_requests"

    request_id = Column(String(36), primary_key=True)
    account_id = Column(
        String(36), ForeignKey("custody_accounts.account_id"), nullable=False, index=True
    )
    kind = Column(SqlEnum(ExchangeKind), nullable=False)
    amount = Column(TokenAmount, nullable=False)
    fiat_amount = Column(Numeric(precision=24, scale=2), nullable=False)
    price_per_token = Column(Numeric(precision=18, scale=4), nullable=False)
    status = Column(SqlEnum(ExchangeStatus), nullable=False, default=ExchangeStatus.PENDING)
    rejection_reason = Column(Text, nullable=True)
    admin_notes = Column(Text, nullable=True)
    processed_by = Column(String(255), nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    settlement_txn_id = Column(
        String(36), ForeignKey("ledger_transactions.transaction_id"), nullable=True
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=now_utc)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=now_utc)


class IdempotencyRecordORM(Base):
    """SQLAlchemy model for IdempotencyRecord."""

    __tablename__ = "idempotency_records"

    key = Column(String(255), primary_key=True)
    outcome_json = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
