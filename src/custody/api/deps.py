"""Dependency injection for FastAPI."""

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from custody.app_context import AppContext, get_app_context
from custody.domain.models import CustodyAccount
from custody.repositories.sqlalchemy.database import get_db
from custody.services import (
    AccountService,
    BalanceCalculator,
    MoneyMovementService,
    StakingEngine,
    TransferHistoryService,
)


def get_context() -> AppContext:
    """Provide the process-wide AppContext."""
    return get_app_context()


def get_account_service(
    db: Session = Depends(get_db),
    ctx: AppContext = Depends(get_context),
) -> AccountService:
    """Provide AccountService instance."""
    return ctx.account_service(db)


def get_balance_calculator(
    db: Session = Depends(get_db),
    ctx: AppContext = Depends(get_context),
) -> BalanceCalculator:
    """Provide BalanceCalculator instance."""
    return ctx.balance_calculator(db)


def get_money_movement(
    db: Session = Depends(get_db),
    ctx: AppContext = Depends(get_context),
) -> MoneyMovementService:
    """Provide MoneyMovementService instance."""
    return ctx.money_movement(db)


def get_staking_engine(
    db: Session = Depends(get_db),
    ctx: AppContext = Depends(get_context),
) -> StakingEngine:
    """Provide StakingEngine instance."""
    return ctx.staking(db)


def get_history_service(
    db: Session = Depends(get_db),
    ctx: AppContext = Depends(get_context),
) -> TransferHistoryService:
    """Provide TransferHistoryService instance."""
    return ctx.history(db)


def get_owner_id(x_owner_id: str = Header(..., min_length=1)) -> str:
    """Caller identity, established by whatever fronts this API."""
    return x_owner_id


def get_caller_account(
    owner_id: str = Depends(get_owner_id),
    accounts: AccountService = Depends(get_account_service),
) -> CustodyAccount:
    """Resolve the caller's custody account (404 if not onboarded)."""
    return accounts.get_by_owner(owner_id)
