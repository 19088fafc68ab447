"""Staking endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from custody.api.deps import get_caller_account, get_staking_engine
from custody.api.schemas import (
    StakeOpenRequest,
    StakeResponse,
    StakeListResponse,
    StakeCloseResponse,
)
from custody.domain.models import CustodyAccount, StakeStatus
from custody.services import StakingEngine

router = APIRouter(prefix="/stakes", tags=["staking"])


@router.get("", response_model=StakeListResponse)
def list_stakes(
    status: Optional[StakeStatus] = Query(None, description="Filter by status"),
    account: CustodyAccount = Depends(get_caller_account),
    staking: StakingEngine = Depends(get_staking_engine),
) -> StakeListResponse:
    """List the caller's stakes with rewards accrued to now."""
    positions = staking.list_positions(account.account_id, status=status)
    return StakeListResponse(
        stakes=[StakeResponse.model_validate(p) for p in positions],
        count=len(positions),
    )


@router.post("", response_model=StakeResponse, status_code=201)
def open_stake(
    data: StakeOpenRequest,
    account: CustodyAccount = Depends(get_caller_account),
    staking: StakingEngine = Depends(get_staking_engine),
) -> StakeResponse:
    """Move principal to the treasury and open a stake."""
    position = staking.open(account.account_id, data.amount)
    return StakeResponse.model_validate(position)


@router.get("/{position_id}", response_model=StakeResponse)
def get_stake(
    position_id: str,
    account: CustodyAccount = Depends(get_caller_account),
    staking: StakingEngine = Depends(get_staking_engine),
) -> StakeResponse:
    """Get one stake with rewards accrued to now."""
    return StakeResponse.model_validate(staking.get_position(account.account_id, position_id))


@router.post("/{position_id}/close", response_model=StakeCloseResponse)
def close_stake(
    position_id: str,
    account: CustodyAccount = Depends(get_caller_account),
    staking: StakingEngine = Depends(get_staking_engine),
) -> StakeCloseResponse:
    """Close a stake and pay out principal plus rewards."""
    return StakeCloseResponse.model_validate(staking.close(account.account_id, position_id))
