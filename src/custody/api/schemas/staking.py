"""Pydantic schemas for staking endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from custody.domain.models.enums import StakeStatus


class StakeOpenRequest(BaseModel):
    """Request schema for opening a stake."""

    amount: str = Field(..., min_length=1, max_length=40, description="Principal, up to 6 decimals")


class StakeResponse(BaseModel):
    """Response schema for a stake position."""

    model_config = {"from_attributes": True}

    position_id: str
    principal: Decimal
    accrued: Decimal
    daily_rate_bp: int
    status: StakeStatus
    started_at: Optional[datetime] = None
    last_accrual_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    settlement_txn_id: Optional[str] = None
    closing_txn_id: Optional[str] = None


class StakeListResponse(BaseModel):
    """Response schema for listing stakes."""

    stakes: list[StakeResponse]
    count: int


class StakeCloseResponse(BaseModel):
    """Response schema for a closed stake."""

    model_config = {"from_attributes": True}

    position_id: str
    principal: Decimal
    rewards: Decimal
    total: Decimal
    transaction_id: str
    chain_tx_id: Optional[str] = None
