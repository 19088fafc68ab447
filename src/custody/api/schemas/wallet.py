"""Pydantic schemas for wallet endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from custody.domain.models.enums import AccountRole, TransactionState


class AccountResponse(BaseModel):
    """Response schema for a custody account. The key never leaves the service."""

    model_config = {"from_attributes": True}

    account_id: str
    owner_id: str
    address: str
    role: AccountRole
    created_at: Optional[datetime] = None


class BalanceResponse(BaseModel):
    """Response schema for balances."""

    model_config = {"from_attributes": True}

    account_id: str
    address: str
    native: Decimal
    token: Decimal
    locked: Decimal
    available: Decimal
    as_of: Optional[datetime] = None


class SendRequest(BaseModel):
    """Request schema for a token transfer."""

    to_address: str = Field(..., min_length=1, max_length=128, description="Destination address")
    # Kept as text so amounts are never routed through a float
    amount: str = Field(..., min_length=1, max_length=40, description="Token amount, up to 6 decimals")


class SendResponse(BaseModel):
    """Response schema for an accepted transfer."""

    model_config = {"from_attributes": True}

    transaction_id: str
    chain_tx_id: Optional[str] = None
    state: TransactionState


class TransactionResponse(BaseModel):
    """Response schema for a ledger transaction."""

    model_config = {"from_attributes": True}

    transaction_id: str
    to_address: str
    amount: Decimal
    state: TransactionState
    chain_tx_id: Optional[str] = None
    fail_code: Optional[str] = None
    fail_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TransactionListResponse(BaseModel):
    """Response schema for listing ledger transactions."""

    transactions: list[TransactionResponse]
    count: int


class OnChainTransferResponse(BaseModel):
    """Response schema for one on-chain transfer."""

    model_config = {"from_attributes": True}

    chain_tx_id: str
    from_address: str
    to_address: str
    currency: str
    amount: Decimal
    timestamp: datetime
    confirmed: bool
    direction: Optional[str] = None


class OnChainHistoryResponse(BaseModel):
    """Response schema for merged on-chain history."""

    address: str
    items: list[OnChainTransferResponse]
    cursor: Optional[str] = None
