"""Pydantic schemas for API request/response."""

from custody.api.schemas.wallet import (
    AccountResponse,
    BalanceResponse,
    SendRequest,
    SendResponse,
    TransactionResponse,
    TransactionListResponse,
    OnChainTransferResponse,
    OnChainHistoryResponse,
)
from custody.api.schemas.staking import (
    StakeOpenRequest,
    StakeResponse,
    StakeListResponse,
    StakeCloseResponse,
)

__all__ = [
    "AccountResponse",
    "BalanceResponse",
    "SendRequest",
    "SendResponse",
    "TransactionResponse",
    "TransactionListResponse",
    "OnChainTransferResponse",
    "OnChainHistoryResponse",
    "StakeOpenRequest",
    "StakeResponse",
    "StakeListResponse",
    "StakeCloseResponse",
]
