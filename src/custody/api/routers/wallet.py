"""Wallet endpoints: onboarding, balances, history and transfers."""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Query

from custody.api.deps import (
    get_owner_id,
    get_caller_account,
    get_account_service,
    get_balance_calculator,
    get_money_movement,
    get_history_service,
)
from custody.api.schemas import (
    AccountResponse,
    BalanceResponse,
    SendRequest,
    SendResponse,
    TransactionResponse,
    TransactionListResponse,
    OnChainTransferResponse,
    OnChainHistoryResponse,
)
from custody.domain.models import CustodyAccount, TransactionState
from custody.services import (
    AccountService,
    BalanceCalculator,
    MoneyMovementService,
    TransferHistoryService,
)

router = APIRouter(prefix="/wallet", tags=["wallet"])


@router.post("", response_model=AccountResponse, status_code=201)
def onboard(
    owner_id: str = Depends(get_owner_id),
    accounts: AccountService = Depends(get_account_service),
) -> AccountResponse:
    """Create the caller's custody account."""
    account = accounts.create_account(owner_id)
    return AccountResponse.model_validate(account)


@router.get("", response_model=AccountResponse)
def get_wallet(account: CustodyAccount = Depends(get_caller_account)) -> AccountResponse:
    """Get the caller's custody account."""
    return AccountResponse.model_validate(account)


@router.get("/balances", response_model=BalanceResponse)
def get_balances(
    account: CustodyAccount = Depends(get_caller_account),
    balances: BalanceCalculator = Depends(get_balance_calculator),
) -> BalanceResponse:
    """Get native, token, locked and available balances."""
    return BalanceResponse.model_validate(balances.get_balances(account.account_id))


@router.get("/transactions", response_model=TransactionListResponse)
def list_transactions(
    limit: int = Query(25, description="Maximum rows (clamped to 1..100)"),
    state: Optional[TransactionState] = Query(None, description="Filter by state"),
    account: CustodyAccount = Depends(get_caller_account),
    history: TransferHistoryService = Depends(get_history_service),
) -> TransactionListResponse:
    """List the caller's ledger transactions, newest first."""
    rows = history.list_local_transactions(account.account_id, limit=limit, state=state)
    return TransactionListResponse(
        transactions=[TransactionResponse.model_validate(t) for t in rows],
        count=len(rows),
    )


@router.get("/onchain", response_model=OnChainHistoryResponse)
def list_onchain(
    limit: int = Query(50, description="Maximum rows (clamped to 1..100)"),
    direction: Optional[str] = Query(None, description="in or out"),
    cursor: Optional[str] = Query(None, description="Paging cursor from a previous response"),
    account: CustodyAccount = Depends(get_caller_account),
    history: TransferHistoryService = Depends(get_history_service),
) -> OnChainHistoryResponse:
    """List token and native transfers seen on-chain."""
    result = history.list_onchain_transfers(
        account.account_id, limit=limit, direction=direction, cursor=cursor
    )
    return OnChainHistoryResponse(
        address=result.address,
        items=[OnChainTransferResponse.model_validate(t) for t in result.items],
        cursor=result.cursor,
    )


@router.post("/send", response_model=SendResponse, status_code=202)
def send(
    data: SendRequest,
    idempotency_key: Optional[str] = Header(None, max_length=128),
    account: CustodyAccount = Depends(get_caller_account),
    money: MoneyMovementService = Depends(get_money_movement),
) -> SendResponse:
    """Send tokens; 202 because confirmation happens in the background."""
    result = money.send(
        account.account_id,
        data.to_address,
        data.amount,
        idempotency_key=idempotency_key,
    )
    return SendResponse.model_validate(result)
