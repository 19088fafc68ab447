"""Fiat purchase and withdrawal requests settled against the treasury."""

import logging
import uuid
from typing import Optional

from custody.core.exceptions import (
    AccountNotFound,
    AppError,
    ConflictError,
    GatewayUnavailable,
    InsufficientFundsError,
    NotFoundError,
    ValidationError,
)
from custody.core.money import AmountLike, parse_amount, round_fiat
from custody.core.timezone import Clock, now_utc
from custody.domain.models import ExchangeRequest, ExchangeKind, ExchangeStatus
from custody.domain.views import SendResult
from custody.repositories.protocols import AccountRepository, ExchangeRepository
from custody.services.balance_calculator import BalanceCalculator
from custody.services.money_movement import MoneyMovementService
from custody.services.quote_service import QuoteService
from custody.services.treasury import TreasuryResolver

logger = logging.getLogger(__name__)


class ExchangeService:
    """
    Service for purchase/withdrawal requests.

    Users create PENDING requests priced at creation time; an admin approves
    (on-chain settlement with the treasury) or rejects them.
    """

    def __init__(
        self,
        exchange_repo: ExchangeRepository,
        account_repo: AccountRepository,
        money_movement: MoneyMovementService,
        balances: BalanceCalculator,
        quotes: QuoteService,
        treasury: TreasuryResolver,
        clock: Clock = now_utc,
    ):
        self._exchange_repo = exchange_repo
        self._account_repo = account_repo
        self._money_movement = money_movement
        self._balances = balances
        self._quotes = quotes
        self._treasury = treasury
        self._clock = clock

    def create_purchase(self, account_id: str, amount: AmountLike) -> ExchangeRequest:
        """Request to buy tokens for fiat at the current purchase price."""
        value = parse_amount(amount)
        self._require_account(account_id)
        price = self._quotes.purchase_price()
        return self._create(account_id, ExchangeKind.PURCHASE, value, price)

    def create_withdrawal(self, account_id: str, amount: AmountLike) -> ExchangeRequest:
        """Request to sell tokens for fiat; the amount must be available now."""
        value = parse_amount(amount)
        self._require_account(account_id)
        balance = self._balances.get_balances(account_id, use_cache=False)
        if value > balance.available:
            raise InsufficientFundsError(str(value), str(balance.available))
        price = self._quotes.withdrawal_price()
        return self._create(account_id, ExchangeKind.WITHDRAWAL, value, price)

    def get_request(self, request_id: str) -> ExchangeRequest:
        request = self._exchange_repo.get_by_id(request_id)
        if not request:
            raise NotFoundError("Exchange request", request_id)
        return request

    def list_requests(
        self,
        account_id: Optional[str] = None,
        kind: Optional[ExchangeKind] = None,
        status: Optional[ExchangeStatus] = None,
        limit: Optional[int] = None,
    ) -> list[ExchangeRequest]:
        return self._exchange_repo.query(
            account_id=account_id, kind=kind, status=status, limit=limit
        )

    def approve(
        self, request_id: str, admin_id: str, notes: Optional[str] = None
    ) -> ExchangeRequest:
        """
        Approve a PENDING request and settle it on-chain.

        Purchases pay out treasury -> user; withdrawals move user -> treasury.
        If the transfer fails the request returns to PENDING. If its outcome
        is unknown the request stays PROCESSING with the transaction reference
        so it is not settled twice.
        """
        request = self.get_request(request_id)
        if not self._exchange_repo.transition(
            request_id,
            ExchangeStatus.PENDING,
            ExchangeStatus.PROCESSING,
            processed_by=admin_id,
        ):
            raise ConflictError(f"Exchange request {request_id} is not PENDING")

        try:
            transfer = self._settle(request)
        except GatewayUnavailable as e:
            if e.transaction_id is not None:
                self._exchange_repo.transition(
                    request_id,
                    ExchangeStatus.PROCESSING,
                    ExchangeStatus.PROCESSING,
                    settlement_txn_id=e.transaction_id,
                )
                logger.warning(
                    f"Exchange request {request_id} settlement {e.transaction_id} inconclusive; "
                    f"left PROCESSING"
                )
            else:
                self._exchange_repo.transition(
                    request_id, ExchangeStatus.PROCESSING, ExchangeStatus.PENDING
                )
            raise
        except AppError as e:
            self._exchange_repo.transition(
                request_id, ExchangeStatus.PROCESSING, ExchangeStatus.PENDING
            )
            logger.warning(f"Exchange request {request_id} settlement failed: {e.message}")
            raise

        self._exchange_repo.transition(
            request_id,
            ExchangeStatus.PROCESSING,
            ExchangeStatus.COMPLETED,
            processed_at=self._clock(),
            admin_notes=notes,
            settlement_txn_id=transfer.transaction_id,
        )
        logger.info(
            f"Exchange request {request_id} ({request.kind.value}) completed by {admin_id} "
            f"in transaction {transfer.transaction_id}"
        )
        return self.get_request(request_id)

    def reject(self, request_id: str, admin_id: str, reason: str) -> ExchangeRequest:
        """Reject a PENDING request."""
        if not (reason or "").strip():
            raise ValidationError("A rejection reason is required")
        self.get_request(request_id)
        if not self._exchange_repo.transition(
            request_id,
            ExchangeStatus.PENDING,
            ExchangeStatus.REJECTED,
            processed_by=admin_id,
            processed_at=self._clock(),
            rejection_reason=reason.strip(),
        ):
            raise ConflictError(f"Exchange request {request_id} is not PENDING")
        logger.info(f"Exchange request {request_id} rejected by {admin_id}: {reason}")
        return self.get_request(request_id)

    def _settle(self, request: ExchangeRequest) -> SendResult:
        account = self._require_account(request.account_id)
        treasury = self._treasury.resolve()
        if request.kind == ExchangeKind.PURCHASE:
            return self._money_movement.send(treasury.account_id, account.address, request.amount)
        return self._money_movement.send(account.account_id, treasury.address, request.amount)

    def _require_account(self, account_id: str):
        account = self._account_repo.get_by_id(account_id)
        if not account:
            raise AccountNotFound(account_id)
        return account

    def _create(self, account_id, kind, amount, price) -> ExchangeRequest:
        now = self._clock()
        request = ExchangeRequest(
            request_id=str(uuid.uuid4()),
            account_id=account_id,
            kind=kind,
            amount=amount,
            fiat_amount=round_fiat(amount * price),
            price_per_token=price,
            status=ExchangeStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
        created = self._exchange_repo.create(request)
        logger.info(
            f"Created {kind.value} request {created.request_id} for account {account_id}: "
            f"{amount} at {price}"
        )
        return created
