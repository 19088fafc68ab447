"""Custodial token transfers."""

import logging
import uuid
from typing import Any, Optional

from custody.core.exceptions import (
    AccountNotFound,
    ConflictError,
    CorruptCiphertext,
    GatewayFailure,
    GatewayUnavailable,
    InsufficientFundsError,
    NotFoundError,
    ValidationError,
)
from custody.core.key_vault import KeyVault
from custody.core.money import AmountLike, parse_amount
from custody.core.timezone import Clock, now_utc
from custody.domain.events import (
    TransactionBroadcasted,
    TransactionFailed,
)
from custody.domain.models import LedgerTransaction, TransactionState
from custody.domain.views import SendResult
from custody.providers.blockchain_gateway import BlockchainGateway
from custody.repositories.protocols import AccountRepository, TransactionRepository
from custody.services.balance_calculator import BalanceCalculator
from custody.services.event_channel import TransactionEventChannel
from custody.services.idempotency import IdempotencyService

logger = logging.getLogger(__name__)

# Raised before anything is submitted; a retry with the same key may run again
_PRE_SUBMIT_ERRORS = (ValidationError, NotFoundError, InsufficientFundsError, CorruptCiphertext)


class MoneyMovementService:
    """
    Moves tokens out of custody accounts.

    Every transfer gets a local ledger row before it is submitted, so a
    timeout after submission still leaves a record to reconcile. The
    confirmation watcher finishes what this service starts.
    """

    def __init__(
        self,
        account_repo: AccountRepository,
        transaction_repo: TransactionRepository,
        balances: BalanceCalculator,
        gateway: BlockchainGateway,
        vault: KeyVault,
        events: TransactionEventChannel,
        idempotency: Optional[IdempotencyService] = None,
        clock: Clock = now_utc,
    ):
        self._account_repo = account_repo
        self._transaction_repo = transaction_repo
        self._balances = balances
        self._gateway = gateway
        self._vault = vault
        self._events = events
        self._idempotency = idempotency
        self._clock = clock

    def send(
        self,
        account_id: str,
        to_address: str,
        amount: AmountLike,
        idempotency_key: Optional[str] = None,
    ) -> SendResult:
        """
        Send tokens from a custody account to an address.

        Args:
            account_id: Source custody account
            to_address: Destination chain address
            amount: Positive token amount with at most 6 decimals
            idempotency_key: Optional caller token; a repeat within the
                retention window replays the first outcome

        Returns:
            SendResult in state BROADCASTED

        Raises:
            InvalidAmount, ValidationError, AccountNotFound,
            InsufficientFundsError: nothing was submitted
            GatewayFailure: the gateway rejected the transfer (row FAILED)
            GatewayUnavailable: outcome unknown; if transaction_id is set the
                row stays PENDING
            ConflictError: the same idempotency key is still in flight
        """
        if not idempotency_key or self._idempotency is None:
            return self._send(account_id, to_address, amount)

        scoped_key = f"{account_id}:{idempotency_key}"
        recorded = self._idempotency.claim(scoped_key)
        if recorded is not None:
            logger.info(f"Replaying recorded outcome for idempotency key {idempotency_key}")
            return self._replay(recorded)

        try:
            result = self._send(account_id, to_address, amount)
        except GatewayFailure as e:
            self._idempotency.complete(
                scoped_key,
                {"outcome": "rejected", "reason": e.reason, "transaction_id": e.transaction_id},
            )
            raise
        except GatewayUnavailable as e:
            if e.transaction_id is None:
                self._idempotency.release(scoped_key)
            else:
                # Submitted with unknown outcome: a retry must not resubmit
                self._idempotency.complete(
                    scoped_key,
                    {"outcome": "inconclusive", "message": e.message, "transaction_id": e.transaction_id},
                )
            raise
        except _PRE_SUBMIT_ERRORS:
            self._idempotency.release(scoped_key)
            raise

        self._idempotency.complete(
            scoped_key,
            {
                "outcome": "sent",
                "transaction_id": result.transaction_id,
                "chain_tx_id": result.chain_tx_id,
                "state": result.state.value,
            },
        )
        return result

    def _send(self, account_id: str, to_address: str, amount: AmountLike) -> SendResult:
        value = parse_amount(amount)
        to_address = (to_address or "").strip()
        if not to_address or not self._gateway.is_valid_address(to_address):
            raise ValidationError(f"Invalid destination address: {to_address}")

        account = self._account_repo.get_by_id(account_id)
        if not account:
            raise AccountNotFound(account_id)
        if to_address == account.address:
            raise ValidationError("Cannot send to the account's own address")

        balance = self._balances.get_balances(account_id, use_cache=False)
        if value > balance.available:
            raise InsufficientFundsError(str(value), str(balance.available))

        private_key = self._vault.decrypt(account.encrypted_private_key)

        now = self._clock()
        txn = self._transaction_repo.create(
            LedgerTransaction(
                transaction_id=str(uuid.uuid4()),
                account_id=account_id,
                to_address=to_address,
                amount=value,
                state=TransactionState.PENDING,
                created_at=now,
                updated_at=now,
            )
        )

        try:
            outcome = self._gateway.send_token(account.address, private_key, to_address, value)
        except GatewayUnavailable as e:
            logger.warning(
                f"Transfer {txn.transaction_id} outcome unknown, left PENDING: {e.message}"
            )
            raise GatewayUnavailable(
                f"Transfer submitted with unknown outcome: {e.message}",
                transaction_id=txn.transaction_id,
            )

        if outcome.ok and not outcome.chain_tx_id:
            logger.warning(
                f"Transfer {txn.transaction_id} accepted without a chain transaction id, "
                f"left PENDING"
            )
            raise GatewayUnavailable(
                "Transfer accepted without a chain transaction id; outcome unknown",
                transaction_id=txn.transaction_id,
            )

        if not outcome.ok:
            reason = outcome.error or "Gateway rejected the transfer"
            self._transaction_repo.transition(
                txn.transaction_id,
                TransactionState.PENDING,
                TransactionState.FAILED,
                fail_code="GATEWAY_REJECTED",
                fail_reason=reason,
            )
            logger.warning(f"Transfer {txn.transaction_id} rejected by gateway: {reason}")
            self._events.publish(
                TransactionFailed(
                    transaction_id=txn.transaction_id,
                    account_id=account_id,
                    error=reason,
                    occurred_at=self._clock(),
                )
            )
            raise GatewayFailure(reason, transaction_id=txn.transaction_id)

        if not self._transaction_repo.transition(
            txn.transaction_id,
            TransactionState.PENDING,
            TransactionState.BROADCASTED,
            chain_tx_id=outcome.chain_tx_id,
        ):
            logger.error(
                f"Transfer {txn.transaction_id} broadcast as {outcome.chain_tx_id} "
                f"but the row was no longer PENDING"
            )
            raise ConflictError(f"Transaction {txn.transaction_id} changed state during send")

        logger.info(
            f"Transfer {txn.transaction_id}: {value} from {account.address} to {to_address} "
            f"broadcast as {outcome.chain_tx_id}"
        )
        self._invalidate_balances(account_id, to_address)
        self._events.publish(
            TransactionBroadcasted(
                transaction_id=txn.transaction_id,
                account_id=account_id,
                chain_tx_id=outcome.chain_tx_id,
                occurred_at=self._clock(),
            )
        )
        return SendResult(
            transaction_id=txn.transaction_id,
            chain_tx_id=outcome.chain_tx_id,
            state=TransactionState.BROADCASTED,
        )

    def _invalidate_balances(self, account_id: str, to_address: str) -> None:
        self._balances.invalidate(account_id)
        destination = self._account_repo.get_by_address(to_address)
        if destination:
            self._balances.invalidate(destination.account_id)

    @staticmethod
    def _replay(recorded: dict[str, Any]) -> SendResult:
        outcome = recorded.get("outcome")
        if outcome == "rejected":
            raise GatewayFailure(recorded["reason"], transaction_id=recorded.get("transaction_id"))
        if outcome == "inconclusive":
            raise GatewayUnavailable(recorded["message"], transaction_id=recorded.get("transaction_id"))
        return SendResult(
            transaction_id=recorded["transaction_id"],
            chain_tx_id=recorded.get("chain_tx_id"),
            state=TransactionState(recorded["state"]),
        )
