"""Background reconciliation of broadcast transactions with on-chain receipts."""

import logging
import threading
import time
from datetime import timedelta
from typing import Callable

from custody.core.timezone import Clock, now_utc
from custody.domain.events import TransactionConfirmed, TransactionFailed
from custody.domain.models import LedgerTransaction, TransactionState
from custody.domain.views import TickSummary
from custody.providers.blockchain_gateway import BlockchainGateway
from custody.repositories.protocols import TransactionRepository
from custody.services.event_channel import TransactionEventChannel

logger = logging.getLogger(__name__)


class ConfirmationWatcher:
    """
    Moves BROADCASTED rows to CONFIRMED or FAILED once a receipt exists.

    One call to run_once() is one tick. Rows without a receipt, or whose
    lookup errors, are left alone and retried next tick. Every transition is
    conditional on the row still being BROADCASTED.
    """

    def __init__(
        self,
        transaction_repo: TransactionRepository,
        gateway: BlockchainGateway,
        events: TransactionEventChannel,
        batch_size: int = 25,
        max_tick_seconds: float = 60,
        stale_pending_minutes: int = 30,
        clock: Clock = now_utc,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self._transaction_repo = transaction_repo
        self._gateway = gateway
        self._events = events
        self._batch_size = batch_size
        self._max_tick_seconds = max_tick_seconds
        self._stale_pending = timedelta(minutes=stale_pending_minutes)
        self._clock = clock
        self._monotonic = monotonic
        self._stop = threading.Event()

    def stop(self) -> None:
        """Ask a running tick to stop after the row in flight."""
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def run_once(self) -> TickSummary:
        """Process one batch of BROADCASTED rows, oldest first."""
        summary = TickSummary()
        started = self._monotonic()

        rows = self._transaction_repo.list_by_state(
            TransactionState.BROADCASTED, limit=self._batch_size
        )
        for row in rows:
            if self._stop.is_set():
                summary.interrupted = True
                break
            if self._monotonic() - started >= self._max_tick_seconds:
                logger.warning(
                    f"Watcher tick exceeded {self._max_tick_seconds}s; "
                    f"deferring remaining rows to the next tick"
                )
                summary.interrupted = True
                break
            summary.checked += 1
            self._check_row(row, summary)

        summary.stale_pending = self._report_stale_pending()

        if summary.confirmed or summary.failed or summary.errors:
            logger.info(
                f"Watcher tick: checked={summary.checked} confirmed={summary.confirmed} "
                f"failed={summary.failed} unresolved={summary.unresolved} errors={summary.errors}"
            )
        return summary

    def _check_row(self, row: LedgerTransaction, summary: TickSummary) -> None:
        if not row.chain_tx_id:
            logger.error(f"Transaction {row.transaction_id} is BROADCASTED without a chain id")
            summary.unresolved += 1
            return

        try:
            receipt = self._gateway.get_receipt(row.chain_tx_id)
        except Exception as e:
            # Left BROADCASTED; retried next tick
            logger.warning(f"Receipt lookup failed for {row.chain_tx_id}: {e}")
            summary.errors += 1
            return

        if receipt is None:
            summary.unresolved += 1
            return

        if receipt.succeeded:
            applied = self._transaction_repo.transition(
                row.transaction_id,
                TransactionState.BROADCASTED,
                TransactionState.CONFIRMED,
                receipt=receipt.raw,
            )
            if applied:
                summary.confirmed += 1
                logger.info(f"Transaction {row.transaction_id} confirmed ({row.chain_tx_id})")
                self._events.publish(
                    TransactionConfirmed(
                        transaction_id=row.transaction_id,
                        account_id=row.account_id,
                        chain_tx_id=row.chain_tx_id,
                        occurred_at=self._clock(),
                    )
                )
        else:
            code = receipt.result_code or "FAILED"
            applied = self._transaction_repo.transition(
                row.transaction_id,
                TransactionState.BROADCASTED,
                TransactionState.FAILED,
                fail_code=code,
                fail_reason=f"On-chain execution failed: {code}",
            )
            if applied:
                summary.failed += 1
                logger.warning(f"Transaction {row.transaction_id} failed on-chain: {code}")
                self._events.publish(
                    TransactionFailed(
                        transaction_id=row.transaction_id,
                        account_id=row.account_id,
                        error=code,
                        chain_tx_id=row.chain_tx_id,
                        occurred_at=self._clock(),
                    )
                )

        if not applied:
            logger.info(f"Transaction {row.transaction_id} was no longer BROADCASTED; skipped")

    def _report_stale_pending(self) -> int:
        cutoff = self._clock() - self._stale_pending
        stale = self._transaction_repo.list_by_state(
            TransactionState.PENDING, limit=self._batch_size, created_before=cutoff
        )
        for row in stale:
            logger.warning(
                f"Transaction {row.transaction_id} has been PENDING since {row.created_at}; "
                f"outcome unknown, needs manual reconciliation"
            )
        return len(stale)
