"""Local ledger and on-chain transfer history."""

import logging
from dataclasses import replace
from typing import Optional

from custody.core.exceptions import AccountNotFound, AppError, ValidationError
from custody.domain.models import LedgerTransaction, TransactionState
from custody.domain.views import OnChainHistory, OnChainTransfer, TransferPage
from custody.providers.blockchain_gateway import BlockchainGateway
from custody.repositories.protocols import AccountRepository, TransactionRepository

logger = logging.getLogger(__name__)

MAX_LIMIT = 100
DIRECTIONS = ("in", "out")


def _clamp(limit: int) -> int:
    return max(1, min(MAX_LIMIT, limit))


class TransferHistoryService:
    """Read-only views of an account's transfers."""

    def __init__(
        self,
        account_repo: AccountRepository,
        transaction_repo: TransactionRepository,
        gateway: BlockchainGateway,
    ):
        self._account_repo = account_repo
        self._transaction_repo = transaction_repo
        self._gateway = gateway

    def list_local_transactions(
        self,
        account_id: str,
        limit: int = 25,
        state: Optional[TransactionState] = None,
    ) -> list[LedgerTransaction]:
        """Ledger rows for an account, newest first."""
        if not self._account_repo.get_by_id(account_id):
            raise AccountNotFound(account_id)
        return self._transaction_repo.list_by_account(account_id, limit=_clamp(limit), state=state)

    def list_onchain_transfers(
        self,
        account_id: str,
        limit: int = 50,
        direction: Optional[str] = None,
        cursor: Optional[str] = None,
    ) -> OnChainHistory:
        """
        Merged token and native transfers for the account's address.

        Each side is fetched with limit // 2 + 1 rows. If one side fails the
        other is still returned; only both failing raises.
        """
        if direction is not None and direction not in DIRECTIONS:
            raise ValidationError(f"direction must be one of {DIRECTIONS}")
        account = self._account_repo.get_by_id(account_id)
        if not account:
            raise AccountNotFound(account_id)

        limit = _clamp(limit)
        per_side = limit // 2 + 1
        pages: list[TransferPage] = []
        errors: list[AppError] = []
        for name, fetch in (
            ("token", self._gateway.list_token_transfers),
            ("native", self._gateway.list_native_transfers),
        ):
            try:
                pages.append(fetch(account.address, per_side, cursor))
            except AppError as e:
                logger.warning(f"Could not load {name} transfers for {account.address}: {e.message}")
                errors.append(e)

        if not pages:
            raise errors[-1]

        items: list[OnChainTransfer] = []
        for page in pages:
            for transfer in page.items:
                tagged = replace(
                    transfer,
                    direction="in" if transfer.to_address == account.address else "out",
                )
                if direction is None or tagged.direction == direction:
                    items.append(tagged)

        items.sort(key=lambda t: t.timestamp, reverse=True)
        next_cursor = next((p.next_cursor for p in pages if p.next_cursor), None)
        return OnChainHistory(address=account.address, items=items[:limit], cursor=next_cursor)
