"""Stake positions against the treasury account."""

import logging
import uuid
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Optional

from custody.core.exceptions import (
    AccountNotFound,
    ConflictError,
    GatewayUnavailable,
    IntegrityError,
    NotFoundError,
    ValidationError,
)
from custody.core.money import AmountLike, ZERO, parse_amount, round6
from custody.core.timezone import Clock, now_utc
from custody.domain.models import StakePosition, StakeStatus
from custody.domain.views import CloseResult
from custody.repositories.protocols import AccountRepository, StakeRepository
from custody.services.balance_calculator import BalanceCalculator
from custody.services.money_movement import MoneyMovementService
from custody.services.treasury import TreasuryResolver

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = Decimal("86400")
MAX_ACCRUAL_DAYS = Decimal("365")
BASIS_POINTS = Decimal("10000")
MAX_REWARD_MULTIPLE = Decimal("10")


def elapsed_days(start: datetime, end: datetime) -> Decimal:
    """Exact fractional days between two instants; 0 if end is not after start."""
    delta = end - start
    seconds = Decimal(delta.days * 86400 + delta.seconds) + Decimal(delta.microseconds) / Decimal(
        1_000_000
    )
    if seconds <= 0:
        return ZERO
    return seconds / SECONDS_PER_DAY


class StakingEngine:
    """
    Opens, accrues and closes stake positions.

    Principal moves to the treasury on open and principal + rewards move back
    on close, both through MoneyMovementService. Rewards are simple daily
    interest rounded half away from zero to 6 decimals.
    """

    def __init__(
        self,
        stake_repo: StakeRepository,
        account_repo: AccountRepository,
        money_movement: MoneyMovementService,
        balances: BalanceCalculator,
        treasury: TreasuryResolver,
        daily_rate_bp: int = 10,
        min_amount: Decimal = Decimal("10"),
        max_amount: Decimal = Decimal("10000"),
        principal_cap: Decimal = Decimal("1000000"),
        settlement_cap: Decimal = Decimal("1000000"),
        clock: Clock = now_utc,
    ):
        self._stake_repo = stake_repo
        self._account_repo = account_repo
        self._money_movement = money_movement
        self._balances = balances
        self._treasury = treasury
        self._daily_rate_bp = daily_rate_bp
        self._min_amount = min_amount
        self._max_amount = max_amount
        self._principal_cap = principal_cap
        self._settlement_cap = settlement_cap
        self._clock = clock

    # =========================================================================
    # Open
    # =========================================================================

    def open(self, account_id: str, principal: AmountLike) -> StakePosition:
        """
        Stake principal from an account.

        The position is only created after the transfer to the treasury was
        broadcast. The transfer itself performs the fresh available check.
        """
        amount = parse_amount(principal)
        if amount < self._min_amount or amount > self._max_amount:
            raise ValidationError(
                f"Stake amount must be between {self._min_amount} and {self._max_amount}"
            )

        account = self._account_repo.get_by_id(account_id)
        if not account:
            raise AccountNotFound(account_id)
        treasury = self._treasury.resolve()
        if treasury.account_id == account_id:
            raise ValidationError("The treasury account cannot stake")

        transfer = self._money_movement.send(account_id, treasury.address, amount)

        now = self._clock()
        position = StakePosition(
            position_id=str(uuid.uuid4()),
            account_id=account_id,
            principal=amount,
            daily_rate_bp=self._daily_rate_bp,
            accrued=ZERO,
            status=StakeStatus.ACTIVE,
            started_at=now,
            last_accrual_at=now,
            settlement_txn_id=transfer.transaction_id,
            created_at=now,
            updated_at=now,
        )
        try:
            created = self._stake_repo.create(position)
        except Exception:
            logger.critical(
                f"Stake principal {amount} moved in transaction {transfer.transaction_id} "
                f"but the position for account {account_id} could not be stored"
            )
            raise

        self._balances.invalidate(account_id)
        logger.info(
            f"Opened stake {created.position_id} for account {account_id}: "
            f"principal={amount}, rate={self._daily_rate_bp}bp/day"
        )
        return created

    # =========================================================================
    # Accrual
    # =========================================================================

    def accrue(self, position: StakePosition) -> StakePosition:
        """
        Bring a position's rewards up to now and persist them.

        Elapsed time is clamped to 365 days. If another writer accrued the
        row first, the stored row is returned instead.
        """
        if not position.is_active:
            return position

        now = self._clock()
        last = position.last_accrual_at or position.started_at
        days = elapsed_days(last, now)
        if days <= 0:
            return position
        if days > MAX_ACCRUAL_DAYS:
            logger.warning(
                f"Stake {position.position_id} not accrued for {days:.2f} days; limiting to 365"
            )
            days = MAX_ACCRUAL_DAYS

        delta = round6(
            position.principal * Decimal(position.daily_rate_bp) / BASIS_POINTS * days
        )
        accrued = round6(max(ZERO, position.accrued + delta))

        if not self._stake_repo.update_accrual(
            position.position_id,
            expected_last_accrual=position.last_accrual_at,
            accrued=accrued,
            last_accrual_at=now,
        ):
            current = self._stake_repo.get_by_id(position.position_id)
            if current is None:
                raise NotFoundError("Stake position", position.position_id)
            return current

        return replace(position, accrued=accrued, last_accrual_at=now, updated_at=now)

    def list_positions(
        self, account_id: str, status: Optional[StakeStatus] = None
    ) -> list[StakePosition]:
        """List an account's positions with ACTIVE ones accrued to now."""
        if not self._account_repo.get_by_id(account_id):
            raise AccountNotFound(account_id)
        positions = self._stake_repo.list_by_account(account_id, status=status)
        return [self._accrue_for_read(p) for p in positions]

    def get_position(self, account_id: str, position_id: str) -> StakePosition:
        """Get one of the account's positions, accrued to now."""
        position = self._stake_repo.get_by_id(position_id)
        if not position or position.account_id != account_id:
            raise NotFoundError("Stake position", position_id)
        return self._accrue_for_read(position)

    def _accrue_for_read(self, position: StakePosition) -> StakePosition:
        # A corrupted row is shown as stored; accruing would clamp it and hide the fault
        if position.is_active and self._violations(position):
            logger.critical(
                f"Stake {position.position_id} fails integrity checks; skipping accrual"
            )
            return position
        return self.accrue(position)

    # =========================================================================
    # Close
    # =========================================================================

    def close(self, account_id: str, position_id: str) -> CloseResult:
        """
        Close an ACTIVE position and pay out principal plus rewards.

        The position is claimed before the payout so a concurrent close of
        the same position is refused instead of paying a second time. A
        rejected payout releases the claim and leaves the position ACTIVE.
        An inconclusive payout keeps the claim until it is reconciled.

        Raises:
            NotFoundError: Unknown position, not owned by the account, or not ACTIVE
            ConflictError: Another close of the position is in progress
            IntegrityError: Stored values are out of bounds; nothing is moved
        """
        position = self._stake_repo.get_by_id(position_id)
        if not position or position.account_id != account_id or not position.is_active:
            raise NotFoundError("Stake position", position_id)
        if position.close_claim:
            raise ConflictError(f"Stake position {position_id} is already being closed")

        self._check_integrity(position)
        position = self.accrue(position)
        if not position.is_active:
            raise NotFoundError("Stake position", position_id)
        self._check_integrity(position)

        total = round6(position.principal + position.accrued)
        if total <= ZERO or total > self._settlement_cap:
            self._fail_integrity(
                position, [f"settlement total {total} outside (0, {self._settlement_cap}]"]
            )

        account = self._account_repo.get_by_id(account_id)
        if not account:
            raise AccountNotFound(account_id)
        treasury = self._treasury.resolve()

        claim = str(uuid.uuid4())
        if not self._stake_repo.claim_close(position_id, claim):
            raise ConflictError(f"Stake position {position_id} is already being closed")

        logger.info(
            f"Closing stake {position_id}: principal={position.principal}, "
            f"accrued={position.accrued}, total={total}"
        )
        try:
            transfer = self._money_movement.send(treasury.account_id, account.address, total)
        except GatewayUnavailable as e:
            if e.transaction_id is None:
                self._stake_repo.release_close(position_id, claim)
            else:
                logger.warning(
                    f"Stake {position_id} payout {e.transaction_id} has an unknown outcome; "
                    f"position stays claimed"
                )
            raise
        except Exception:
            self._stake_repo.release_close(position_id, claim)
            raise

        if not self._stake_repo.mark_closed(
            position_id, claim, position.accrued, self._clock(), transfer.transaction_id
        ):
            logger.critical(
                f"Stake {position_id} paid out in transaction {transfer.transaction_id} "
                f"but its close claim was lost"
            )
            raise ConflictError(f"Stake position {position_id} changed state during close")

        self._balances.invalidate(account_id)
        return CloseResult(
            position_id=position_id,
            principal=position.principal,
            rewards=position.accrued,
            total=total,
            transaction_id=transfer.transaction_id,
            chain_tx_id=transfer.chain_tx_id,
        )

    def _violations(self, position: StakePosition) -> list[str]:
        problems = []
        if not (ZERO < position.principal <= self._principal_cap):
            problems.append(f"principal {position.principal} outside (0, {self._principal_cap}]")
        if not (ZERO <= position.accrued <= position.principal * MAX_REWARD_MULTIPLE):
            problems.append(
                f"accrued {position.accrued} outside [0, {MAX_REWARD_MULTIPLE} x principal]"
            )
        return problems

    def _check_integrity(self, position: StakePosition) -> None:
        problems = self._violations(position)
        if problems:
            self._fail_integrity(position, problems)

    @staticmethod
    def _fail_integrity(position: StakePosition, problems: list[str]) -> None:
        detail = "; ".join(problems)
        logger.critical(f"Stake {position.position_id} integrity violation: {detail}")
        raise IntegrityError(f"Stake position {position.position_id} failed integrity checks: {detail}")
