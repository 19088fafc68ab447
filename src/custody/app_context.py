"""Application context: process-wide components and service wiring.

Long-lived pieces (key vault, gateway, balance cache, event channel) live
here once per process. Services are cheap and are built per database
session, so request handlers and the background watcher never share a
session.
"""

from typing import Optional

from sqlalchemy.orm import Session

from custody.config.settings import Settings, get_settings
from custody.core.key_vault import KeyVault
from custody.core.timezone import Clock, now_utc
from custody.domain.models import CustodyAccount
from custody.providers import (
    BlockchainGateway,
    HttpBlockchainGateway,
    InMemoryBlockchainGateway,
    PriceOracle,
    BinancePriceOracle,
)
from custody.repositories.sqlalchemy import (
    get_session,
    SqlAlchemyAccountRepository,
    SqlAlchemyTransactionRepository,
    SqlAlchemyStakeRepository,
    SqlAlchemyExchangeRepository,
    SqlAlchemyIdempotencyRepository,
)
from custody.services import (
    AccountService,
    TreasuryResolver,
    BalanceCache,
    BalanceCalculator,
    IdempotencyService,
    TransactionEventChannel,
    TransactionNotificationHandler,
    NotificationDispatcher,
    MoneyMovementService,
    StakingEngine,
    QuoteService,
    ExchangeService,
    TransferHistoryService,
)
from custody.workers import ConfirmationWatcher, WorkerRunner

NOTIFICATION_SUBSCRIBER = "notifications"


class AppContext:
    """
    Holds process-wide components and builds services on demand.

    A gateway or oracle passed in (tests, offline runs) replaces the one
    the settings would build.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        gateway: Optional[BlockchainGateway] = None,
        oracle: Optional[PriceOracle] = None,
        clock: Clock = now_utc,
    ):
        self._settings = settings
        self._gateway = gateway
        self._gateway_injected = gateway is not None
        self._oracle = oracle
        self._clock = clock

        self._vault: Optional[KeyVault] = None
        self._balance_cache: Optional[BalanceCache] = None
        self._events: Optional[TransactionEventChannel] = None
        self._dispatcher: Optional[NotificationDispatcher] = None

    @property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    # =========================================================================
    # Process-wide components
    # =========================================================================

    @property
    def vault(self) -> KeyVault:
        if self._vault is None:
            self._vault = KeyVault.from_hex(self.settings.master_key_hex)
        return self._vault

    @property
    def gateway(self) -> BlockchainGateway:
        """Gateway shared by request handlers."""
        if self._gateway is None:
            self._gateway = self.build_gateway()
        return self._gateway

    def build_gateway(self) -> BlockchainGateway:
        """
        Build a gateway instance for a separate thread of work.

        The in-memory gateway holds state, so stub mode and injected gateways
        always share one instance.
        """
        if self._gateway_injected:
            return self._gateway
        settings = self.settings
        if settings.gateway_mode == "stub":
            if self._gateway is None:
                self._gateway = InMemoryBlockchainGateway(auto_confirm=True)
            return self._gateway
        return HttpBlockchainGateway(
            base_url=settings.gateway_url,
            api_key=settings.gateway_api_key or "",
            timeout_seconds=settings.gateway_timeout_seconds,
        )

    @property
    def oracle(self) -> PriceOracle:
        if self._oracle is None:
            self._oracle = BinancePriceOracle(
                url=self.settings.oracle_url,
                timeout_seconds=self.settings.oracle_timeout_seconds,
            )
        return self._oracle

    @property
    def balance_cache(self) -> BalanceCache:
        if self._balance_cache is None:
            self._balance_cache = BalanceCache(
                ttl_seconds=self.settings.balance_cache_ttl_seconds,
                clock=self._clock,
            )
        return self._balance_cache

    @property
    def events(self) -> TransactionEventChannel:
        if self._events is None:
            self._init_events()
        return self._events

    @property
    def dispatcher(self) -> NotificationDispatcher:
        if self._dispatcher is None:
            self._init_events()
        return self._dispatcher

    def _init_events(self) -> None:
        # Subscribers register before anything can be published
        self._events = TransactionEventChannel()
        self._dispatcher = NotificationDispatcher(self._events)
        self._dispatcher.register(NOTIFICATION_SUBSCRIBER, TransactionNotificationHandler())

    # =========================================================================
    # Per-session services
    # =========================================================================

    def account_service(self, db: Session) -> AccountService:
        return AccountService(
            account_repo=SqlAlchemyAccountRepository(db),
            gateway=self.gateway,
            vault=self.vault,
            treasury_owner_id=self.settings.treasury_owner_id,
            clock=self._clock,
        )

    def balance_calculator(self, db: Session) -> BalanceCalculator:
        return BalanceCalculator(
            account_repo=SqlAlchemyAccountRepository(db),
            stake_repo=SqlAlchemyStakeRepository(db),
            gateway=self.gateway,
            cache=self.balance_cache,
            clock=self._clock,
        )

    def money_movement(self, db: Session) -> MoneyMovementService:
        return MoneyMovementService(
            account_repo=SqlAlchemyAccountRepository(db),
            transaction_repo=SqlAlchemyTransactionRepository(db),
            balances=self.balance_calculator(db),
            gateway=self.gateway,
            vault=self.vault,
            events=self.events,
            idempotency=IdempotencyService(
                SqlAlchemyIdempotencyRepository(db),
                ttl_seconds=self.settings.idempotency_ttl_seconds,
                clock=self._clock,
            ),
            clock=self._clock,
        )

    def staking(self, db: Session) -> StakingEngine:
        settings = self.settings
        return StakingEngine(
            stake_repo=SqlAlchemyStakeRepository(db),
            account_repo=SqlAlchemyAccountRepository(db),
            money_movement=self.money_movement(db),
            balances=self.balance_calculator(db),
            treasury=TreasuryResolver(SqlAlchemyAccountRepository(db)),
            daily_rate_bp=settings.staking_daily_rate_bp,
            min_amount=settings.staking_min_amount,
            max_amount=settings.staking_max_amount,
            principal_cap=settings.stake_principal_cap,
            settlement_cap=settings.settlement_cap,
            clock=self._clock,
        )

    def quotes(self) -> QuoteService:
        settings = self.settings
        return QuoteService(
            oracle=self.oracle,
            asset=settings.quote_asset,
            fiat=settings.quote_fiat,
            sample_size=settings.quote_sample_size,
            fallback_price=settings.fallback_price,
            purchase_markup=settings.purchase_markup,
            withdrawal_discount=settings.withdrawal_discount,
        )

    def exchange(self, db: Session) -> ExchangeService:
        return ExchangeService(
            exchange_repo=SqlAlchemyExchangeRepository(db),
            account_repo=SqlAlchemyAccountRepository(db),
            money_movement=self.money_movement(db),
            balances=self.balance_calculator(db),
            quotes=self.quotes(),
            treasury=TreasuryResolver(SqlAlchemyAccountRepository(db)),
            clock=self._clock,
        )

    def history(self, db: Session) -> TransferHistoryService:
        return TransferHistoryService(
            account_repo=SqlAlchemyAccountRepository(db),
            transaction_repo=SqlAlchemyTransactionRepository(db),
            gateway=self.gateway,
        )

    # =========================================================================
    # Startup helpers
    # =========================================================================

    def provision_treasury(self) -> Optional[CustodyAccount]:
        """Create the treasury account from settings if a key is configured."""
        private_key = self.settings.treasury_private_key
        if not private_key:
            return None
        db = get_session()
        try:
            return self.account_service(db).ensure_treasury_account(private_key)
        finally:
            db.close()

    def create_worker_runner(self) -> WorkerRunner:
        """Build the background workers with their own session and gateway."""
        settings = self.settings
        db = get_session()
        watcher = ConfirmationWatcher(
            transaction_repo=SqlAlchemyTransactionRepository(db),
            gateway=self.build_gateway(),
            events=self.events,
            batch_size=settings.watcher_batch_size,
            max_tick_seconds=settings.watcher_max_tick_seconds,
            stale_pending_minutes=settings.stale_pending_minutes,
            clock=self._clock,
        )
        return WorkerRunner(
            watcher=watcher,
            dispatcher=self.dispatcher,
            watcher_interval_seconds=settings.watcher_interval_seconds,
            notification_interval_seconds=settings.notification_interval_seconds,
            # Release the connection between ticks
            after_tick=db.close,
        )


# Global application context (one per process)
_app_context: Optional[AppContext] = None


def get_app_context() -> AppContext:
    """Get or create the global application context."""
    global _app_context
    if _app_context is None:
        _app_context = AppContext()
    return _app_context


def set_app_context(context: Optional[AppContext]) -> None:
    """Set (or clear, with None) the global application context."""
    global _app_context
    _app_context = context
