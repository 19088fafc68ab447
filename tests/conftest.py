"""
Pytest configuration and fixtures for custody ledger tests.

This module provides:
- In-memory SQLite database fixtures
- A controllable clock
- An in-memory blockchain gateway and a fixed-price oracle
- Service and repository fixtures
- Factory helpers for funded accounts and the treasury
- A FastAPI test client wired to the test database
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Optional

import pytest
from sqlalchemy import create_engine, StaticPool
from sqlalchemy.orm import sessionmaker, Session
from fastapi.testclient import TestClient

from custody.main import app
from custody.app_context import AppContext, set_app_context
from custody.config.settings import Settings, set_settings, reset_settings
from custody.core.key_vault import KeyVault
from custody.core.timezone import UTC
from custody.domain.events import TransactionEvent
from custody.domain.models import CustodyAccount
from custody.providers import InMemoryBlockchainGateway
from custody.repositories.sqlalchemy.database import Base, get_db, reset_database
# Import ORM models to register them with Base before creating tables
from custody.repositories.sqlalchemy import orm_models  # noqa: F401
from custody.repositories.sqlalchemy import (
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
    MoneyMovementService,
    StakingEngine,
    QuoteService,
    ExchangeService,
    TransferHistoryService,
)
from custody.workers import ConfirmationWatcher

TEST_MASTER_KEY = bytes(range(32))
TREASURY_PRIVATE_KEY = "a1" * 32
# Valid for the in-memory gateway: "T" + 33 alphanumerics
EXTERNAL_ADDRESS = "T" + "X" * 33


# =============================================================================
# TIME HELPERS
# =============================================================================


def utc_datetime(
    year: int,
    month: int,
    day: int,
    hour: int = 12,
    minute: int = 0,
    second: int = 0,
) -> datetime:
    """Create an aware UTC datetime."""
    return UTC.localize(datetime(year, month, day, hour, minute, second))


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    """Clock fixed at 2026-01-01 12:00 UTC."""
    return FakeClock(utc_datetime(2026, 1, 1))


# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest.fixture(scope="function")
def test_engine():
    """Create test database engine with shared in-memory SQLite."""
    # Reset settings for clean state
    reset_settings()

    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def test_session(test_engine) -> Session:
    """Create test database session."""
    TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()


# =============================================================================
# REPOSITORY FIXTURES
# =============================================================================


@pytest.fixture
def account_repo(test_session) -> SqlAlchemyAccountRepository:
    """Provide test AccountRepository."""
    return SqlAlchemyAccountRepository(test_session)


@pytest.fixture
def transaction_repo(test_session) -> SqlAlchemyTransactionRepository:
    """Provide test TransactionRepository."""
    return SqlAlchemyTransactionRepository(test_session)


@pytest.fixture
def stake_repo(test_session) -> SqlAlchemyStakeRepository:
    """Provide test StakeRepository."""
    return SqlAlchemyStakeRepository(test_session)


@pytest.fixture
def exchange_repo(test_session) -> SqlAlchemyExchangeRepository:
    """Provide test ExchangeRepository."""
    return SqlAlchemyExchangeRepository(test_session)


@pytest.fixture
def idempotency_repo(test_session) -> SqlAlchemyIdempotencyRepository:
    """Provide test IdempotencyRepository."""
    return SqlAlchemyIdempotencyRepository(test_session)


# =============================================================================
# PROVIDER FIXTURES
# =============================================================================


class FixedPriceOracle:
    """Price oracle returning preset prices; None simulates an outage."""

    def __init__(
        self,
        buy: Optional[Decimal] = Decimal("9.50"),
        sell: Optional[Decimal] = Decimal("9.40"),
    ):
        self.buy = buy
        self.sell = sell

    def get_average_buy_price(self, asset: str, fiat: str, sample_size: int) -> Optional[Decimal]:
        return self.buy

    def get_average_sell_price(self, asset: str, fiat: str, sample_size: int) -> Optional[Decimal]:
        return self.sell


class FailingPriceOracle:
    """Price oracle that always raises."""

    def get_average_buy_price(self, asset: str, fiat: str, sample_size: int) -> Optional[Decimal]:
        raise ConnectionError("Network unavailable")

    def get_average_sell_price(self, asset: str, fiat: str, sample_size: int) -> Optional[Decimal]:
        raise ConnectionError("Network unavailable")


@pytest.fixture
def gateway() -> InMemoryBlockchainGateway:
    """Provide an in-memory gateway; transfers stay unconfirmed until told."""
    return InMemoryBlockchainGateway()


@pytest.fixture
def price_oracle() -> FixedPriceOracle:
    return FixedPriceOracle()


@pytest.fixture
def vault() -> KeyVault:
    return KeyVault(TEST_MASTER_KEY)


# =============================================================================
# EVENT FIXTURES
# =============================================================================


@pytest.fixture
def events() -> TransactionEventChannel:
    return TransactionEventChannel()


@pytest.fixture
def event_log(events) -> Callable[[], list[TransactionEvent]]:
    """Subscribe to the channel; calling the fixture drains what was published."""
    events.subscribe("test-log")

    def _drain() -> list[TransactionEvent]:
        received: list[TransactionEvent] = []
        events.drain("test-log", received.append, max_events=1000)
        return received

    return _drain


# =============================================================================
# SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def account_service(account_repo, gateway, vault, clock) -> AccountService:
    """Provide test AccountService."""
    return AccountService(
        account_repo=account_repo,
        gateway=gateway,
        vault=vault,
        treasury_owner_id="treasury",
        clock=clock,
    )


@pytest.fixture
def treasury_resolver(account_repo) -> TreasuryResolver:
    return TreasuryResolver(account_repo)


@pytest.fixture
def balance_cache(clock) -> BalanceCache:
    return BalanceCache(ttl_seconds=30, clock=clock)


@pytest.fixture
def balance_calculator(account_repo, stake_repo, gateway, balance_cache, clock) -> BalanceCalculator:
    """Provide test BalanceCalculator."""
    return BalanceCalculator(
        account_repo=account_repo,
        stake_repo=stake_repo,
        gateway=gateway,
        cache=balance_cache,
        clock=clock,
    )


@pytest.fixture
def idempotency_service(idempotency_repo, clock) -> IdempotencyService:
    return IdempotencyService(idempotency_repo, ttl_seconds=600, clock=clock)


@pytest.fixture
def money_movement(
    account_repo,
    transaction_repo,
    balance_calculator,
    gateway,
    vault,
    events,
    idempotency_service,
    clock,
) -> MoneyMovementService:
    """Provide test MoneyMovementService."""
    return MoneyMovementService(
        account_repo=account_repo,
        transaction_repo=transaction_repo,
        balances=balance_calculator,
        gateway=gateway,
        vault=vault,
        events=events,
        idempotency=idempotency_service,
        clock=clock,
    )


@pytest.fixture
def staking_engine(
    stake_repo,
    account_repo,
    money_movement,
    balance_calculator,
    treasury_resolver,
    clock,
) -> StakingEngine:
    """Provide test StakingEngine (10 bp/day, stakes between 10 and 10000)."""
    return StakingEngine(
        stake_repo=stake_repo,
        account_repo=account_repo,
        money_movement=money_movement,
        balances=balance_calculator,
        treasury=treasury_resolver,
        daily_rate_bp=10,
        min_amount=Decimal("10"),
        max_amount=Decimal("10000"),
        principal_cap=Decimal("1000000"),
        settlement_cap=Decimal("1000000"),
        clock=clock,
    )


@pytest.fixture
def quote_service(price_oracle) -> QuoteService:
    """Provide test QuoteService (buy 9.50, sell 9.40, fallback 36.50)."""
    return QuoteService(
        oracle=price_oracle,
        fallback_price=Decimal("36.50"),
        purchase_markup=Decimal("0.13"),
        withdrawal_discount=Decimal("0.10"),
    )


@pytest.fixture
def exchange_service(
    exchange_repo,
    account_repo,
    money_movement,
    balance_calculator,
    quote_service,
    treasury_resolver,
    clock,
) -> ExchangeService:
    """Provide test ExchangeService."""
    return ExchangeService(
        exchange_repo=exchange_repo,
        account_repo=account_repo,
        money_movement=money_movement,
        balances=balance_calculator,
        quotes=quote_service,
        treasury=treasury_resolver,
        clock=clock,
    )


@pytest.fixture
def history_service(account_repo, transaction_repo, gateway) -> TransferHistoryService:
    return TransferHistoryService(
        account_repo=account_repo,
        transaction_repo=transaction_repo,
        gateway=gateway,
    )


@pytest.fixture
def watcher(transaction_repo, gateway, events, clock) -> ConfirmationWatcher:
    """Provide test ConfirmationWatcher (batch 25, 30 minute stale threshold)."""
    return ConfirmationWatcher(
        transaction_repo=transaction_repo,
        gateway=gateway,
        events=events,
        batch_size=25,
        max_tick_seconds=60,
        stale_pending_minutes=30,
        clock=clock,
    )


# =============================================================================
# FACTORY FIXTURES
# =============================================================================


@pytest.fixture
def funded_account_factory(account_service, gateway) -> Callable[..., CustodyAccount]:
    """Factory for custody accounts holding tokens on the in-memory chain."""
    counter = {"n": 0}

    def _create(
        token: Decimal = Decimal("1000"),
        native: Decimal = Decimal("50"),
        owner_id: Optional[str] = None,
    ) -> CustodyAccount:
        counter["n"] += 1
        account = account_service.create_account(owner_id or f"user-{counter['n']}")
        gateway.credit(account.address, token=token, native=native)
        return account

    return _create


@pytest.fixture
def treasury(account_service, gateway) -> CustodyAccount:
    """Provision the treasury account with a deep token balance."""
    account = account_service.ensure_treasury_account(TREASURY_PRIVATE_KEY)
    gateway.credit(account.address, token=Decimal("1000000"), native=Decimal("1000"))
    return account


# =============================================================================
# API TEST CLIENT FIXTURE
# =============================================================================


@pytest.fixture
def api_settings() -> Settings:
    """Settings for API tests: in-memory database, no background workers."""
    return Settings(
        database_url="sqlite:///:memory:",
        gateway_mode="stub",
        workers_enabled=False,
        treasury_private_key=None,
        master_key_hex=TEST_MASTER_KEY.hex(),
    )


@pytest.fixture
def api_context(api_settings, gateway, price_oracle, clock) -> AppContext:
    """AppContext sharing the in-memory gateway with the test."""
    return AppContext(
        settings=api_settings,
        gateway=gateway,
        oracle=price_oracle,
        clock=clock,
    )


@pytest.fixture
def client(test_engine, api_settings, api_context) -> TestClient:
    """Provide FastAPI test client with test database."""
    set_settings(api_settings)
    reset_database()
    set_app_context(api_context)
    TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

    def override_get_db():
        session = TestSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
    set_app_context(None)
    reset_database()
    reset_settings()


@pytest.fixture
def api_session(test_engine) -> Session:
    """A separate session on the API test database for direct setup/asserts."""
    TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()


# =============================================================================
# HELPER FUNCTIONS (exported for use in tests)
# =============================================================================


def owner_headers(owner_id: str, idempotency_key: Optional[str] = None) -> dict[str, str]:
    """Build request headers identifying the caller."""
    headers = {"X-Owner-Id": owner_id}
    if idempotency_key:
        headers["Idempotency-Key"] = idempotency_key
    return headers
