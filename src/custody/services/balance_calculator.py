"""Balance calculation with a short-lived read cache."""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from custody.core.exceptions import AccountNotFound, GatewayUnavailable
from custody.core.money import ZERO
from custody.core.timezone import Clock, now_utc
from custody.domain.views import BalanceView
from custody.providers.blockchain_gateway import BlockchainGateway
from custody.repositories.protocols import AccountRepository, StakeRepository

logger = logging.getLogger(__name__)


@dataclass
class _CacheEntry:
    view: BalanceView
    stored_at: datetime


class BalanceCache:
    """Per-account BalanceView cache with a TTL. Safe to share across threads."""

    def __init__(self, ttl_seconds: int = 30, clock: Clock = now_utc):
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, _CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, account_id: str, allow_stale: bool = False) -> Optional[BalanceView]:
        """Return a cached view; expired entries only when allow_stale is set."""
        with self._lock:
            entry = self._entries.get(account_id)
        if entry is None:
            return None
        if allow_stale:
            return entry.view
        elapsed = (self._clock() - entry.stored_at).total_seconds()
        return entry.view if elapsed < self._ttl else None

    def put(self, view: BalanceView) -> None:
        with self._lock:
            self._entries[view.account_id] = _CacheEntry(view=view, stored_at=self._clock())

    def invalidate(self, account_id: str) -> None:
        with self._lock:
            self._entries.pop(account_id, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class BalanceCalculator:
    """
    Computes on-chain balances and what is available to move.

    available = max(0, token - sum of ACTIVE stake principal)
    """

    def __init__(
        self,
        account_repo: AccountRepository,
        stake_repo: StakeRepository,
        gateway: BlockchainGateway,
        cache: Optional[BalanceCache] = None,
        clock: Clock = now_utc,
    ):
        self._account_repo = account_repo
        self._stake_repo = stake_repo
        self._gateway = gateway
        self._cache = cache or BalanceCache(clock=clock)
        self._clock = clock

    @property
    def cache(self) -> BalanceCache:
        return self._cache

    def get_balances(self, account_id: str, use_cache: bool = True) -> BalanceView:
        """
        Get balances for an account.

        With use_cache=False the gateway is always queried and a gateway
        outage propagates; transfers use this mode. With use_cache=True a
        fresh cache entry is served, and an outage falls back to the last
        cached value if there is one.
        """
        account = self._account_repo.get_by_id(account_id)
        if not account:
            raise AccountNotFound(account_id)

        if use_cache:
            cached = self._cache.get(account_id)
            if cached is not None:
                return cached

        try:
            native = self._gateway.get_native_balance(account.address)
            token = self._gateway.get_token_balance(account.address)
        except GatewayUnavailable:
            if use_cache:
                stale = self._cache.get(account_id, allow_stale=True)
                if stale is not None:
                    logger.warning(f"Gateway unavailable; serving cached balance for {account_id}")
                    return stale
            raise

        locked = self._stake_repo.sum_active_principal(account_id)
        view = BalanceView(
            account_id=account_id,
            address=account.address,
            native=native,
            token=token,
            locked=locked,
            available=max(ZERO, token - locked),
            as_of=self._clock(),
        )
        self._cache.put(view)
        return view

    def invalidate(self, account_id: str) -> None:
        """Drop the cached view after funds moved."""
        self._cache.invalidate(account_id)
