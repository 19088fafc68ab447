"""Fiat price quotes for purchases and withdrawals."""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from custody.providers.price_oracle import PriceOracle

logger = logging.getLogger(__name__)

PRICE_QUANTUM = Decimal("0.0001")


class QuoteService:
    """
    Prices tokens in fiat from the oracle average.

    purchase price = buy average + markup
    withdrawal price = sell average - discount
    The fallback price replaces the average whenever the oracle has none.
    """

    def __init__(
        self,
        oracle: PriceOracle,
        asset: str = "USDT",
        fiat: str = "BOB",
        sample_size: int = 10,
        fallback_price: Decimal = Decimal("36.50"),
        purchase_markup: Decimal = Decimal("0.13"),
        withdrawal_discount: Decimal = Decimal("0.10"),
    ):
        self._oracle = oracle
        self._asset = asset
        self._fiat = fiat
        self._sample_size = sample_size
        self._fallback_price = fallback_price
        self._purchase_markup = purchase_markup
        self._withdrawal_discount = withdrawal_discount

    def purchase_price(self) -> Decimal:
        """Fiat price per token when a user buys."""
        base = self._fetch(self._oracle.get_average_buy_price, "buy")
        return (base + self._purchase_markup).quantize(PRICE_QUANTUM, rounding=ROUND_HALF_UP)

    def withdrawal_price(self) -> Decimal:
        """Fiat price per token when a user sells."""
        base = self._fetch(self._oracle.get_average_sell_price, "sell")
        return (base - self._withdrawal_discount).quantize(PRICE_QUANTUM, rounding=ROUND_HALF_UP)

    def _fetch(self, lookup, side: str) -> Decimal:
        price: Optional[Decimal] = None
        try:
            price = lookup(self._asset, self._fiat, self._sample_size)
        except Exception as e:
            # Graceful degradation: a quote is never blocked by the oracle
            logger.warning(f"Price oracle {side} lookup failed: {e}")

        if price is None or price <= 0:
            logger.warning(f"No {side} price from oracle; using fallback {self._fallback_price}")
            return self._fallback_price
        return price
