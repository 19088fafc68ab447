"""Binance P2P advert search as a price oracle."""

import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

import requests

logger = logging.getLogger(__name__)

BINANCE_P2P_URL = "https://p2p.binance.com/bapi/c2c/v2/friendly/c2c/adv/search"


class BinancePriceOracle:
    """
    Averages the first N advert prices from the Binance P2P market.

    Any transport or parsing problem is logged and reported as None so the
    caller can fall back to its configured price.
    """

    def __init__(
        self,
        url: str = BINANCE_P2P_URL,
        timeout_seconds: float = 10,
        session: Optional[requests.Session] = None,
    ):
        self._url = url
        self._timeout = timeout_seconds
        self._session = session or requests.Session()

    def get_average_buy_price(
        self, asset: str, fiat: str, sample_size: int
    ) -> Optional[Decimal]:
        return self._average_price("BUY", asset, fiat, sample_size)

    def get_average_sell_price(
        self, asset: str, fiat: str, sample_size: int
    ) -> Optional[Decimal]:
        return self._average_price("SELL", asset, fiat, sample_size)

    def _average_price(
        self, trade_type: str, asset: str, fiat: str, sample_size: int
    ) -> Optional[Decimal]:
        payload = {
            "asset": asset,
            "fiat": fiat,
            "merchantCheck": False,
            "page": 1,
            "payTypes": [],
            "publisherType": None,
            "rows": sample_size,
            "tradeType": trade_type,
        }
        try:
            response = self._session.post(
                self._url,
                json=payload,
                headers={"User-Agent": "Mozilla/5.0"},
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            logger.warning(f"Binance P2P request failed ({trade_type}): {e}")
            return None

        if not response.ok:
            logger.warning(f"Binance P2P returned {response.status_code} ({trade_type})")
            return None

        try:
            adverts = response.json().get("data") or []
        except (ValueError, AttributeError):
            logger.warning(f"Binance P2P returned an unreadable body ({trade_type})")
            return None

        prices: list[Decimal] = []
        for item in adverts[:sample_size]:
            raw = (item.get("adv") or {}).get("price")
            try:
                prices.append(Decimal(str(raw)))
            except (InvalidOperation, ValueError):
                continue

        if not prices:
            logger.warning(f"Binance P2P returned no usable prices ({trade_type})")
            return None

        return sum(prices, Decimal("0")) / len(prices)
