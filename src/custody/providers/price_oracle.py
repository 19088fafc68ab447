"""Price oracle protocol."""

from decimal import Decimal
from typing import Optional, Protocol


class PriceOracle(Protocol):
    """
    Protocol for fiat price sources.

    None means no usable price right now; callers apply their fallback.
    """

    def get_average_buy_price(
        self, asset: str, fiat: str, sample_size: int
    ) -> Optional[Decimal]:
        """Average price of the first sample_size buy adverts."""
        ...

    def get_average_sell_price(
        self, asset: str, fiat: str, sample_size: int
    ) -> Optional[Decimal]:
        """Average price of the first sample_size sell adverts."""
        ...
