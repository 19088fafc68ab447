"""Fixed-point helpers for token amounts (6 fractional digits)."""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

from custody.core.exceptions import InvalidAmount

TOKEN_DECIMALS = 6
TOKEN_QUANTUM = Decimal("0.000001")
FIAT_QUANTUM = Decimal("0.01")
ZERO = Decimal("0")

AmountLike = Union[Decimal, str, int]


def round6(value: Decimal) -> Decimal:
    """Round to token precision, half away from zero."""
    # ROUND_HALF_UP in the decimal module rounds ties away from zero
    return value.quantize(TOKEN_QUANTUM, rounding=ROUND_HALF_UP)


def round_fiat(value: Decimal) -> Decimal:
    """Round a fiat amount to cents, half away from zero."""
    return value.quantize(FIAT_QUANTUM, rounding=ROUND_HALF_UP)


def parse_amount(value: AmountLike) -> Decimal:
    """
    Parse a caller-supplied token amount.

    Accepts Decimal, int or a decimal string. Floats are rejected because they
    cannot carry exact 6-decimal values. Raises InvalidAmount if the value is
    not positive or needs more than 6 fractional digits.
    """
    if isinstance(value, (float, bool)):
        raise InvalidAmount(value)
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
        if not amount.is_finite() or amount <= 0:
            raise InvalidAmount(value)
        quantized = amount.quantize(TOKEN_QUANTUM, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        raise InvalidAmount(value)

    if amount != quantized:
        raise InvalidAmount(value)
    return quantized


def to_decimal(value: object) -> Decimal:
    """Coerce a JSON number or string into a Decimal (0 on empty input)."""
    if value is None or value == "":
        return ZERO
    return Decimal(str(value))
