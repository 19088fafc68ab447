"""Core utilities and shared functionality."""

from custody.core.timezone import (
    now_utc,
    to_utc,
    parse_datetime_utc,
    UTC,
)
from custody.core.money import round6, parse_amount, TOKEN_QUANTUM
from custody.core.exceptions import (
    AppError,
    ValidationError,
    InvalidAmount,
    NotFoundError,
    AccountNotFound,
    InsufficientFundsError,
    ConflictError,
    GatewayFailure,
    GatewayUnavailable,
    IntegrityError,
    CorruptCiphertext,
)
from custody.core.key_vault import KeyVault

__all__ = [
    "now_utc",
    "to_utc",
    "parse_datetime_utc",
    "UTC",
    "round6",
    "parse_amount",
    "TOKEN_QUANTUM",
    "AppError",
    "ValidationError",
    "InvalidAmount",
    "NotFoundError",
    "AccountNotFound",
    "InsufficientFundsError",
    "ConflictError",
    "GatewayFailure",
    "GatewayUnavailable",
    "IntegrityError",
    "CorruptCiphertext",
    "KeyVault",
]
