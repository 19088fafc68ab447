"""Application-level exceptions."""

from typing import Optional


class AppError(Exception):
    """Base exception for application errors."""

    def __init__(self, message: str, code: str = "APP_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class ValidationError(AppError):
    """Raised when input validation fails."""

    def __init__(self, message: str, code: str = "VALIDATION_ERROR"):
        super().__init__(message, code=code)


class InvalidAmount(ValidationError):
    """Raised when a token amount is not positive or has too many decimals."""

    def __init__(self, amount: object):
        super().__init__(
            f"Amount must be a positive value with at most 6 decimals: {amount}",
            code="INVALID_AMOUNT",
        )


class NotFoundError(AppError):
    """Raised when a requested resource is not found."""

    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} not found: {identifier}", code="NOT_FOUND")


class AccountNotFound(NotFoundError):
    """Raised when no custody account exists for an identifier."""

    def __init__(self, identifier: str):
        super().__init__("Custody account", identifier)


class InsufficientFundsError(AppError):
    """Raised when attempting to move more tokens than available."""

    def __init__(self, requested: str, available: str):
        super().__init__(
            f"Insufficient funds: requested {requested}, available {available}",
            code="INSUFFICIENT_FUNDS",
        )


class ConflictError(AppError):
    """Raised when a row is not in the state an operation requires."""

    def __init__(self, message: str):
        super().__init__(message, code="CONFLICT")


class GatewayFailure(AppError):
    """Raised when the blockchain gateway explicitly rejects a transfer."""

    def __init__(self, reason: str, transaction_id: Optional[str] = None):
        self.reason = reason
        self.transaction_id = transaction_id
        super().__init__(f"Gateway rejected transfer: {reason}", code="GATEWAY_FAILURE")


class GatewayUnavailable(AppError):
    """Raised on network errors or timeouts; the outcome is inconclusive."""

    def __init__(self, message: str, transaction_id: Optional[str] = None):
        self.transaction_id = transaction_id
        super().__init__(message, code="GATEWAY_UNAVAILABLE")


class IntegrityError(AppError):
    """Raised when persisted data violates an invariant; no funds are moved."""

    def __init__(self, message: str):
        super().__init__(message, code="INTEGRITY_ERROR")


class CorruptCiphertext(AppError):
    """Raised when an encrypted key blob is malformed or fails authentication."""

    def __init__(self, message: str = "Ciphertext is malformed or failed authentication"):
        super().__init__(message, code="CORRUPT_CIPHERTEXT")
