"""Error taxonomy for marketplace operations. Every error carries a stable reason code."""


class MarketError(Exception):
    """Base class for all errors raised by marketplace operations."""

    default_code = "MARKET_ERROR"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code


# Validation: rejected before any state change.


class ValidationError(MarketError):
    default_code = "VALIDATION_FAILED"


class InvalidAmountError(ValidationError):
    default_code = "INVALID_AMOUNT"


class InvalidBudgetError(ValidationError):
    default_code = "INVALID_BUDGET"


class UnsupportedCurrencyError(ValidationError):
    default_code = "UNSUPPORTED_CURRENCY"


# Conflict: rejected inside the transaction, which rolls back.


class ConflictError(MarketError):
    default_code = "RESOURCE_CONFLICT"


class DuplicateBidError(ConflictError):
    default_code = "DUPLICATE_BID"


class JobNotBiddableError(ConflictError):
    default_code = "JOB_NOT_BIDDABLE"


class JobNotOpenError(ConflictError):
    default_code = "JOB_NOT_OPEN"


class BidNotAvailableError(ConflictError):
    default_code = "BID_NOT_AVAILABLE"


class InvalidTransitionError(ConflictError):
    default_code = "INVALID_TRANSITION"


class RateLimitedError(ConflictError):
    default_code = "RATE_LIMITED"


class UnauthorizedError(MarketError):
    default_code = "ACCESS_DENIED"


class NotFoundError(MarketError):
    default_code = "RESOURCE_NOT_FOUND"
