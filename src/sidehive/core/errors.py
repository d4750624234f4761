"""
SideHive Core - Error taxonomy.

Every failure that crosses the retrying call envelope is classified into one
of these kinds. The envelope retries only the retryable ones; the calling
step turns the final classification into a notice.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Classification recorded on operation events as `error_code`."""
    TRANSIENT = "transient"
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    VALIDATION = "validation"
    DUPLICATE = "duplicate"
    COLLISION = "collision"
    CANCELLED = "cancelled"
    PAYMENT_REQUIRED = "payment_required"
    UNEXPECTED = "unexpected"


RETRYABLE_KINDS = frozenset({ErrorKind.TRANSIENT, ErrorKind.TIMEOUT, ErrorKind.UNEXPECTED})


class SideHiveError(Exception):
    """Base class for classified failures."""

    kind: ErrorKind = ErrorKind.UNEXPECTED

    def __init__(self, message: str = "", *, status: int | None = None):
        super().__init__(message or self.kind.value)
        self.message = message or self.kind.value
        self.status = status

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS


class TransientError(SideHiveError):
    """Network failure or unclassified non-2xx from the backend."""
    kind = ErrorKind.TRANSIENT


class AttemptTimeoutError(SideHiveError):
    """A single attempt exceeded its timeout."""
    kind = ErrorKind.TIMEOUT


class RateLimitedError(SideHiveError):
    """Too many operations for this identity in the rolling window."""
    kind = ErrorKind.RATE_LIMITED

    def __init__(self, message: str = "Rate limit exceeded. Please wait a moment.", *, retry_after: float | None = None):
        super().__init__(message, status=429)
        self.retry_after = retry_after


class PaymentRequiredError(SideHiveError):
    """The generation provider refused the call for billing reasons."""
    kind = ErrorKind.PAYMENT_REQUIRED

    def __init__(self, message: str = "Payment required. Please add credits to your workspace."):
        super().__init__(message, status=402)


class ValidationFailedError(SideHiveError):
    """Caller error, with per-field detail for logs."""
    kind = ErrorKind.VALIDATION

    def __init__(self, message: str = "Invalid request", field_errors: dict[str, list[str]] | None = None):
        super().__init__(message, status=400)
        self.field_errors = field_errors or {}


class DuplicateCandidateError(SideHiveError):
    """A regenerated candidate matched one that is already visible."""
    kind = ErrorKind.DUPLICATE

    def __init__(self, name: str):
        super().__init__(f"Generated name '{name}' is already shown")
        self.name = name


class OperationCancelledError(SideHiveError):
    """The operation was cancelled by the user (or superseded). Not a failure."""
    kind = ErrorKind.CANCELLED


class ClaimConflictError(SideHiveError):
    """The anonymous session's business already belongs to another account."""
    kind = ErrorKind.COLLISION

    def __init__(self, message: str = "This onboarding session was already claimed by another account"):
        super().__init__(message, status=409)


def classify(error: BaseException) -> ErrorKind:
    """Map any exception to an ErrorKind."""
    if isinstance(error, SideHiveError):
        return error.kind
    if isinstance(error, TimeoutError):
        return ErrorKind.TIMEOUT
    if isinstance(error, (ConnectionError, OSError)):
        return ErrorKind.TRANSIENT
    return ErrorKind.UNEXPECTED


def is_retryable(error: BaseException) -> bool:
    return classify(error) in RETRYABLE_KINDS
