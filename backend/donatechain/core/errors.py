"""Error Hierarchy: typed, categorized exceptions for all DonateChain failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity), retryable (bool)
    - Errors are captured at their origin and attached to the owning entity as ErrorInfo
    - TIMEOUT means "outcome unknown": callers re-query instead of assuming failure
    - to_response() produces the REST envelope; no internal details leaked

Design Decisions:
    - Single hierarchy with DonateChainError base: one except clause captures any domain failure
    - ErrorInfo as frozen dataclass: safe to embed in immutable session/fetch-state snapshots
    - retryable is a class-level fact, not a runtime guess (ADR: UI decides retry from the type alone)
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    USER_ACTION = "user_action"
    PROVIDER = "provider"
    NETWORK = "network"
    CONTRACT = "contract"
    EXTERNAL_API = "external_api"
    CONFLICT = "conflict"
    TIMEOUT = "timeout"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    account: str | None = None
    chain_id: int | None = None
    tx_hash: str | None = None
    source: str | None = None
    debug_info: dict[str, Any] | None = None


@dataclass(frozen=True)
class ErrorInfo:
    """Immutable snapshot of a failure, attached to session/submission/fetch state."""
    code: str
    message: str
    category: ErrorCategory
    retryable: bool
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ErrorInfo":
        if isinstance(exc, DonateChainError):
            return exc.to_info()
        return cls(
            code="INTERNAL_ERROR",
            message=str(exc) or type(exc).__name__,
            category=ErrorCategory.INTERNAL,
            retryable=False,
        )


class DonateChainError(Exception):
    """Base exception for all DonateChain errors."""

    retryable = False

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_info(self) -> ErrorInfo:
        return ErrorInfo(
            code=self.code,
            message=self.message,
            category=self.category,
            retryable=self.retryable,
            timestamp=self.context.timestamp,
        )

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "success": False,
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "retryable": self.retryable,
                "timestamp": self.context.timestamp.isoformat(),
            },
        }


# ─── Wallet / Provider Errors ───────────────────────────────────

class ProviderUnavailableError(DonateChainError):
    """No wallet transport detected: user must install a wallet."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "No wallet provider detected. Install a browser wallet to continue.",
            "PROVIDER_UNAVAILABLE", ErrorCategory.PROVIDER,
            ErrorSeverity.CRITICAL, context, 503,
        )


class UserRejectedError(DonateChainError):
    """User declined a wallet prompt."""
    retryable = True

    def __init__(self, method: str, context: ErrorContext | None = None):
        super().__init__(
            f"Request '{method}' was rejected in the wallet",
            "USER_REJECTED", ErrorCategory.USER_ACTION,
            ErrorSeverity.WARNING, context, 400,
        )
        self.method = method


class RequestPendingError(DonateChainError):
    """A prompt of the same kind is already open in the wallet."""
    retryable = True

    def __init__(self, method: str, context: ErrorContext | None = None):
        super().__init__(
            f"Request '{method}' is already pending. Check your wallet.",
            "REQUEST_PENDING", ErrorCategory.USER_ACTION,
            ErrorSeverity.WARNING, context, 409,
        )
        self.method = method


class ProviderRequestError(DonateChainError):
    """Transport returned an error not covered by a more specific type."""
    retryable = True

    def __init__(
        self, method: str, message: str, rpc_code: int | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Provider request '{method}' failed: {message}",
            "PROVIDER_REQUEST_FAILED", ErrorCategory.PROVIDER,
            ErrorSeverity.ERROR, context, 502,
        )
        self.method = method
        self.rpc_code = rpc_code


class AlreadyInProgressError(DonateChainError):
    """connect() called while a connection attempt is outstanding."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "A wallet connection is already in progress",
            "ALREADY_IN_PROGRESS", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )


class WrongNetworkError(DonateChainError):
    """Session is on a chain other than the required one."""
    retryable = True

    def __init__(
        self, required_chain_id: int, actual_chain_id: int | None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Wrong network: required chain {required_chain_id}, "
            f"wallet is on {actual_chain_id}",
            "WRONG_NETWORK", ErrorCategory.NETWORK,
            ErrorSeverity.WARNING, context, 400,
        )
        self.required_chain_id = required_chain_id
        self.actual_chain_id = actual_chain_id


class NotConnectedError(DonateChainError):
    """Operation requires a connected wallet."""
    retryable = True

    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Wallet is not connected",
            "NOT_CONNECTED", ErrorCategory.PROVIDER,
            ErrorSeverity.WARNING, context, 400,
        )


# ─── Input Errors ───────────────────────────────────────────────

class ValidationError(DonateChainError):
    """Input rejected before any network call."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field


class PrecisionError(ValidationError):
    """Amount has more fractional digits than wei can represent."""
    def __init__(self, amount: str, max_decimals: int, context: ErrorContext | None = None):
        super().__init__(
            f"Amount '{amount}' has more than {max_decimals} fractional digits",
            "amount", context,
        )
        self.code = "PRECISION_ERROR"
        self.max_decimals = max_decimals


# ─── Contract Errors ────────────────────────────────────────────

class ContractUnreachableError(DonateChainError):
    """Network/RPC failure while reading or writing the contract."""
    retryable = True

    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            f"Donation contract unreachable: {message}",
            "CONTRACT_UNREACHABLE", ErrorCategory.NETWORK,
            ErrorSeverity.ERROR, context, 503,
        )


class ContractMisconfiguredError(DonateChainError):
    """Wrong address or ABI mismatch: needs reconfiguration, not retry."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            f"Donation contract misconfigured: {message}",
            "CONTRACT_MISCONFIGURED", ErrorCategory.CONTRACT,
            ErrorSeverity.CRITICAL, context, 500,
        )


class TransactionRevertedError(DonateChainError):
    """Transaction was mined but reverted."""
    def __init__(self, tx_hash: str, context: ErrorContext | None = None):
        super().__init__(
            f"Transaction {tx_hash} reverted",
            "TRANSACTION_REVERTED", ErrorCategory.CONTRACT,
            ErrorSeverity.ERROR, context, 400,
        )
        self.tx_hash = tx_hash


class ConfirmationTimeoutError(DonateChainError):
    """Bounded wait expired: the transaction may still confirm later."""
    retryable = True

    def __init__(
        self, tx_hash: str, timeout_seconds: float,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"No confirmation for {tx_hash} within {timeout_seconds:g}s; "
            "check its status before retrying",
            "TIMEOUT", ErrorCategory.TIMEOUT,
            ErrorSeverity.WARNING, context, 504,
        )
        self.tx_hash = tx_hash
        self.timeout_seconds = timeout_seconds


# ─── Mirror Service Errors ──────────────────────────────────────

class MirrorUnavailableError(DonateChainError):
    """Mirror service unreachable, non-2xx, or replied success:false."""
    retryable = True

    def __init__(
        self, message: str, status_code: int | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Mirror service unavailable: {message}",
            "MIRROR_UNAVAILABLE", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.ERROR, context, 503,
        )
        self.status_code = status_code


class MirrorPayloadError(DonateChainError):
    """Mirror service replied with a body that does not match its contract."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            f"Malformed mirror payload: {message}",
            "MIRROR_PAYLOAD_INVALID", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.ERROR, context, 502,
        )


class ResourceNotFoundError(DonateChainError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 404,
        )
        self.resource_id = resource_id


# ─── Internal Errors ────────────────────────────────────────────

class InvalidTransitionError(DonateChainError):
    """State machine asked to move backwards or out of a terminal state."""
    def __init__(self, from_state: str, to_state: str, context: ErrorContext | None = None):
        super().__init__(
            f"Illegal transition {from_state} -> {to_state}",
            "INVALID_TRANSITION", ErrorCategory.INTERNAL,
            ErrorSeverity.CRITICAL, context, 500,
        )
