"""Error Hierarchy — typed, categorized exceptions for every neuron workflow failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Every error carries a RecoveryAction: retry whole flow, retry one step, or reconcile manually
    - ValidationError is raised before any ledger/governance call — no side effect happened
    - ClaimError means funds already moved; recovery is RETRY_STEP (claim only), never RETRY_FLOW
    - NetworkError means the remote outcome is unknown — never retried as if it failed
    - to_response() produces REST envelope; to_sse_event() produces SSE envelope

Design Decisions:
    - Single hierarchy with NeuronKeeperError base: FastAPI global handler catches all (ADR: uniform error shape)
    - ErrorContext as dataclass: step/neuron/nonce travel with the error, not with the logger
    - GovernancePermissionError instead of PermissionError: never shadow the builtin
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
    LEDGER = "ledger"
    GOVERNANCE = "governance"
    PERMISSION = "permission"
    NETWORK = "network"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFLICT = "conflict"
    INTERNAL = "internal"


class RecoveryAction(str, Enum):
    """What the caller should do next."""
    NONE = "none"
    RETRY_FLOW = "retry_flow"
    RETRY_STEP = "retry_step"
    MANUAL_RECONCILIATION = "manual_reconciliation"


@dataclass
class ErrorContext:
    """Rich context for error observability and recovery."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    step: str | None = None
    neuron_id: str | None = None
    principal: str | None = None
    nonce: int | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None


class NeuronKeeperError(Exception):
    """Base exception for all NeuronKeeper errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
        recovery: RecoveryAction = RecoveryAction.NONE,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status
        self.recovery = recovery

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "recovery": self.recovery.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "step": self.context.step,
                    "neuron_id": self.context.neuron_id,
                    "principal": self.context.principal,
                    "nonce": self.context.nonce,
                },
            }
        }

    def to_sse_event(self) -> dict:
        """Convert to SSE error event."""
        return {
            "type": "error",
            "data": {
                "code": self.code,
                "message": self.context.user_message or self.message,
                "severity": self.severity.value,
                "recovery": self.recovery.value,
                "step": self.context.step,
            },
        }


# ─── Client-side Errors (pre-network) ───────────────────────────

class ValidationError(NeuronKeeperError):
    """Input rejected before any ledger or governance call."""
    def __init__(
        self, message: str, field: str, code: str = "VALIDATION_ERROR",
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, code, ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400, RecoveryAction.RETRY_FLOW,
        )
        self.field = field


class NonceExhaustedError(NeuronKeeperError):
    """Every nonce in the bounded scan already holds a neuron."""
    def __init__(self, limit: int, context: ErrorContext | None = None):
        super().__init__(
            f"No free neuron slot among nonces 0..{limit - 1}. "
            "Choose a nonce manually.",
            "NONCE_SPACE_EXHAUSTED", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409, RecoveryAction.NONE,
        )
        self.limit = limit


class NeuronBusyError(NeuronKeeperError):
    """Another workflow from this client is already in flight on the neuron."""
    def __init__(self, neuron_key: str, context: ErrorContext | None = None):
        super().__init__(
            f"Neuron {neuron_key} already has an operation in progress",
            "NEURON_BUSY", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409, RecoveryAction.RETRY_FLOW,
        )
        self.neuron_key = neuron_key


class ResourceNotFoundError(NeuronKeeperError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )


# ─── Ledger Errors ──────────────────────────────────────────────

class TransferErrorKind(str, Enum):
    INSUFFICIENT_FUNDS = "insufficient_funds"
    BAD_FEE = "bad_fee"
    GENERIC = "generic"


class TransferError(NeuronKeeperError):
    """Ledger rejected the transfer. No external state changed."""
    def __init__(
        self,
        kind: TransferErrorKind,
        message: str,
        balance: int | None = None,
        expected_fee: int | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Transfer failed ({kind.value}): {message}",
            "TRANSFER_FAILED", ErrorCategory.LEDGER,
            ErrorSeverity.ERROR, context, 402, RecoveryAction.RETRY_FLOW,
        )
        self.kind = kind
        self.balance = balance
        self.expected_fee = expected_fee


# ─── Governance Errors ──────────────────────────────────────────

class GovernanceError(NeuronKeeperError):
    """Governance answered manage_neuron with an error record."""
    def __init__(
        self, error_message: str, error_type: int | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Governance error: {error_message}",
            "GOVERNANCE_ERROR", ErrorCategory.GOVERNANCE,
            ErrorSeverity.ERROR, context, 502, RecoveryAction.RETRY_STEP,
        )
        self.error_message = error_message
        self.error_type = error_type


class ClaimError(NeuronKeeperError):
    """Claim failed after the funding transfer succeeded — funds sit at the neuron address."""
    def __init__(
        self, message: str, block_index: int | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.user_message = ctx.user_message or (
            "Funds were transferred but the neuron is not registered yet. "
            "Retry the claim step only — do not transfer again."
        )
        super().__init__(
            f"Claim failed after transfer: {message}",
            "CLAIM_FAILED", ErrorCategory.GOVERNANCE,
            ErrorSeverity.CRITICAL, ctx, 502, RecoveryAction.RETRY_STEP,
        )
        self.block_index = block_index


class GovernancePermissionError(NeuronKeeperError):
    """Governance denied a configure/split/permission command, or a grant did not verify."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "PERMISSION_DENIED", ErrorCategory.PERMISSION,
            ErrorSeverity.ERROR, context, 403, RecoveryAction.NONE,
        )


# ─── Transport Errors ───────────────────────────────────────────

class NetworkError(NeuronKeeperError):
    """Transport failure; the remote call may or may not have executed."""
    def __init__(
        self, message: str, operation: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Network failure during {operation}: {message}",
            "NETWORK_ERROR", ErrorCategory.NETWORK,
            ErrorSeverity.CRITICAL, context, 504,
            RecoveryAction.MANUAL_RECONCILIATION,
        )
        self.operation = operation
