"""Error Hierarchy: typed, categorized exceptions for every ScopeKit failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - CompositionError is raised at build time, before any execution
    - ExecutionError surfaces collaborator failures unchanged, never retried
    - MappingError is a configuration defect: raised while the lifecycle table loads
    - Context always names the offender (predicate, state, cost class)

Design Decisions:
    - Single hierarchy with ScopeKitError base: callers can catch everything at one seam
    - ErrorContext as dataclass: rich diagnostics without coupling to the logging framework
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorSeverity(str, Enum):
    """Error severity for observability and caller handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    COMPOSITION = "composition"
    EXECUTION = "execution"
    CONFIGURATION = "configuration"


@dataclass
class ErrorContext:
    """Diagnostic context attached to every error."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    predicate_name: str | None = None
    state: str | None = None
    mapping: str | None = None
    cost_class: str | None = None
    plan: str | None = None
    debug_info: dict[str, Any] | None = None


class ScopeKitError(Exception):
    """Base exception for all ScopeKit errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()

    def to_dict(self) -> dict:
        """Structured envelope for logs and callers that serialize errors."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "predicate_name": self.context.predicate_name,
                    "state": self.context.state,
                    "mapping": self.context.mapping,
                    "cost_class": self.context.cost_class,
                    "plan": self.context.plan,
                },
            }
        }


class CompositionError(ScopeKitError):
    """Malformed plan construction (empty OR group, duplicate or conflicting predicate)."""
    def __init__(
        self,
        message: str,
        predicate_name: str | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        if predicate_name is not None:
            ctx.predicate_name = predicate_name
        super().__init__(
            message, "COMPOSITION_ERROR", ErrorCategory.COMPOSITION,
            ErrorSeverity.ERROR, ctx,
        )
        self.predicate_name = ctx.predicate_name


class ExecutionError(ScopeKitError):
    """Persistence executor failed to run a plan."""
    def __init__(
        self, message: str, reason: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Plan execution failed ({reason}): {message}",
            "EXECUTION_ERROR", ErrorCategory.EXECUTION,
            ErrorSeverity.ERROR, context,
        )
        self.reason = reason


class MappingError(ScopeKitError):
    """A lifecycle state lacks (or has a malformed) presentation mapping."""
    def __init__(
        self,
        message: str,
        state: str | None = None,
        mapping: str | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.state = state
        ctx.mapping = mapping
        super().__init__(
            message, "MAPPING_ERROR", ErrorCategory.CONFIGURATION,
            ErrorSeverity.CRITICAL, ctx,
        )
        self.state = state
        self.mapping = mapping
