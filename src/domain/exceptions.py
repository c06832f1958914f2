"""Domain-specific exceptions.

These exceptions represent business rule violations and the failure modes
of a moderation job. Each pipeline stage raises its own error type so the
orchestrator can decide whether the failure is fatal, recoverable, or
merely logged.
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any


@dataclass(frozen=True)
class ErrorContext:
    """Structured error context using dataclass."""

    entity_type: Optional[str] = None
    entity_id: Optional[Any] = None
    field_name: Optional[str] = None
    invalid_value: Optional[Any] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format."""
        result = {}
        if self.entity_type:
            result["entity_type"] = self.entity_type
        if self.entity_id is not None:
            result["entity_id"] = self.entity_id
        if self.field_name:
            result["field_name"] = self.field_name
        if self.invalid_value is not None:
            result["invalid_value"] = self.invalid_value
        if self.extra:
            result.update(self.extra)
        return result


@dataclass(frozen=True)
class StateTransitionInfo:
    """Structured state transition information."""

    from_state: str
    to_state: str
    allowed_states: list[str] = field(default_factory=list)
    entity_type: Optional[str] = None
    entity_id: Optional[Any] = None


class DomainException(Exception):
    """Base exception for all domain-specific errors.

    Provides rich context about what went wrong and where.
    """

    def __init__(
        self,
        message: str,
        *,  # Force keyword-only arguments
        context: Optional[ErrorContext] = None,
    ):
        """Initialize domain exception with rich context.

        Args:
            message: Human-readable error message
            context: Structured error context
        """
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()

    def __str__(self) -> str:
        """Provide detailed string representation."""
        parts = [self.message]

        if self.context.entity_type:
            if self.context.entity_id:
                parts.append(f"[{self.context.entity_type}:{self.context.entity_id}]")
            else:
                parts.append(f"[{self.context.entity_type}]")

        if self.context.field_name:
            parts.append(f"Field: {self.context.field_name}")

        if self.context.invalid_value is not None:
            parts.append(f"Invalid value: {self.context.invalid_value!r}")

        return " - ".join(parts)

    def __repr__(self) -> str:
        """Developer-friendly representation."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"context={self.context!r})"
        )


class InvalidValueError(DomainException):
    """Raised when a value object receives invalid data."""

    pass


class BusinessRuleViolation(DomainException):
    """Raised when a business rule is violated.

    This represents violations of domain invariants.
    """

    pass


class EntityNotFoundError(DomainException):
    """Raised when an entity cannot be found."""

    def __init__(self, entity_type: str, entity_id: Any, message: Optional[str] = None):
        """Initialize with entity information."""
        message = message or f"{entity_type} with ID {entity_id!r} not found"

        context = ErrorContext(entity_type=entity_type, entity_id=entity_id)

        super().__init__(message, context=context)


class InvalidStateTransition(BusinessRuleViolation):
    """Raised when an invalid state transition is attempted.

    This protects state machine invariants.
    """

    def __init__(self, transition_info: StateTransitionInfo):
        """Initialize with structured state transition information."""
        message = (
            f"Cannot transition from {transition_info.from_state} "
            f"to {transition_info.to_state}"
        )
        if transition_info.allowed_states:
            message += f". Allowed: {', '.join(transition_info.allowed_states)}"

        context = ErrorContext(
            entity_type=transition_info.entity_type,
            entity_id=transition_info.entity_id,
            extra={
                "from_state": transition_info.from_state,
                "to_state": transition_info.to_state,
                "allowed_states": transition_info.allowed_states,
            },
        )

        super().__init__(message, context=context)
        self.transition_info = transition_info


class ModerationError(DomainException):
    """Base class for failures raised while processing a moderation job.

    Subclasses mark the stage that failed. ``str()`` of these errors is what
    ends up in the job's ``analysis_error`` field, so it stays the plain
    message without context decoration.
    """

    stage: str = "moderation"

    def __init__(
        self,
        message: str,
        *,
        job_id: Optional[Any] = None,
        cause: Optional[BaseException] = None,
    ):
        context = ErrorContext(
            entity_type="VideoJob" if job_id is not None else None,
            entity_id=job_id,
            extra={"stage": self.stage},
        )
        super().__init__(message, context=context)
        self.job_id = job_id
        self.cause = cause

    def __str__(self) -> str:
        return self.message


class ProbeError(ModerationError):
    """Transcode/probe stage failed. Fatal for the job."""

    stage = "probe"


class ThumbnailError(ModerationError):
    """Thumbnail generation failed. Logged, the job proceeds."""

    stage = "thumbnail"


class CloudAnalyzerError(ModerationError):
    """Cloud analysis failed. The orchestrator retries once locally."""

    stage = "cloud_analysis"


class LocalAnalyzerError(ModerationError):
    """Local analysis failed. No further fallback exists."""

    stage = "local_analysis"


class PersistenceError(ModerationError):
    """Writing job state to the persistence collaborator failed."""

    stage = "persistence"


class CleanupError(ModerationError):
    """Releasing a scratch resource failed. Logged, never propagated."""

    stage = "cleanup"
