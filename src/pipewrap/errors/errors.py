"""pipewrap error types."""

import dataclasses
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error source categories."""

    PARAMETER = "PARAMETER"
    TEMPLATE = "TEMPLATE"
    TOOL = "TOOL"
    CONFIG = "CONFIG"
    SYSTEM = "SYSTEM"


@dataclass
class PipelineError(Exception):
    """Structured error with context. Base exception for all pipewrap errors."""

    # Identity
    code: str  # e.g., "TOOL_FAILED"
    category: ErrorCategory

    # Messages
    message: str  # Human-readable summary
    detail: str | None = None  # Extended explanation
    suggestion: str | None = None  # Actionable fix

    # Context
    pipeline: str | None = None  # Which pipeline was running
    step: str | None = None  # Which step failed
    exit_code: int | None = None  # Process exit status, if any

    # Error chain
    cause: "PipelineError | None" = None

    # Metadata
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        """Set Exception message."""
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output.

        Returns:
            Dictionary representation of the error
        """
        return {
            "code": self.code,
            "category": self.category.value,
            "message": self.message,
            "detail": self.detail,
            "suggestion": self.suggestion,
            "pipeline": self.pipeline,
            "step": self.step,
            "exit_code": self.exit_code,
            "timestamp": self.timestamp.isoformat(),
            "cause": self.cause.to_dict() if self.cause else None,
        }

    def with_context(
        self,
        pipeline: str | None = None,
        step: str | None = None,
    ) -> "PipelineError":
        """Return copy with additional context.

        Args:
            pipeline: Optional pipeline name
            step: Optional step name

        Returns:
            New error of the same class with updated context
        """
        return dataclasses.replace(
            self,
            pipeline=pipeline or self.pipeline,
            step=step or self.step,
        )


@dataclass
class MissingParameter(PipelineError):
    """One or more required pipeline parameters have no value."""

    names: list[str] = field(default_factory=list)


@dataclass
class TemplateError(PipelineError):
    """A template references a placeholder with no binding."""

    variable: str | None = None


@dataclass
class ExternalToolFailure(PipelineError):
    """An external command exited with a non-zero status."""

    command: str | None = None


@dataclass
class ErrorTemplate:
    """Template for creating errors."""

    code: str
    category: ErrorCategory
    message_template: str  # "Template variable '{variable}' is not bound"
    detail_template: str | None = None
    suggestion_template: str | None = None
    error_class: type[PipelineError] = PipelineError


@dataclass
class MatchResult:
    """Result of matching an exception."""

    code: str
    context: dict[str, Any]


class ErrorMatcher(ABC):
    """Base class for exception matchers."""

    @abstractmethod
    def matches(self, error: Exception) -> bool:
        """Check if this matcher handles the error.

        Args:
            error: Exception to check

        Returns:
            True if this matcher can handle the error
        """

    @abstractmethod
    def extract(self, error: Exception) -> MatchResult:
        """Extract error code and context from the exception.

        Args:
            error: Exception to extract from

        Returns:
            MatchResult with error code and context
        """
