"""Shared types for pipewrap.

Import from here rather than submodules:
    from pipewrap.types import LogLevel, RunState, Success, Failure
"""

from .enums import LogFormat, LogLevel, ParameterType, RunStatus, StepStatus
from .execution import Failure, RunState, StepResult, Success
from .validation import ValidationIssue, ValidationResult

__all__ = [
    # Enums
    "LogLevel",
    "LogFormat",
    "ParameterType",
    "RunStatus",
    "StepStatus",
    # Execution
    "Success",
    "Failure",
    "StepResult",
    "RunState",
    # Validation
    "ValidationIssue",
    "ValidationResult",
]
