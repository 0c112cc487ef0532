"""pipewrap logging - Hierarchical colored logging for pipeline runs."""

from .colors import BLUE, CYAN, GREEN, LIGHT_BLUE, MAGENTA, RED, RESET, YELLOW
from .logger import (
    CommandLogger,
    LogConfig,
    PipelineLogger,
    RunLogger,
    StepLogger,
)
from .redactor import Redactor

__all__ = [
    # Logger classes
    "PipelineLogger",
    "RunLogger",
    "StepLogger",
    "CommandLogger",
    "LogConfig",
    "Redactor",
    # Colors
    "RESET",
    "BLUE",
    "GREEN",
    "RED",
    "YELLOW",
    "LIGHT_BLUE",
    "CYAN",
    "MAGENTA",
]
