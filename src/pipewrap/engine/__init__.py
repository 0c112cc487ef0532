"""Workflow sequencer for pipeline runs."""

from .sequencer import WorkflowSequencer
from .types import (
    ExecutionResult,
    Step,
    StepAction,
    StepContext,
    StepRecord,
    generate_run_id,
)

__all__ = [
    "WorkflowSequencer",
    "Step",
    "StepAction",
    "StepContext",
    "StepRecord",
    "ExecutionResult",
    "generate_run_id",
]
