"""Types for the workflow sequencer."""

import uuid
from collections.abc import Callable
from contextlib import AbstractContextManager, ExitStack
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, TypeVar

from pipewrap.logging import StepLogger
from pipewrap.runner import ExternalStepRunner
from pipewrap.types import RunState, RunStatus, StepResult, StepStatus

T = TypeVar("T")


@dataclass
class StepContext:
    """
    Runtime context handed to every step action.

    Holds values passed between steps, collected artifacts and the exit stack
    that releases scoped resources when the run ends.
    """

    run_id: str
    pipeline: str
    workspace: Path
    runner: ExternalStepRunner
    resources: ExitStack
    outputs: dict[str, Any] = field(default_factory=dict)
    artifacts: list[Path] = field(default_factory=list)
    logger: StepLogger | None = None

    def enter(self, manager: AbstractContextManager[T]) -> T:
        """Acquire a context manager until the run ends."""
        return self.resources.enter_context(manager)

    def callback(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        """Register a release callback that runs when the run ends."""
        self.resources.callback(fn, *args, **kwargs)

    def add_artifact(self, path: str | Path) -> Path:
        """Record a file collected as a run artifact."""
        path = Path(path)
        self.artifacts.append(path)
        return path

    def info(self, message: str) -> None:
        if self.logger:
            self.logger.info(message)

    def warning(self, message: str) -> None:
        if self.logger:
            self.logger.warning(message)


StepAction = Callable[[StepContext], StepResult]


@dataclass(frozen=True)
class Step:
    """One external-tool invocation with a pass/fail outcome."""

    name: str
    action: StepAction
    description: str | None = None


@dataclass
class StepRecord:
    """What happened to one step of a run."""

    name: str
    status: StepStatus = StepStatus.PENDING
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int | None = None
    result: StepResult | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "status": self.status.value,
            "duration_ms": self.duration_ms,
        }
        if self.result is not None and not self.result.ok:
            data["exit_code"] = self.result.exit_code
            data["error"] = self.result.message
        return data


@dataclass
class ExecutionResult:
    """Result of a pipeline run."""

    # Identity
    run_id: str
    pipeline: str

    # Status
    state: RunState

    # Timing
    started_at: datetime
    completed_at: datetime | None = None
    duration_ms: int | None = None

    # Steps
    steps: list[StepRecord] = field(default_factory=list)

    # Outputs
    outputs: dict[str, Any] = field(default_factory=dict)
    artifacts: list[Path] = field(default_factory=list)

    # Error (if failed)
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.state.status == RunStatus.SUCCEEDED

    @property
    def steps_completed(self) -> int:
        return sum(1 for s in self.steps if s.status == StepStatus.COMPLETED)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "run_id": self.run_id,
            "pipeline": self.pipeline,
            "state": self.state.to_dict(),
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_ms": self.duration_ms,
            "steps": [s.to_dict() for s in self.steps],
            "artifacts": [str(p) for p in self.artifacts],
            "error": self.error,
            "steps_completed": self.steps_completed,
        }


def generate_run_id() -> str:
    """Generate a unique run ID."""
    return f"run-{uuid.uuid4().hex[:12]}"
