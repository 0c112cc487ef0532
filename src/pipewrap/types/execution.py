"""Step outcome and run state types."""

from dataclasses import dataclass
from typing import Any

from .enums import RunStatus


@dataclass(frozen=True)
class Success:
    """A step that finished with exit status 0."""

    output: str = ""

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    """A step that finished with a non-zero exit status.

    ``error`` carries the structured PipelineError when the failure came from
    a raised error rather than a process exit.
    """

    exit_code: int
    message: str
    error: Any = None

    @property
    def ok(self) -> bool:
        return False


StepResult = Success | Failure


@dataclass(frozen=True)
class RunState:
    """Position of a run in the sequencer state machine.

    ``step_index`` is 0-based; ``step_number`` is the 1-based position shown
    to operators.
    """

    status: RunStatus
    step_index: int | None = None
    reason: str | None = None

    @classmethod
    def pending(cls) -> "RunState":
        return cls(RunStatus.PENDING)

    @classmethod
    def running(cls, step_index: int) -> "RunState":
        return cls(RunStatus.RUNNING, step_index=step_index)

    @classmethod
    def succeeded(cls) -> "RunState":
        return cls(RunStatus.SUCCEEDED)

    @classmethod
    def failed(cls, step_index: int, reason: str) -> "RunState":
        return cls(RunStatus.FAILED, step_index=step_index, reason=reason)

    @property
    def step_number(self) -> int | None:
        return None if self.step_index is None else self.step_index + 1

    @property
    def is_terminal(self) -> bool:
        return self.status in (RunStatus.SUCCEEDED, RunStatus.FAILED)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "step_index": self.step_index,
            "step_number": self.step_number,
            "reason": self.reason,
        }
