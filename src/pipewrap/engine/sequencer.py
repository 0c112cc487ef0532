"""Fail-fast sequencer for pipeline steps."""

import logging
from collections.abc import Sequence
from contextlib import ExitStack
from datetime import datetime
from pathlib import Path

from pipewrap.errors import ErrorFactory, get_error_factory
from pipewrap.logging import PipelineLogger, RunLogger, StepLogger
from pipewrap.runner import ExternalStepRunner
from pipewrap.types import Failure, RunState, RunStatus, StepResult, StepStatus

from .types import ExecutionResult, Step, StepContext, StepRecord, generate_run_id

logger = logging.getLogger(__name__)


class WorkflowSequencer:
    """
    Run steps strictly in order and stop at the first failure.

    State machine:
    1. Pending -> Running(0) on start
    2. Success of step i -> Running(i + 1), or Succeeded after the last step
    3. Failure of step i -> Failed(i, reason); remaining steps never run
    4. Succeeded and Failed are absorbing: run() returns the stored result

    Resources registered on the StepContext are released before run()
    returns, whatever the outcome.
    """

    def __init__(
        self,
        pipeline: str,
        steps: Sequence[Step],
        workspace: str | Path = ".",
        runner: ExternalStepRunner | None = None,
        logger: PipelineLogger | None = None,
        error_factory: ErrorFactory | None = None,
        run_id: str | None = None,
    ):
        """Initialize sequencer.

        Args:
            pipeline: Pipeline name used in logs and errors
            steps: Ordered steps
            workspace: Working directory handed to steps
            runner: Runner handed to steps (defaults to ExternalStepRunner())
            logger: Optional logger
            error_factory: Converts exceptions raised by actions
            run_id: Run identifier (generated if omitted)
        """
        self.pipeline = pipeline
        self.steps = list(steps)
        self.workspace = Path(workspace)
        self.run_id = run_id or generate_run_id()
        self._runner = runner or ExternalStepRunner()
        self._logger = logger
        self._error_factory = error_factory or get_error_factory()
        self._state = RunState.pending()
        self._result: ExecutionResult | None = None

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def result(self) -> ExecutionResult | None:
        return self._result

    def run(self) -> ExecutionResult:
        """Execute the steps.

        Returns:
            ExecutionResult with the terminal state
        """
        if self._result is not None:
            return self._result

        started_at = datetime.now()
        run_logger = self._logger.run(self.pipeline, self.run_id) if self._logger else None
        records = [StepRecord(name=step.name) for step in self.steps]
        if run_logger:
            run_logger.started(len(self.steps))

        resources = ExitStack()
        context = StepContext(
            run_id=self.run_id,
            pipeline=self.pipeline,
            workspace=self.workspace,
            runner=self._runner,
            resources=resources,
        )
        try:
            self._execute_steps(context, records, run_logger)
        finally:
            # Release scoped resources before reporting the outcome
            self._release(resources, run_logger)

        completed_at = datetime.now()
        duration_ms = int((completed_at - started_at).total_seconds() * 1000)

        error = None
        artifacts = list(context.artifacts)
        if self._state.status == RunStatus.FAILED:
            error = self._state.reason
            # No partial artifacts from a failed run
            artifacts = []
            if run_logger:
                run_logger.failed(error or "unknown error", duration_ms)
        elif run_logger:
            run_logger.completed(duration_ms, len(self.steps))

        self._result = ExecutionResult(
            run_id=self.run_id,
            pipeline=self.pipeline,
            state=self._state,
            started_at=started_at,
            completed_at=completed_at,
            duration_ms=duration_ms,
            steps=records,
            outputs=dict(context.outputs),
            artifacts=artifacts,
            error=error,
        )
        return self._result

    def _execute_steps(
        self,
        context: StepContext,
        records: list[StepRecord],
        run_logger: RunLogger | None,
    ) -> None:
        total = len(self.steps)
        if total == 0:
            self._state = RunState.succeeded()
            return

        for index, step in enumerate(self.steps):
            self._state = RunState.running(index)
            record = records[index]
            step_logger = run_logger.step(step.name, index + 1, total) if run_logger else None

            result = self._execute_step(step, context, record, step_logger)

            if isinstance(result, Failure):
                reason = (
                    f"Step {index + 1}/{total} '{step.name}' failed with exit status "
                    f"{result.exit_code}: {result.message}"
                )
                self._state = RunState.failed(index, reason)
                for skipped in records[index + 1 :]:
                    skipped.status = StepStatus.NOT_RUN
                logger.debug("%s: %s", self.pipeline, reason)
                return

        self._state = RunState.succeeded()

    def _execute_step(
        self,
        step: Step,
        context: StepContext,
        record: StepRecord,
        step_logger: StepLogger | None,
    ) -> StepResult:
        record.status = StepStatus.RUNNING
        record.started_at = datetime.now()
        context.logger = step_logger
        context.runner = self._runner.with_logger(step_logger)
        if step_logger:
            step_logger.started()

        try:
            result = step.action(context)
        except Exception as e:
            error = self._error_factory.from_exception(e, pipeline=self.pipeline, step=step.name)
            exit_code = error.exit_code if error.exit_code is not None else 1
            result = Failure(exit_code, error.message, error)

        record.completed_at = datetime.now()
        record.duration_ms = int((record.completed_at - record.started_at).total_seconds() * 1000)
        record.result = result

        if isinstance(result, Failure):
            record.status = StepStatus.FAILED
            if step_logger:
                step_logger.failed(result.exit_code, result.message, record.duration_ms)
        else:
            record.status = StepStatus.COMPLETED
            if step_logger:
                step_logger.completed(record.duration_ms)
        return result

    def _release(self, resources: ExitStack, run_logger: RunLogger | None) -> None:
        """Close the run's exit stack; a failing release is reported, not raised."""
        try:
            resources.close()
        except Exception as e:
            logger.exception("%s: releasing run resources failed", self.pipeline)
            if run_logger:
                run_logger.error(f"Releasing run resources failed: {e}")
