"""Pipeline base class: pre-flight check, then the step sequence."""

import os
from abc import ABC, abstractmethod
from collections.abc import Mapping
from contextlib import nullcontext
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar

from pipewrap.config import PipewrapConfig
from pipewrap.engine import ExecutionResult, Step, WorkflowSequencer, generate_run_id
from pipewrap.logging import PipelineLogger, Redactor
from pipewrap.params import NotReady, ParameterSchema, PreflightResult
from pipewrap.runner import ExternalStepRunner
from pipewrap.template import TemplateEngine


@dataclass
class PipelineOutcome:
    """What a call to Pipeline.run produced.

    ``redactor`` holds the secrets of this run so that serialized outcomes
    are masked the same way the run's log lines were.
    """

    pipeline: str
    preflight: PreflightResult
    result: ExecutionResult | None = None
    redactor: Redactor = field(default_factory=Redactor, repr=False, compare=False)

    @property
    def ready(self) -> bool:
        return self.preflight.ready

    @property
    def succeeded(self) -> bool:
        """True for a successful run and for the not-ready handshake."""
        if self.result is None:
            return not self.ready
        return self.result.succeeded

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"pipeline": self.pipeline, "ready": self.ready}
        if isinstance(self.preflight, NotReady):
            data["message"] = self.preflight.message
            data["parameters"] = self.preflight.schema.describe()
        if self.result is not None:
            data["result"] = self.result.to_dict()
        return self.redactor.redact(data)


class Pipeline(ABC):
    """A parameterised, fail-fast sequence of external tool invocations.

    Subclasses declare their parameters, turn resolved values into an
    immutable settings object and build the ordered steps from it.
    """

    name: ClassVar[str]
    description: ClassVar[str] = ""

    def __init__(
        self,
        config: PipewrapConfig | None = None,
        runner: ExternalStepRunner | None = None,
        logger: PipelineLogger | None = None,
        workspace: str | Path | None = None,
        template_engine: TemplateEngine | None = None,
    ):
        """Initialize pipeline.

        Args:
            config: pipewrap configuration (defaults to built-in defaults)
            runner: Runner for external commands
            logger: Optional logger
            workspace: Root directory for run workspaces (defaults to config)
            template_engine: Renderer for configuration templates
        """
        self.config = config or PipewrapConfig()
        self.runner = runner or ExternalStepRunner()
        self.logger = logger
        self.workspace_root = Path(workspace or self.config.workspace)
        self.templates = template_engine or TemplateEngine()

    @abstractmethod
    def schema(self) -> ParameterSchema:
        """Parameters this pipeline accepts."""

    @abstractmethod
    def settings(self, values: Mapping[str, Any]) -> Any:
        """Immutable per-run settings built from resolved parameter values."""

    @abstractmethod
    def build_steps(self, settings: Any) -> list[Step]:
        """Ordered steps for one run."""

    def secrets(self, settings: Any) -> list[str]:
        """Values to mask in logs."""
        return []

    def notices(self, values: Mapping[str, Any]) -> list[str]:
        """Warnings about how parameter values were interpreted."""
        return []

    def workspace_for(self, run_id: str) -> Path:
        return self.workspace_root / self.name / run_id

    def run(
        self,
        environ: Mapping[str, str] | None = None,
        run_id: str | None = None,
    ) -> PipelineOutcome:
        """Pre-flight the parameters, then execute the steps.

        Args:
            environ: Parameter values (defaults to the process environment)
            run_id: Run identifier (generated if omitted)

        Returns:
            PipelineOutcome; ``result`` is None when parameters were only
            declared (first-run handshake)

        Raises:
            MissingParameter if required parameters are blank
            PipelineError(PARAMETER_INVALID) on badly typed values
        """
        environ = os.environ if environ is None else environ
        run_id = run_id or generate_run_id()
        run_logger = self.logger.run(self.name, run_id) if self.logger else None

        preflight = self.schema().check(environ)
        if isinstance(preflight, NotReady):
            if run_logger:
                run_logger.parameters_injected(list(preflight.absent))
            return PipelineOutcome(pipeline=self.name, preflight=preflight)

        settings = self.settings(preflight.values)
        secrets = list(self.secrets(settings))
        # Secrets are masked for this run only
        with self.logger.secrets(secrets) if self.logger else nullcontext():
            if run_logger:
                for notice in self.notices(preflight.values):
                    run_logger.warning(notice)

            workspace = self.workspace_for(run_id)
            workspace.mkdir(parents=True, exist_ok=True)
            sequencer = WorkflowSequencer(
                pipeline=self.name,
                steps=self.build_steps(settings),
                workspace=workspace,
                runner=self.runner,
                logger=self.logger,
                run_id=run_id,
            )
            result = sequencer.run()
        return PipelineOutcome(
            pipeline=self.name,
            preflight=preflight,
            result=result,
            redactor=Redactor(secrets),
        )
