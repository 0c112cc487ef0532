"""pipewrap logger - Hierarchical colored logging for pipeline runs."""

import json
import sys
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, TextIO

from pipewrap.logging.colors import (
    BLUE,
    CYAN,
    GREEN,
    LIGHT_BLUE,
    MAGENTA,
    RED,
    RESET,
    YELLOW,
)
from pipewrap.logging.redactor import Redactor
from pipewrap.types import LogFormat, LogLevel

SEPARATOR = "-" * 90


@dataclass
class LogConfig:
    """Logger configuration."""

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.COLORED
    show_output: bool = True
    truncate_at: int = 2000
    components: dict[str, bool] = field(default_factory=dict)
    output: TextIO | None = None  # None = current sys.stdout

    def __post_init__(self) -> None:
        """Initialize default components if not provided."""
        if not self.components:
            self.components = {
                "run": True,
                "step": True,
                "command": True,
                "params": True,
            }


class PipelineLogger:
    """Main logger facade. Creates run-scoped loggers."""

    def __init__(self, config: LogConfig | None = None, redactor: Redactor | None = None):
        """Initialize logger with configuration.

        Args:
            config: Logger configuration (defaults to LogConfig())
            redactor: Secret masking (defaults to an empty Redactor)
        """
        self.config = config or LogConfig()
        self.redactor = redactor or Redactor()
        self._level_order = {
            LogLevel.DEBUG: 0,
            LogLevel.INFO: 1,
            LogLevel.WARN: 2,
            LogLevel.ERROR: 3,
        }

    def run(self, pipeline: str, run_id: str) -> "RunLogger":
        """Get a logger scoped to a pipeline run.

        Args:
            pipeline: Pipeline name
            run_id: Run identifier

        Returns:
            RunLogger instance
        """
        return RunLogger(self, pipeline, run_id)

    def add_secret(self, value: str | None) -> None:
        """Mask ``value`` in every following log line."""
        self.redactor.add(value)

    @contextmanager
    def secrets(self, values: Iterable[str | None]) -> Iterator[None]:
        """Mask ``values`` only until the block exits.

        Values that were already registered stay registered afterwards.
        """
        added = [value for value in values if self.redactor.add(value)]
        try:
            yield
        finally:
            for value in added:
                self.redactor.discard(value)

    def configure(self, config: LogConfig) -> None:
        """Replace configuration."""
        self.config = config

    def _should_log(self, level: LogLevel) -> bool:
        return self._level_order.get(level, 0) >= self._level_order.get(self.config.level, 1)

    def _log(
        self,
        level: LogLevel,
        component: str,
        message: str,
        context: dict[str, Any] | None = None,
        pipeline: str | None = None,
    ) -> None:
        """Internal logging method.

        Args:
            level: Log level
            component: Component name (run, step, command, params)
            message: Log message
            context: Additional context data
            pipeline: Pipeline name used as line prefix
        """
        if not self._should_log(level):
            return

        if not self.config.components.get(component, True):
            return

        message = self.redactor.redact(message)
        context = self.redactor.redact(context) if context else context

        if self.config.format == LogFormat.JSON:
            self._log_json(level, component, message, context, pipeline)
        else:
            self._log_colored(level, component, message, context, pipeline)

    def _log_json(
        self,
        level: LogLevel,
        component: str,
        message: str,
        context: dict[str, Any] | None,
        pipeline: str | None,
    ) -> None:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": level.value,
            "component": component,
            "message": message,
        }
        if pipeline:
            log_entry["pipeline"] = pipeline
        if context:
            log_entry.update(context)

        print(json.dumps(log_entry, default=str), file=self.config.output or sys.stdout)

    def _log_colored(
        self,
        level: LogLevel,
        component: str,
        message: str,
        context: dict[str, Any] | None,
        pipeline: str | None,
    ) -> None:
        level_colors = {
            LogLevel.DEBUG: BLUE,
            LogLevel.INFO: GREEN,
            LogLevel.WARN: YELLOW,
            LogLevel.ERROR: RED,
        }

        color = level_colors.get(level, RESET)
        component_color = {
            "run": MAGENTA,
            "step": CYAN,
            "command": LIGHT_BLUE,
        }.get(component, RESET)

        # Format: <pipeline> | LEVEL | [COMPONENT] message
        prefix = f"{pipeline} | " if pipeline else ""
        output = (
            f"{prefix}{color}{level.value}{RESET} | "
            f"{component_color}[{component.upper()}]{RESET} {message}"
        )

        if context and context.get("output") and self.config.show_output:
            text = str(context["output"])
            if len(text) > self.config.truncate_at:
                text = text[: self.config.truncate_at] + "..."
            output += f"\n{text}"

        print(output, file=self.config.output or sys.stdout)


class RunLogger:
    """Logger for run-level events."""

    def __init__(self, parent: PipelineLogger, pipeline: str, run_id: str):
        """Initialize run logger.

        Args:
            parent: Parent PipelineLogger instance
            pipeline: Pipeline name
            run_id: Run identifier
        """
        self.parent = parent
        self.pipeline = pipeline
        self.run_id = run_id

    def _context(self, event: str, **extra: Any) -> dict[str, Any]:
        context = {"run_id": self.run_id, "event": event}
        context.update(extra)
        return context

    def log(self, level: LogLevel, component: str, message: str, **extra: Any) -> None:
        """Log a free-form message attached to this run."""
        self.parent._log(
            level, component, message, self._context("message", **extra), self.pipeline
        )

    def debug(self, message: str, **extra: Any) -> None:
        self.log(LogLevel.DEBUG, "run", message, **extra)

    def info(self, message: str, **extra: Any) -> None:
        self.log(LogLevel.INFO, "run", message, **extra)

    def warning(self, message: str, **extra: Any) -> None:
        self.log(LogLevel.WARN, "run", message, **extra)

    def error(self, message: str, **extra: Any) -> None:
        self.log(LogLevel.ERROR, "run", message, **extra)

    def started(self, step_count: int) -> None:
        """Log run start."""
        self.parent._log(
            LogLevel.INFO,
            "run",
            f"Pipeline '{self.pipeline}' started ({step_count} steps)",
            self._context("run_started", step_count=step_count),
            self.pipeline,
        )

    def completed(self, duration_ms: int, step_count: int) -> None:
        """Log run completion with summary."""
        duration_s = duration_ms / 1000
        self.parent._log(
            LogLevel.INFO,
            "run",
            f"Pipeline '{self.pipeline}' succeeded ({step_count} steps, {duration_s:.2f}s)",
            self._context("run_succeeded", duration_ms=duration_ms, step_count=step_count),
            self.pipeline,
        )

    def failed(self, reason: str, duration_ms: int) -> None:
        """Log run failure."""
        duration_s = duration_ms / 1000
        self.parent._log(
            LogLevel.ERROR,
            "run",
            f"Pipeline '{self.pipeline}' failed ({duration_s:.2f}s): {reason}",
            self._context("run_failed", duration_ms=duration_ms, reason=reason),
            self.pipeline,
        )

    def parameters_injected(self, names: list[str]) -> None:
        """Log the first-run parameter handshake."""
        self.parent._log(
            LogLevel.INFO,
            "params",
            "Pipeline parameters were declared. Supply values and run again.",
            self._context("parameters_injected", parameters=names),
            self.pipeline,
        )

    def step(self, name: str, number: int, total: int) -> "StepLogger":
        """Get a logger scoped to a step."""
        return StepLogger(self, name, number, total)


class StepLogger:
    """Logger for step-level events."""

    def __init__(self, parent: RunLogger, name: str, number: int, total: int):
        self.parent = parent
        self.name = name
        self.number = number
        self.total = total

    @property
    def root(self) -> PipelineLogger:
        return self.parent.parent

    def _context(self, event: str, **extra: Any) -> dict[str, Any]:
        return self.parent._context(event, step=self.name, step_number=self.number, **extra)

    def _log(self, level: LogLevel, component: str, message: str, context: dict[str, Any]) -> None:
        self.root._log(level, component, message, context, self.parent.pipeline)

    def started(self) -> None:
        """Log step start."""
        self._log(
            LogLevel.INFO,
            "step",
            f"{SEPARATOR}\nStep {self.number}/{self.total} '{self.name}' started",
            self._context("step_started"),
        )

    def completed(self, duration_ms: int) -> None:
        """Log step success."""
        self._log(
            LogLevel.INFO,
            "step",
            f"Step '{self.name}' completed ({duration_ms / 1000:.2f}s)",
            self._context("step_completed", duration_ms=duration_ms),
        )

    def failed(self, exit_code: int, message: str, duration_ms: int) -> None:
        """Log step failure."""
        self._log(
            LogLevel.ERROR,
            "step",
            f"Step '{self.name}' failed with exit status {exit_code}: {message}",
            self._context(
                "step_failed", exit_code=exit_code, error=message, duration_ms=duration_ms
            ),
        )

    def info(self, message: str) -> None:
        self._log(LogLevel.INFO, "step", message, self._context("message"))

    def warning(self, message: str) -> None:
        self._log(LogLevel.WARN, "step", message, self._context("message"))

    def command(self) -> "CommandLogger":
        """Get a logger for external commands within this step."""
        return CommandLogger(self)


class CommandLogger:
    """Logger for external command events."""

    def __init__(self, parent: StepLogger):
        self.parent = parent

    def executing(self, command: str, cwd: str | None = None) -> None:
        """Log command start."""
        context = self.parent._context("command_executing", command=command)
        if cwd:
            context["cwd"] = cwd
        self.parent._log(LogLevel.DEBUG, "command", f"$ {command}", context)

    def finished(self, command: str, exit_code: int, output: str, duration_ms: int) -> None:
        """Log command exit status and captured output."""
        level = LogLevel.DEBUG if exit_code == 0 else LogLevel.ERROR
        context = self.parent._context(
            "command_finished",
            command=command,
            exit_code=exit_code,
            duration_ms=duration_ms,
            output=output,
        )
        self.parent._log(level, "command", f"exit status {exit_code}: {command}", context)
