"""Synchronous runner for external command-line tools."""

import copy
import logging
import os
import shlex
import subprocess
import time
from collections.abc import Mapping, Sequence
from pathlib import Path

from pipewrap.errors import create_error
from pipewrap.logging import StepLogger
from pipewrap.types import Failure, StepResult, Success

logger = logging.getLogger(__name__)

Command = str | Sequence[str]

EXIT_NOT_FOUND = 127
EXIT_NOT_EXECUTABLE = 126


def format_command(command: Command) -> str:
    """Printable form of a command."""
    if isinstance(command, str):
        return command
    return shlex.join(str(part) for part in command)


class ExternalStepRunner:
    """Run one external command and map its exit status to a StepResult.

    A string command runs through the shell, the way a CI ``sh`` step does;
    a sequence runs without a shell. Calls block until the process exits and
    are never retried.
    """

    def __init__(
        self,
        env: Mapping[str, str] | None = None,
        logger: StepLogger | None = None,
        shell: str = "/bin/sh",
    ):
        """Initialize runner.

        Args:
            env: Environment entries added to every command
            logger: Optional step logger for command events
            shell: Shell used for string commands
        """
        self._env = dict(env or {})
        self._logger = logger
        self._shell = shell

    def with_logger(self, step_logger: StepLogger | None) -> "ExternalStepRunner":
        """Return a copy that reports to ``step_logger``."""
        runner = copy.copy(self)
        runner._logger = step_logger
        return runner

    def run(
        self,
        command: Command,
        cwd: str | Path | None = None,
        *,
        env: Mapping[str, str] | None = None,
    ) -> StepResult:
        """Execute ``command`` and wait for it.

        Args:
            command: Shell string or argument list
            cwd: Working directory
            env: Extra environment entries for this call

        Returns:
            Success(stdout) on exit status 0, otherwise
            Failure(exit status, stderr or stdout)
        """
        display = format_command(command)
        process_env = os.environ.copy()
        process_env.update(self._env)
        if env:
            process_env.update(env)

        if self._logger:
            self._logger.command().executing(display, str(cwd) if cwd else None)
        logger.debug("Executing %s (cwd=%s)", display, cwd)

        started = time.perf_counter()
        try:
            if isinstance(command, str):
                completed = subprocess.run(
                    command,
                    shell=True,
                    executable=self._shell,
                    cwd=str(cwd) if cwd else None,
                    env=process_env,
                    capture_output=True,
                    text=True,
                    errors="replace",
                    check=False,
                )
            else:
                completed = subprocess.run(
                    [str(part) for part in command],
                    cwd=str(cwd) if cwd else None,
                    env=process_env,
                    capture_output=True,
                    text=True,
                    errors="replace",
                    check=False,
                )
        except FileNotFoundError as e:
            error = create_error(
                "TOOL_NOT_FOUND",
                command=display,
                detail=str(e),
                exit_code=EXIT_NOT_FOUND,
            )
            self._finished(display, EXIT_NOT_FOUND, str(e), started)
            return Failure(EXIT_NOT_FOUND, error.message, error)
        except OSError as e:
            error = create_error(
                "TOOL_FAILED",
                command=display,
                output=str(e),
                exit_code=EXIT_NOT_EXECUTABLE,
            )
            self._finished(display, EXIT_NOT_EXECUTABLE, str(e), started)
            return Failure(EXIT_NOT_EXECUTABLE, error.message, error)

        output = (completed.stdout or "") + (completed.stderr or "")
        self._finished(display, completed.returncode, output, started)

        if completed.returncode == 0:
            return Success(completed.stdout or "")

        message = (completed.stderr or "").strip() or (completed.stdout or "").strip()
        if not message:
            message = f"'{display}' exited with status {completed.returncode}"
        return Failure(completed.returncode, message)

    def run_all(
        self,
        commands: Sequence[Command],
        cwd: str | Path | None = None,
        *,
        env: Mapping[str, str] | None = None,
    ) -> StepResult:
        """Run commands in order, stopping at the first failure.

        Returns:
            The first Failure, or the last Success (an empty Success when
            ``commands`` is empty)
        """
        result: StepResult = Success()
        for command in commands:
            result = self.run(command, cwd, env=env)
            if isinstance(result, Failure):
                return result
        return result

    def output(
        self,
        command: Command,
        cwd: str | Path | None = None,
        *,
        env: Mapping[str, str] | None = None,
    ) -> str:
        """Run ``command`` and return its stripped stdout.

        Raises:
            ExternalToolFailure if the command exits non-zero
        """
        result = self.run(command, cwd, env=env)
        if isinstance(result, Failure):
            if result.error is not None:
                raise result.error
            raise create_error(
                "TOOL_FAILED",
                command=format_command(command),
                exit_code=result.exit_code,
                output=result.message,
            )
        return result.output.strip()

    def _finished(self, display: str, exit_code: int, output: str, started: float) -> None:
        if self._logger:
            duration_ms = int((time.perf_counter() - started) * 1000)
            self._logger.command().finished(display, exit_code, output, duration_ms)
