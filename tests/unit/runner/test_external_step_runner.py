"""Unit tests for ExternalStepRunner.

These start real processes with POSIX tools (sh, printf, false).
"""

import io

import pytest

from pipewrap.errors import ExternalToolFailure
from pipewrap.logging import LogConfig, PipelineLogger
from pipewrap.runner import ExternalStepRunner, format_command
from pipewrap.types import Failure, LogLevel, Success


@pytest.fixture
def runner() -> ExternalStepRunner:
    return ExternalStepRunner()


class TestRun:
    """Exit status to StepResult mapping."""

    def test_success_captures_stdout(self, runner):
        result = runner.run(["printf", "hello"])
        assert result == Success("hello")
        assert result.ok

    def test_failure_carries_exit_code_and_stderr(self, runner):
        result = runner.run("echo broken >&2; exit 3")
        assert isinstance(result, Failure)
        assert result.exit_code == 3
        assert result.message == "broken"

    def test_failure_falls_back_to_stdout(self, runner):
        result = runner.run("echo only-stdout; exit 1")
        assert result.message == "only-stdout"

    def test_silent_failure_names_command(self, runner):
        result = runner.run(["false"])
        assert result.exit_code == 1
        assert result.message == "'false' exited with status 1"

    def test_missing_executable(self, runner):
        result = runner.run(["pipewrap-no-such-tool-xyz", "--version"])
        assert isinstance(result, Failure)
        assert result.exit_code == 127
        assert isinstance(result.error, ExternalToolFailure)
        assert result.error.code == "TOOL_NOT_FOUND"

    def test_cwd(self, runner, tmp_path):
        (tmp_path / "marker.txt").write_text("x")
        result = runner.run(["ls"], cwd=tmp_path)
        assert "marker.txt" in result.output

    def test_env_layers(self, tmp_path):
        runner = ExternalStepRunner(env={"A": "base", "B": "base"})
        result = runner.run('printf "%s-%s" "$A" "$B"', env={"B": "call"})
        assert result.output == "base-call"

    def test_string_runs_through_shell(self, runner):
        result = runner.run("printf one && printf two")
        assert result.output == "onetwo"

    def test_sequence_is_not_shell_expanded(self, runner):
        result = runner.run(["printf", "%s", "$HOME"])
        assert result.output == "$HOME"

    def test_undecodable_output_still_succeeds(self, runner):
        result = runner.run("printf '\\377\\376 ok'; exit 0")
        assert isinstance(result, Success)
        assert result.output.endswith(" ok")

    def test_undecodable_stderr_keeps_exit_code(self, runner):
        result = runner.run("printf 'caf\\351' >&2; exit 4")
        assert isinstance(result, Failure)
        assert result.exit_code == 4
        assert result.message.startswith("caf")


class TestRunAll:
    """Command lists stop at the first failure."""

    def test_stops_at_first_failure(self, runner, tmp_path):
        marker = tmp_path / "after"
        result = runner.run_all([["true"], ["false"], ["touch", str(marker)]])
        assert isinstance(result, Failure)
        assert not marker.exists()

    def test_returns_last_success(self, runner):
        assert runner.run_all([["printf", "a"], ["printf", "b"]]) == Success("b")

    def test_empty_list(self, runner):
        assert runner.run_all([]) == Success()


class TestOutput:
    """Stripped stdout or a raised error."""

    def test_output_stripped(self, runner):
        assert runner.output("echo '  value  '") == "value"

    def test_output_raises_on_failure(self, runner):
        with pytest.raises(ExternalToolFailure) as exc_info:
            runner.output("echo nope >&2; exit 2")
        assert exc_info.value.exit_code == 2
        assert exc_info.value.detail == "nope"


class TestLogging:
    """Commands are reported to the step logger."""

    def test_with_logger_reports_commands(self):
        stream = io.StringIO()
        logger = PipelineLogger(LogConfig(level=LogLevel.DEBUG, output=stream))
        step_logger = logger.run("p", "run-1").step("s", 1, 1)
        base = ExternalStepRunner()
        bound = base.with_logger(step_logger)
        bound.run(["printf", "logged"])
        assert "$ printf logged" in stream.getvalue()
        assert "logged" in stream.getvalue()
        assert bound is not base


def test_format_command_quotes():
    assert format_command(["echo", "a b"]) == "echo 'a b'"
    assert format_command("echo $x") == "echo $x"
