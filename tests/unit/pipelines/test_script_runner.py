"""Unit tests for the script-runner pipeline."""

from pathlib import Path

import pytest

from pipewrap.errors import MissingParameter
from pipewrap.pipelines import ScriptRunnerPipeline
from pipewrap.types import Failure, RunStatus, Success
from tests.mocks import Call, FakeRunner

pytestmark = pytest.mark.pipeline

SCRIPT = "network/get_dhcpd_leases/get_dhcpd_leases.py"


def checkout(call: Call) -> None:
    script = Path(call.command[-1]) / SCRIPT
    script.parent.mkdir(parents=True)
    script.write_text("print('leases')\n")


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner().on("git clone", effect=checkout)


def workspace_of(config) -> Path:
    return Path(config.workspace) / "script-runner" / "run-test"


class TestLocal:
    """Script runs in the workspace."""

    def test_defaults_without_handshake(self, config, runner):
        outcome = ScriptRunnerPipeline(config=config, runner=runner).run({}, run_id="run-test")
        assert outcome.ready
        assert outcome.succeeded
        workspace = workspace_of(config)
        assert runner.commands == [
            "git clone --branch master "
            f"https://github.com/alexanderbazhenoff/various-scripts.git {workspace / 'repo'}",
            f"python3 ./{SCRIPT}",
        ]
        run_call = runner.calls[-1]
        assert run_call.cwd == str(workspace / "stash")
        assert (workspace / "stash" / SCRIPT).read_text() == "print('leases')\n"

    def test_script_output_logged(self, config, runner, pipeline_logger, log_stream):
        runner.on("python3", Success("192.168.1.10  aa:bb:cc:dd:ee:ff  host1\n"))
        ScriptRunnerPipeline(config=config, runner=runner, logger=pipeline_logger).run(
            {}, run_id="run-test"
        )
        assert "aa:bb:cc:dd:ee:ff" in log_stream.getvalue()

    def test_parameters_override_defaults(self, config, runner):
        environ = {"GIT_BRANCH": "develop", "GIT_URL": "git@example.com:tools.git"}
        ScriptRunnerPipeline(config=config, runner=runner).run(environ, run_id="run-test")
        assert runner.commands[0].startswith("git clone --branch develop git@example.com:tools.git ")

    def test_ssh_key_used_for_clone(self, config, runner):
        ScriptRunnerPipeline(config=config, runner=runner).run(
            {"GIT_SSH_KEY": "/keys/deploy"}, run_id="run-test"
        )
        env = runner.calls[0].env
        assert env["GIT_SSH_COMMAND"] == "ssh -i /keys/deploy -o IdentitiesOnly=yes"
        assert env["GIT_TERMINAL_PROMPT"] == "0"

    def test_missing_script_fails_stash(self, config):
        runner = FakeRunner()
        outcome = ScriptRunnerPipeline(config=config, runner=runner).run({}, run_id="run-test")
        state = outcome.result.state
        assert state.status == RunStatus.FAILED
        assert state.step_number == 2
        assert "Script not found" in state.reason
        assert not runner.called("python3")

    def test_script_failure(self, config, runner):
        runner.on("python3", Failure(1, "Traceback: PermissionError"))
        outcome = ScriptRunnerPipeline(config=config, runner=runner).run({}, run_id="run-test")
        assert outcome.result.state.step_number == 3
        assert not outcome.succeeded

    def test_blank_url_is_missing(self, config, runner):
        with pytest.raises(MissingParameter) as exc_info:
            ScriptRunnerPipeline(config=config, runner=runner).run({"GIT_URL": "  "})
        assert exc_info.value.names == ["GIT_URL"]


class TestRemote:
    """Script copied to and run on an execution host."""

    def test_scp_then_ssh_then_cleanup(self, config, runner):
        outcome = ScriptRunnerPipeline(config=config, runner=runner).run(
            {"EXECUTION_HOST": "dhcpd-server.domain"}, run_id="run-test"
        )
        assert outcome.succeeded
        local_script = workspace_of(config) / "stash" / SCRIPT
        remote_dir = "/tmp/pipewrap-script-run-test"
        assert runner.commands[1:] == [
            f"ssh dhcpd-server.domain mkdir -p {remote_dir}",
            f"scp -q {local_script} dhcpd-server.domain:{remote_dir}/get_dhcpd_leases.py",
            f"ssh dhcpd-server.domain cd {remote_dir} '&&' python3 {remote_dir}/get_dhcpd_leases.py",
            f"ssh dhcpd-server.domain rm -rf {remote_dir}",
        ]

    def test_remote_dir_removed_after_failure(self, config, runner):
        runner.on("scp", Failure(1, "Permission denied (publickey)"))
        outcome = ScriptRunnerPipeline(config=config, runner=runner).run(
            {"EXECUTION_HOST": "dhcpd-server.domain"}, run_id="run-test"
        )
        assert not outcome.succeeded
        assert runner.commands[-1] == "ssh dhcpd-server.domain rm -rf /tmp/pipewrap-script-run-test"
