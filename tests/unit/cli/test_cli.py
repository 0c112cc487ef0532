"""Unit tests for the pipewrap command line."""

import json
from pathlib import Path

import pytest
import yaml

from pipewrap.cli import EXIT_FAILED, EXIT_OK, EXIT_USAGE, build_parser, main
from pipewrap.types import Failure
from tests.mocks import Call, FakeRunner

pytestmark = pytest.mark.cli

SCRIPT = "network/get_dhcpd_leases/get_dhcpd_leases.py"


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "pipewrap.yaml"
    path.write_text(f"workspace: {tmp_path / 'runs'}\nlogging:\n  level: ERROR\n")
    return path


@pytest.fixture
def fake(monkeypatch) -> FakeRunner:
    """Route every pipeline's commands to a FakeRunner."""

    def checkout(call: Call) -> None:
        script = Path(call.command[-1]) / SCRIPT
        script.parent.mkdir(parents=True)
        script.write_text("print('ok')\n")

    runner = FakeRunner().on("git clone", effect=checkout)
    monkeypatch.setattr("pipewrap.pipelines.base.ExternalStepRunner", lambda: runner)
    return runner


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_list(capsys):
    assert main(["list"]) == EXIT_OK
    names = [line.split("\t")[0] for line in capsys.readouterr().out.splitlines()]
    assert names == ["script-runner", "zabbix-agent", "golang-docker"]


def test_params_yaml(capsys, config_file):
    assert main(["--config", str(config_file), "params", "zabbix-agent"]) == EXIT_OK
    data = yaml.safe_load(capsys.readouterr().out)
    assert data["pipeline"] == "zabbix-agent"
    version = next(p for p in data["parameters"] if p["name"] == "ZABBIX_AGENT_VERSION")
    assert version["choices"] == ["5.0", "4.0"]


def test_unknown_pipeline(capsys, config_file):
    assert main(["--config", str(config_file), "params", "nope"]) == EXIT_USAGE
    err = capsys.readouterr().err
    assert "Unknown pipeline: nope" in err
    assert "Available pipelines:" in err


def test_invalid_config(capsys, tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("build_node: master\n")
    assert main(["--config", str(path), "list"]) == EXIT_OK
    assert main(["--config", str(path), "params", "script-runner"]) == EXIT_USAGE
    assert "Unknown configuration key: build_node" in capsys.readouterr().err


class TestRender:
    """pipewrap render."""

    def test_render_to_stdout(self, capsys, tmp_path):
        template = tmp_path / "inventory.tmpl"
        template.write_text("[all]\n$hosts_list\nansible_ssh_user=$ssh_user\n")
        code = main(["render", str(template), "--bind", "hosts_list=10.0.0.5", "--bind", "ssh_user=deploy"])
        assert code == EXIT_OK
        assert capsys.readouterr().out == "[all]\n10.0.0.5\nansible_ssh_user=deploy\n"

    def test_render_to_file(self, tmp_path):
        template = tmp_path / "Dockerfile.tmpl"
        template.write_text("COPY $appBinaryName /usr/bin\n")
        output = tmp_path / "out" / "Dockerfile"
        assert main(["render", str(template), "--bind", "appBinaryName=outyet", "--output", str(output)]) == 0
        assert output.read_text() == "COPY outyet /usr/bin\n"

    def test_value_may_contain_equals(self, capsys, tmp_path):
        template = tmp_path / "t"
        template.write_text("$args")
        main(["render", str(template), "--bind", "args=-o StrictHostKeyChecking=no"])
        assert capsys.readouterr().out == "-o StrictHostKeyChecking=no"

    def test_unbound_variable(self, capsys, tmp_path):
        template = tmp_path / "t"
        template.write_text("user=$ssh_user")
        assert main(["render", str(template)]) == EXIT_FAILED
        assert "Template variable 'ssh_user' is not bound" in capsys.readouterr().err

    def test_bad_binding(self, tmp_path):
        template = tmp_path / "t"
        template.write_text("x")
        with pytest.raises(SystemExit) as exc_info:
            main(["render", str(template), "--bind", "novalue"])
        assert exc_info.value.code == 2


class TestRun:
    """pipewrap run."""

    def test_handshake_exits_zero(self, capsys, config_file, fake, monkeypatch):
        for name in ("IP_LIST", "SSH_LOGIN", "SSH_PASSWORD"):
            monkeypatch.delenv(name, raising=False)
        assert main(["--config", str(config_file), "run", "zabbix-agent"]) == EXIT_OK
        assert "Pipeline parameters were successfully injected" in capsys.readouterr().out
        assert fake.calls == []

    def test_missing_parameters_exit_two(self, capsys, config_file, fake):
        params = [
            "IP_LIST=",
            "SSH_LOGIN=deploy",
            "SSH_PASSWORD=",
            "SSH_SUDO_PASSWORD=",
            "INSTALL_AGENT_V2=true",
            "CUSTOMIZE_AGENT=true",
            "CUSTOMIZE_AGENT_ONLY=false",
            "ZABBIX_AGENT_VERSION=5.0",
            "CLEAN_INSTALL=true",
            "CUSTOM_PASSIVE_SERVERS_IPS=",
            "CUSTOM_ACTIVE_SERVERS_IPS=",
            "ANSIBLE_GIT_URL=https://example.com/a.git",
            "ANSIBLE_GIT_BRANCH=main",
            "DEBUG_MODE=false",
        ]
        argv = ["--config", str(config_file), "run", "zabbix-agent"]
        for param in params:
            argv += ["--param", param]
        assert main(argv) == EXIT_USAGE
        err = capsys.readouterr().err
        assert "IP_LIST is undefined for current job run" in err
        assert "SSH_PASSWORD is undefined for current job run" in err
        assert fake.calls == []

    def test_successful_run_json(self, capsys, config_file, fake, tmp_path):
        argv = ["--config", str(config_file), "run", "script-runner", "--param", "GIT_BRANCH=main", "--json"]
        assert main(argv) == EXIT_OK
        data = json.loads(capsys.readouterr().out)
        assert data["pipeline"] == "script-runner"
        assert data["result"]["state"]["status"] == "succeeded"
        assert fake.commands[0].startswith("git clone --branch main ")
        assert str(tmp_path / "runs" / "script-runner") in fake.commands[0]

    def test_failed_run_exit_one(self, capsys, config_file, fake):
        fake.on("python3", Failure(2, "No such file or directory"))
        assert main(["--config", str(config_file), "run", "script-runner"]) == EXIT_FAILED

    def test_workspace_option(self, config_file, fake, tmp_path):
        workspace = tmp_path / "elsewhere"
        main(["--config", str(config_file), "--workspace", str(workspace), "run", "script-runner"])
        assert (workspace / "script-runner").is_dir()

    def test_log_options(self, capsys, config_file, fake):
        argv = ["--config", str(config_file), "--log-format", "json", "--log-level", "INFO", "run", "script-runner"]
        main(argv)
        lines = [line for line in capsys.readouterr().out.splitlines() if line.startswith("{")]
        assert json.loads(lines[0])["event"] == "run_started"

    def test_json_output_masks_secrets(self, capsys, config_file, fake, tmp_path):
        config_file.write_text(
            config_file.read_text() + f"zabbix_agent:\n  known_hosts: {tmp_path / 'no_known_hosts'}\n"
        )
        fake.on("ansible-galaxy collection build", Failure(1, "permission denied for s3cretPW"))
        params = {
            "IP_LIST": "10.0.0.5",
            "SSH_LOGIN": "deploy",
            "SSH_PASSWORD": "s3cretPW",
            "SSH_SUDO_PASSWORD": "",
            "INSTALL_AGENT_V2": "true",
            "CUSTOMIZE_AGENT": "true",
            "CUSTOMIZE_AGENT_ONLY": "false",
            "ZABBIX_AGENT_VERSION": "5.0",
            "CLEAN_INSTALL": "true",
            "CUSTOM_PASSIVE_SERVERS_IPS": "",
            "CUSTOM_ACTIVE_SERVERS_IPS": "",
            "ANSIBLE_GIT_URL": "https://example.com/a.git",
            "ANSIBLE_GIT_BRANCH": "main",
            "DEBUG_MODE": "false",
        }
        argv = ["--config", str(config_file), "run", "zabbix-agent", "--json"]
        for name, value in params.items():
            argv += ["--param", f"{name}={value}"]
        assert main(argv) == EXIT_FAILED
        out = capsys.readouterr().out
        assert "s3cretPW" not in out
        assert "permission denied for ****" in out
