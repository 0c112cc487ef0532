"""pipewrap configuration data models.

Defaults reproduce the constants the pipelines were written with; a config
file overrides any of them.
"""

from dataclasses import dataclass, field

from pipewrap.types import LogFormat, LogLevel


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration."""

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.COLORED
    show_output: bool = True


@dataclass(frozen=True)
class ScriptRunnerConfig:
    """Defaults for the clone-and-run-script pipeline."""

    git_url: str = "https://github.com/alexanderbazhenoff/various-scripts.git"
    git_branch: str = "master"
    script_path: str = "network/get_dhcpd_leases/get_dhcpd_leases.py"
    execution_host: str = ""  # blank = run locally
    git_ssh_key: str = ""
    interpreter: str = "python3"


@dataclass(frozen=True)
class ZabbixAgentConfig:
    """Defaults for the Zabbix agent install pipeline."""

    ansible_git_url: str = "https://github.com/alexanderbazhenoff/ansible-collection-linux.git"
    ansible_git_branch: str = "main"
    git_ssh_key: str = ""
    ansible_bin_dir: str = ""  # blank = ansible from PATH
    role_name: str = "alexanderbazhenoff.linux.zabbix_agent"
    agent_versions: tuple[str, ...] = ("5.0", "4.0")
    known_hosts: str = "~/.ssh/known_hosts"


@dataclass(frozen=True)
class GolangDockerConfig:
    """Defaults for the Go build/test/package pipeline."""

    git_url: str = "https://github.com/golang/example.git"
    project_path: str = "example/outyet"
    post_test_command: str = "curl http://127.0.0.1:80"
    base_image: str = "alpine:latest"
    port_mapping: str = "80:8080"
    docker_bin: str = "docker"
    work_dir: str = "/app"


@dataclass(frozen=True)
class PipewrapConfig:
    """Complete pipewrap configuration."""

    workspace: str = ".pipewrap"
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    script_runner: ScriptRunnerConfig = field(default_factory=ScriptRunnerConfig)
    zabbix_agent: ZabbixAgentConfig = field(default_factory=ZabbixAgentConfig)
    golang_docker: GolangDockerConfig = field(default_factory=GolangDockerConfig)


SECTIONS: dict[str, type] = {
    "logging": LoggingConfig,
    "script_runner": ScriptRunnerConfig,
    "zabbix_agent": ZabbixAgentConfig,
    "golang_docker": GolangDockerConfig,
}
