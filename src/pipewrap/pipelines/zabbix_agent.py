"""Install and customize the Zabbix agent with an Ansible role.

Renders a playbook and an inventory from templates, builds the Ansible
collection from its git repository and runs the playbook against the hosts.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pipewrap.engine import Step, StepContext
from pipewrap.params import ParameterDefinition, ParameterSchema
from pipewrap.types import Failure, ParameterType, StepResult, Success

from .base import Pipeline
from .common import GitSource, clone, with_message

PLAYBOOK_TEMPLATE = """\
---
- hosts: all
  become: true
  become_method: sudo
  tasks:
    - name: Include zabbix_agent role
      ansible.builtin.include_role:
        name: $role_name
      vars:
        agent_version: "$agent_version"
        install_v2_agent: $install_v2_agent
        customize_agent: $customize_agent
        customize_agent_only: $customize_agent_only
        clean_install: $clean_install
        force_install_agent_v1: $force_install_agent_v1
"""

PASSIVE_SERVERS_TEMPLATE = """\
        zabbix_servers_passive: "$servers_passive"
"""

ACTIVE_SERVERS_TEMPLATE = """\
        zabbix_servers_active: "$servers_active"
"""

INVENTORY_TEMPLATE = """\
[all]
$hosts_list
[all:vars]
ansible_connection=ssh
ansible_become_user=root
ansible_ssh_common_args='-o StrictHostKeyChecking=no'
ansible_ssh_user=$ssh_user
ansible_ssh_pass=$ssh_password
ansible_become_pass=$ssh_become_password
"""

PLAYBOOK_FILE = "execute.yml"
INVENTORY_FILE = "inventory.ini"


@dataclass(frozen=True)
class ZabbixAgentSettings:
    """Resolved values for one agent install run."""

    hosts: tuple[str, ...]
    ssh_login: str
    ssh_password: str
    ssh_sudo_password: str
    agent_version: str
    source: GitSource
    install_agent_v2: bool = True
    customize_agent: bool = True
    customize_agent_only: bool = False
    clean_install: bool = True
    passive_servers: str = ""
    active_servers: str = ""
    debug: bool = False
    role_name: str = "alexanderbazhenoff.linux.zabbix_agent"
    ansible_bin_dir: str = ""
    known_hosts: str = "~/.ssh/known_hosts"

    def playbook_template(self) -> str:
        """Playbook template with the server sections that have values."""
        template = PLAYBOOK_TEMPLATE
        if self.passive_servers:
            template += PASSIVE_SERVERS_TEMPLATE
        if self.active_servers:
            template += ACTIVE_SERVERS_TEMPLATE
        return template

    def playbook_bindings(self) -> dict[str, Any]:
        bindings: dict[str, Any] = {
            "role_name": self.role_name,
            "agent_version": self.agent_version,
            "install_v2_agent": self.install_agent_v2,
            "customize_agent": self.customize_agent,
            "customize_agent_only": self.customize_agent_only,
            "clean_install": self.clean_install,
            "force_install_agent_v1": not self.install_agent_v2,
        }
        if self.passive_servers:
            bindings["servers_passive"] = self.passive_servers
        if self.active_servers:
            bindings["servers_active"] = self.active_servers
        return bindings

    def inventory_bindings(self) -> dict[str, Any]:
        return {
            "hosts_list": "\n".join(self.hosts),
            "ssh_user": self.ssh_login,
            "ssh_password": self.ssh_password,
            "ssh_become_password": self.ssh_sudo_password,
        }

    def tool(self, name: str) -> str:
        """Ansible executable, from ``ansible_bin_dir`` when set."""
        if not self.ansible_bin_dir:
            return name
        return str(Path(self.ansible_bin_dir).expanduser() / name)


class ZabbixAgentPipeline(Pipeline):
    """Wrapper for the zabbix_agent Ansible role."""

    name = "zabbix-agent"
    description = "Install and customize Zabbix agent on remote hosts with Ansible"

    def schema(self) -> ParameterSchema:
        defaults = self.config.zabbix_agent
        return ParameterSchema.of(
            self.name,
            [
                ParameterDefinition(
                    "IP_LIST", description="Space separated IP or DNS list.", required=True
                ),
                ParameterDefinition(
                    "SSH_LOGIN",
                    description="Login for SSH connection (the same for all hosts).",
                    required=True,
                ),
                ParameterDefinition(
                    "SSH_PASSWORD",
                    type=ParameterType.PASSWORD,
                    description="SSH password (the same for all hosts).",
                    required=True,
                    trim=False,
                ),
                ParameterDefinition(
                    "SSH_SUDO_PASSWORD",
                    type=ParameterType.PASSWORD,
                    description=(
                        "SSH sudo password or root password (the same for all hosts). "
                        "If blank SSH_PASSWORD will be used."
                    ),
                    trim=False,
                ),
                ParameterDefinition(
                    "INSTALL_AGENT_V2",
                    type=ParameterType.BOOLEAN,
                    description="Install Zabbix agent v2 when possible.",
                    default=True,
                ),
                ParameterDefinition(
                    "CUSTOMIZE_AGENT",
                    type=ParameterType.BOOLEAN,
                    description="Configure Zabbix agent config for service discovery.",
                    default=True,
                ),
                ParameterDefinition(
                    "CUSTOMIZE_AGENT_ONLY",
                    type=ParameterType.BOOLEAN,
                    description="Configure Zabbix agent config for service discovery without install.",
                    default=False,
                ),
                ParameterDefinition(
                    "ZABBIX_AGENT_VERSION",
                    type=ParameterType.CHOICE,
                    description="Zabbix agent version.",
                    choices=tuple(defaults.agent_versions),
                    required=True,
                ),
                ParameterDefinition(
                    "CLEAN_INSTALL",
                    type=ParameterType.BOOLEAN,
                    description="Remove old versions of Zabbix agent with configs first.",
                    default=True,
                ),
                ParameterDefinition(
                    "CUSTOM_PASSIVE_SERVERS_IPS",
                    description=(
                        "Custom Zabbix servers passive IP(s), comma separated. "
                        "Leave blank for the role defaults."
                    ),
                ),
                ParameterDefinition(
                    "CUSTOM_ACTIVE_SERVERS_IPS",
                    description=(
                        "Custom Zabbix servers active IP(s) and port(s), e.g. A.B.C.D:port, "
                        "comma separated. Leave blank for the role defaults."
                    ),
                ),
                ParameterDefinition(
                    "ANSIBLE_GIT_URL",
                    description="Git URL of the Ansible project with the zabbix_agent role.",
                    default=defaults.ansible_git_url,
                    required=True,
                ),
                ParameterDefinition(
                    "ANSIBLE_GIT_BRANCH",
                    description="Git branch of the Ansible project.",
                    default=defaults.ansible_git_branch,
                    required=True,
                ),
                ParameterDefinition(
                    "DEBUG_MODE",
                    type=ParameterType.BOOLEAN,
                    description="Run ansible-playbook with -vvvv.",
                    default=False,
                ),
            ],
        )

    def notices(self, values: Mapping[str, Any]) -> list[str]:
        if not values["SSH_SUDO_PASSWORD"].strip():
            return ["SSH_SUDO_PASSWORD wasn't set, will be taken from SSH_PASSWORD."]
        return []

    def settings(self, values: Mapping[str, Any]) -> ZabbixAgentSettings:
        defaults = self.config.zabbix_agent
        sudo_password = values["SSH_SUDO_PASSWORD"]
        if not sudo_password.strip():
            sudo_password = values["SSH_PASSWORD"]
        return ZabbixAgentSettings(
            hosts=tuple(values["IP_LIST"].split()),
            ssh_login=values["SSH_LOGIN"],
            ssh_password=values["SSH_PASSWORD"],
            ssh_sudo_password=sudo_password,
            agent_version=values["ZABBIX_AGENT_VERSION"],
            install_agent_v2=values["INSTALL_AGENT_V2"],
            customize_agent=values["CUSTOMIZE_AGENT"],
            customize_agent_only=values["CUSTOMIZE_AGENT_ONLY"],
            clean_install=values["CLEAN_INSTALL"],
            passive_servers=values["CUSTOM_PASSIVE_SERVERS_IPS"],
            active_servers=values["CUSTOM_ACTIVE_SERVERS_IPS"],
            source=GitSource(
                url=values["ANSIBLE_GIT_URL"],
                branch=values["ANSIBLE_GIT_BRANCH"],
                ssh_key=defaults.git_ssh_key,
            ),
            debug=values["DEBUG_MODE"],
            role_name=defaults.role_name,
            ansible_bin_dir=defaults.ansible_bin_dir,
            known_hosts=defaults.known_hosts,
        )

    def secrets(self, settings: ZabbixAgentSettings) -> list[str]:
        return [settings.ssh_password, settings.ssh_sudo_password]

    def build_steps(self, settings: ZabbixAgentSettings) -> list[Step]:
        def ansible_dir(context: StepContext) -> Path:
            return context.workspace / "ansible"

        def clean_known_hosts(context: StepContext) -> StepResult:
            known_hosts = Path(settings.known_hosts).expanduser()
            if not known_hosts.is_file():
                context.info(f"{known_hosts} not found, nothing to clean")
                return Success()
            for host in settings.hosts:
                names = [host]
                resolved = context.runner.run(["getent", "hosts", host])
                if resolved.ok and resolved.output.split():
                    address = resolved.output.split()[0]
                    if address != host:
                        names.append(address)
                for name in names:
                    result = context.runner.run(["ssh-keygen", "-f", str(known_hosts), "-R", name])
                    if not result.ok:
                        return result
            return Success()

        def clone_ansible(context: StepContext) -> StepResult:
            return clone(context, settings.source, ansible_dir(context))

        def install_collection(context: StepContext) -> StepResult:
            cwd = ansible_dir(context)
            built = context.runner.run([settings.tool("ansible-galaxy"), "collection", "build"], cwd)
            archives = sorted(p.name for p in cwd.glob("*.tar.gz"))
            if built.ok and not archives:
                built = Failure(1, f"No collection archive was built in {cwd}")
            if built.ok:
                built = context.runner.run(
                    [settings.tool("ansible-galaxy"), "collection", "install", *archives, "-f"], cwd
                )
            return with_message(
                built, "There was an error building and installing ansible collection."
            )

        def render_files(context: StepContext) -> StepResult:
            cwd = ansible_dir(context)
            if settings.passive_servers:
                context.info(f"Found custom passive zabbix server(s): {settings.passive_servers}")
            if settings.active_servers:
                context.info(f"Found custom active zabbix server(s): {settings.active_servers}")
            playbook = self.templates.render_to_file(
                settings.playbook_template(), settings.playbook_bindings(), cwd / PLAYBOOK_FILE
            )
            inventory = self.templates.render_to_file(
                INVENTORY_TEMPLATE, settings.inventory_bindings(), cwd / INVENTORY_FILE, mode=0o600
            )
            context.callback(inventory.unlink, missing_ok=True)
            context.info(f"Running from:\n{playbook.read_text()}{'-' * 32}")
            return Success(str(playbook))

        def run_playbook(context: StepContext) -> StepResult:
            command = [
                settings.tool("ansible-playbook"),
                "-i",
                INVENTORY_FILE,
                PLAYBOOK_FILE,
            ]
            if settings.debug:
                command.append("-vvvv")
            result = context.runner.run(
                command, ansible_dir(context), env={"ANSIBLE_FORCE_COLOR": "1"}
            )
            if result.ok and result.output:
                context.info(result.output)
            return with_message(result, "Running ansible failed.")

        return [
            Step("Clean known hosts", clean_known_hosts, "Remove host fingerprints"),
            Step("Clone Ansible project", clone_ansible, settings.source.url),
            Step("Install collection", install_collection, "ansible-galaxy build and install"),
            Step("Render playbook", render_files, "Write execute.yml and inventory.ini"),
            Step("Run playbook", run_playbook, "ansible-playbook"),
        ]
