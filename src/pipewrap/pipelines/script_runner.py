"""Clone a git repository and run a Python script from it.

The script runs in the local workspace or, when an execution host is set,
is copied there with scp and run over ssh.
"""

import posixpath
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pipewrap.engine import Step, StepContext
from pipewrap.params import ParameterDefinition, ParameterSchema
from pipewrap.types import StepResult

from .base import Pipeline
from .common import GitSource, clone, stash

REMOTE_DIR = "/tmp/pipewrap-script"


@dataclass(frozen=True)
class ScriptRunnerSettings:
    source: GitSource
    script_path: str
    execution_host: str = ""
    interpreter: str = "python3"

    @property
    def remote(self) -> bool:
        return bool(self.execution_host)


class ScriptRunnerPipeline(Pipeline):
    """Runs one script from a repository checkout."""

    name = "script-runner"
    description = "Clone a git repository and run a Python script from it"

    def schema(self) -> ParameterSchema:
        defaults = self.config.script_runner
        return ParameterSchema.of(
            self.name,
            [
                ParameterDefinition(
                    "GIT_URL",
                    description="Git URL of the repository with the script.",
                    default=defaults.git_url,
                    required=True,
                ),
                ParameterDefinition(
                    "GIT_BRANCH",
                    description="Branch to clone.",
                    default=defaults.git_branch,
                    required=True,
                ),
                ParameterDefinition(
                    "SCRIPT_PATH",
                    description="Path of the script inside the repository.",
                    default=defaults.script_path,
                    required=True,
                ),
                ParameterDefinition(
                    "EXECUTION_HOST",
                    description="ssh host to run the script on. Leave blank to run locally.",
                    default=defaults.execution_host,
                ),
                ParameterDefinition(
                    "GIT_SSH_KEY",
                    description="Private key file for cloning over ssh.",
                    default=defaults.git_ssh_key,
                ),
            ],
            handshake=False,
        )

    def settings(self, values: Mapping[str, Any]) -> ScriptRunnerSettings:
        return ScriptRunnerSettings(
            source=GitSource(
                url=values["GIT_URL"],
                branch=values["GIT_BRANCH"],
                ssh_key=values["GIT_SSH_KEY"],
            ),
            script_path=values["SCRIPT_PATH"].lstrip("/"),
            execution_host=values["EXECUTION_HOST"],
            interpreter=self.config.script_runner.interpreter,
        )

    def build_steps(self, settings: ScriptRunnerSettings) -> list[Step]:
        def clone_repository(context: StepContext) -> StepResult:
            return clone(context, settings.source, context.workspace / "repo")

        def stash_script(context: StepContext) -> StepResult:
            return stash(
                context.workspace / "repo" / settings.script_path,
                context.workspace / "stash" / settings.script_path,
                "Script",
            )

        def run_script(context: StepContext) -> StepResult:
            stash_dir = context.workspace / "stash"
            if not settings.remote:
                result = context.runner.run(
                    [settings.interpreter, f"./{settings.script_path}"], cwd=stash_dir
                )
            else:
                result = self._run_remote(context, settings)
            if result.ok and result.output:
                context.info(result.output)
            return result

        return [
            Step("Clone repository", clone_repository, settings.source.url),
            Step("Stash script", stash_script, settings.script_path),
            Step("Run script", run_script, settings.execution_host or "local"),
        ]

    def _run_remote(self, context: StepContext, settings: ScriptRunnerSettings) -> StepResult:
        host = settings.execution_host
        remote_dir = f"{REMOTE_DIR}-{context.run_id}"
        remote_script = posixpath.join(remote_dir, posixpath.basename(settings.script_path))
        local_script = context.workspace / "stash" / settings.script_path

        created = context.runner.run(["ssh", host, "mkdir", "-p", remote_dir])
        if not created.ok:
            return created
        context.callback(context.runner.run, ["ssh", host, "rm", "-rf", remote_dir])
        return context.runner.run_all(
            [
                ["scp", "-q", str(local_script), f"{host}:{remote_script}"],
                ["ssh", host, "cd", remote_dir, "&&", settings.interpreter, remote_script],
            ]
        )
