"""Helpers shared by the pipelines."""

import shlex
import shutil
from dataclasses import dataclass
from pathlib import Path

from pipewrap.engine import StepContext
from pipewrap.types import Failure, StepResult, Success


@dataclass(frozen=True)
class GitSource:
    """A git repository to clone: URL, branch and optional ssh key."""

    url: str
    branch: str = ""
    ssh_key: str = ""

    def clone_command(self, target: str | Path) -> list[str]:
        command = ["git", "clone"]
        if self.branch:
            command += ["--branch", self.branch]
        return command + [self.url, str(target)]

    def env(self) -> dict[str, str]:
        """Environment for the clone; never prompts for credentials."""
        env = {"GIT_TERMINAL_PROMPT": "0"}
        if self.ssh_key:
            key = shlex.quote(str(Path(self.ssh_key).expanduser()))
            env["GIT_SSH_COMMAND"] = f"ssh -i {key} -o IdentitiesOnly=yes"
        return env


def clone(context: StepContext, source: GitSource, target: Path) -> StepResult:
    """Clone ``source`` into an empty ``target`` directory."""
    if target.exists():
        shutil.rmtree(target)
    target.parent.mkdir(parents=True, exist_ok=True)
    return context.runner.run(source.clone_command(target), env=source.env())


def repository_name(url: str) -> str:
    """Last path segment of a git URL without ``.git``."""
    name = url.rstrip("/").rsplit("/", 1)[-1].rsplit(":", 1)[-1]
    return name.removesuffix(".git")


def stash(source: Path, destination: Path, what: str) -> StepResult:
    """Copy a file produced by one step where a later step expects it."""
    if not source.is_file():
        return Failure(1, f"{what} not found: {source}")
    destination.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(source, destination)
    return Success(str(destination))


def with_message(result: StepResult, message: str) -> StepResult:
    """Prefix a failure message, leaving successes untouched."""
    if isinstance(result, Failure):
        return Failure(result.exit_code, f"{message}\n{result.message}", result.error)
    return result
