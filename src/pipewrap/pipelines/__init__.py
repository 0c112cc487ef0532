"""Pipeline registry."""

from pipewrap.errors import create_error

from .base import Pipeline, PipelineOutcome
from .common import GitSource
from .golang_docker import GolangDockerPipeline, GolangDockerSettings
from .script_runner import ScriptRunnerPipeline, ScriptRunnerSettings
from .zabbix_agent import ZabbixAgentPipeline, ZabbixAgentSettings

PIPELINES: dict[str, type[Pipeline]] = {
    ScriptRunnerPipeline.name: ScriptRunnerPipeline,
    ZabbixAgentPipeline.name: ZabbixAgentPipeline,
    GolangDockerPipeline.name: GolangDockerPipeline,
}


def get_pipeline(name: str) -> type[Pipeline]:
    """Look up a pipeline class by name.

    Raises:
        PipelineError(PIPELINE_NOT_FOUND) for unknown names
    """
    try:
        return PIPELINES[name]
    except KeyError:
        raise create_error(
            "PIPELINE_NOT_FOUND", name=name, available=", ".join(sorted(PIPELINES))
        ) from None


__all__ = [
    "PIPELINES",
    "get_pipeline",
    "Pipeline",
    "PipelineOutcome",
    "GitSource",
    "ScriptRunnerPipeline",
    "ScriptRunnerSettings",
    "ZabbixAgentPipeline",
    "ZabbixAgentSettings",
    "GolangDockerPipeline",
    "GolangDockerSettings",
]
