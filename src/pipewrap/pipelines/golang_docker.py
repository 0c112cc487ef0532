"""Test, build and package a Go application with Docker.

Sources are cloned and tested inside a throwaway test image; the resulting
binary is baked into a production image whose container is exported after
an optional post-test command passes.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pipewrap.engine import Step, StepContext
from pipewrap.params import ParameterDefinition, ParameterSchema
from pipewrap.types import ParameterType, StepResult, Success

from .base import Pipeline
from .common import repository_name, stash, with_message

DOCKERFILE_HEAD_TEMPLATE = """\
FROM $base_image
EXPOSE $port
"""

DOCKERFILE_TEST_TEMPLATE = """\
$dockerFileHeadText
RUN apk update && apk add --no-cache bash git make musl-dev go
ENV GOROOT /usr/lib/go
ENV GOPATH /go
ENV GOCACHE /go/.cache
RUN mkdir -p $${GOPATH}/src $${GOPATH}/bin $${GOPATH}/pkg && chmod -R 0777 /go
ENV PATH /go/bin:$$PATH
"""

DOCKERFILE_PROD_TEMPLATE = """\
$dockerFileHeadText
WORKDIR $workDir
COPY $appBinaryName /usr/bin
RUN apk update && apk add --no-cache ca-certificates && rm -rf /var/cache/apk/* && chmod 775 /usr/bin/$appBinaryName
ENTRYPOINT ["/usr/bin/$appBinaryName"]
"""

SOURCES_MOUNT = "/src"
EXPORT_FILE = "container.tar"


@dataclass(frozen=True)
class GolangDockerSettings:
    """Resolved values for one build."""

    git_url: str
    project_path: str = ""
    race_cover: bool = False
    post_test_command: str = ""
    base_image: str = "alpine:latest"
    port_mapping: str = "80:8080"
    docker_bin: str = "docker"
    work_dir: str = "/app"

    @property
    def app_binary_name(self) -> str:
        """Last segment of the project path, else the repository name."""
        path = self.project_path.strip("/")
        if path:
            return path.rsplit("/", 1)[-1]
        return repository_name(self.git_url)

    @property
    def project_dir(self) -> str:
        """Project directory relative to the sources checkout root."""
        return self.project_path.strip("/") or repository_name(self.git_url)

    @property
    def test_flags(self) -> list[str]:
        return ["-race", "-cover"] if self.race_cover else []

    @property
    def container_port(self) -> str:
        return self.port_mapping.rsplit(":", 1)[-1]


class GolangDockerPipeline(Pipeline):
    """Go application CI with Docker images."""

    name = "golang-docker"
    description = "Test and build a Go application, package it in a Docker image and export it"

    def schema(self) -> ParameterSchema:
        defaults = self.config.golang_docker
        return ParameterSchema.of(
            self.name,
            [
                ParameterDefinition(
                    "GIT_URL",
                    description="Git URL of the project to build and test.",
                    default=defaults.git_url,
                    required=True,
                ),
                ParameterDefinition(
                    "GIT_PROJECT_PATH",
                    description="Project path inside the checkout.",
                    default=defaults.project_path,
                ),
                ParameterDefinition(
                    "RACE_COVER_TEST_FLAGS",
                    type=ParameterType.BOOLEAN,
                    description=(
                        "Enable -race -cover flags for 'go test'. "
                        "Allows you to check what happens when tests fail."
                    ),
                    default=False,
                ),
                ParameterDefinition(
                    "APP_POSTTEST_COMMAND",
                    type=ParameterType.TEXT,
                    description=(
                        "Post-test shell command to ensure the app is working. "
                        "On success the artifacts are returned. Leave empty to skip post-testing."
                    ),
                    default=defaults.post_test_command,
                ),
            ],
        )

    def settings(self, values: Mapping[str, Any]) -> GolangDockerSettings:
        defaults = self.config.golang_docker
        return GolangDockerSettings(
            git_url=values["GIT_URL"],
            project_path=values["GIT_PROJECT_PATH"],
            race_cover=values["RACE_COVER_TEST_FLAGS"],
            post_test_command=values["APP_POSTTEST_COMMAND"],
            base_image=defaults.base_image,
            port_mapping=defaults.port_mapping,
            docker_bin=defaults.docker_bin,
            work_dir=defaults.work_dir,
        )

    def build_steps(self, settings: GolangDockerSettings) -> list[Step]:
        docker = settings.docker_bin
        binary = settings.app_binary_name
        workdir = f"{SOURCES_MOUNT}/{settings.project_dir}"
        head = self.templates.render(
            DOCKERFILE_HEAD_TEMPLATE,
            {"base_image": settings.base_image, "port": settings.container_port},
        ).text

        def in_test_image(context: StepContext, cwd: str, *command: str) -> list[str]:
            sources = context.workspace / "sources"
            return [
                docker, "run", "--rm",
                "-v", f"{sources}:{SOURCES_MOUNT}",
                "-w", cwd,
                context.outputs["test_image"],
                *command,
            ]  # fmt: skip

        def write_test_dockerfile(context: StepContext) -> StepResult:
            path = self.templates.render_to_file(
                DOCKERFILE_TEST_TEMPLATE,
                {"dockerFileHeadText": head},
                context.workspace / "test-image" / "Dockerfile",
            )
            return Success(str(path))

        def build_test_image(context: StepContext) -> StepResult:
            tag = f"test-image:{context.run_id}"
            result = context.runner.run(
                [docker, "build", "-t", tag, str(context.workspace / "test-image")]
            )
            if result.ok:
                context.outputs["test_image"] = tag
                context.callback(context.runner.run, [docker, "rmi", "-f", tag])
            return result

        def download_sources(context: StepContext) -> StepResult:
            (context.workspace / "sources").mkdir(parents=True, exist_ok=True)
            return context.runner.run(
                in_test_image(context, SOURCES_MOUNT, "git", "clone", settings.git_url)
            )

        def run_tests(context: StepContext) -> StepResult:
            result = context.runner.run(
                in_test_image(context, workdir, "go", "test", *settings.test_flags)
            )
            if result.ok and result.output:
                context.info(result.output)
            return with_message(
                result, "Testing failed, other stages will be skipped due to pipeline termination."
            )

        def build_binary(context: StepContext) -> StepResult:
            return context.runner.run(in_test_image(context, workdir, "go", "build"))

        def stash_binary(context: StepContext) -> StepResult:
            result = stash(
                context.workspace / "sources" / settings.project_dir / binary,
                context.workspace / "prod-image" / binary,
                "Application binary",
            )
            if result.ok:
                context.outputs["binary"] = result.output
            return result

        def write_prod_dockerfile(context: StepContext) -> StepResult:
            path = self.templates.render_to_file(
                DOCKERFILE_PROD_TEMPLATE,
                {"dockerFileHeadText": head, "workDir": settings.work_dir, "appBinaryName": binary},
                context.workspace / "prod-image" / "Dockerfile",
            )
            return Success(str(path))

        def build_prod_image(context: StepContext) -> StepResult:
            tag = f"prod-image:{context.run_id}"
            result = context.runner.run(
                [docker, "build", "-t", tag, str(context.workspace / "prod-image")]
            )
            if result.ok:
                context.outputs["prod_image"] = tag
            return result

        def start_container(context: StepContext) -> StepResult:
            result = context.runner.run(
                [
                    docker, "run", "-d",
                    "-p", settings.port_mapping,
                    "--entrypoint", f"/usr/bin/{binary}",
                    context.outputs["prod_image"],
                ]
            )  # fmt: skip
            if result.ok:
                container = result.output.strip()
                context.outputs["container"] = container
                context.callback(context.runner.run, [docker, "rm", "-f", container])
                context.info(f"Container ID to export: {container}")
            return result

        def post_test(context: StepContext) -> StepResult:
            if not settings.post_test_command.strip():
                context.info("No post-test command, skipping")
                return Success()
            result = context.runner.run(settings.post_test_command)
            return with_message(result, "Post-test command failed, no artifacts will be returned.")

        def export_container(context: StepContext) -> StepResult:
            export_dir = context.workspace / "export"
            export_dir.mkdir(parents=True, exist_ok=True)
            return context.runner.run(
                [
                    docker, "export",
                    "--output", str(export_dir / EXPORT_FILE),
                    context.outputs["container"],
                ]
            )  # fmt: skip

        def collect_artifacts(context: StepContext) -> StepResult:
            context.add_artifact(context.workspace / "export" / EXPORT_FILE)
            context.add_artifact(context.outputs["binary"])
            return Success()

        return [
            Step("Write test Dockerfile", write_test_dockerfile),
            Step("Build test image", build_test_image),
            Step("Download sources", download_sources, settings.git_url),
            Step("Testing", run_tests, " ".join(["go test", *settings.test_flags])),
            Step("Build binary", build_binary, binary),
            Step("Stash binary", stash_binary, binary),
            Step("Write production Dockerfile", write_prod_dockerfile),
            Step("Build production image", build_prod_image),
            Step("Start container", start_container, settings.port_mapping),
            Step("Post-test command", post_test, settings.post_test_command or None),
            Step("Export container", export_container, EXPORT_FILE),
            Step("Collect artifacts", collect_artifacts),
        ]
