"""Command line entry point."""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path

from pipewrap.config import ConfigLoader, PipewrapConfig
from pipewrap.errors import ErrorCategory, MissingParameter, PipelineError
from pipewrap.logging import LogConfig, PipelineLogger
from pipewrap.pipelines import PIPELINES, get_pipeline
from pipewrap.template import TemplateEngine
from pipewrap.types import LogFormat, LogLevel

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


def _pairs(values: list[str] | None, option: str) -> dict[str, str]:
    pairs: dict[str, str] = {}
    for item in values or []:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"{option} expects KEY=VALUE, got '{item}'")
        pairs[key] = value
    return pairs


def _load_config(args: argparse.Namespace) -> PipewrapConfig:
    return ConfigLoader().load(args.config)


def _make_logger(args: argparse.Namespace, config: PipewrapConfig) -> PipelineLogger:
    return PipelineLogger(
        LogConfig(
            level=LogLevel(args.log_level) if args.log_level else config.logging.level,
            format=LogFormat(args.log_format) if args.log_format else config.logging.format,
            show_output=config.logging.show_output,
        )
    )


def _report(error: PipelineError) -> None:
    if isinstance(error, MissingParameter):
        for name in error.names:
            print(f"{name} is undefined for current job run", file=sys.stderr)
    print(f"error: {error.message}", file=sys.stderr)
    if error.detail:
        print(error.detail, file=sys.stderr)
    if error.suggestion:
        print(error.suggestion, file=sys.stderr)


def cmd_list(args: argparse.Namespace) -> int:
    for name, pipeline_cls in PIPELINES.items():
        print(f"{name}\t{pipeline_cls.description}")
    return EXIT_OK


def cmd_params(args: argparse.Namespace) -> int:
    pipeline = get_pipeline(args.pipeline)(config=_load_config(args))
    print(pipeline.schema().to_yaml(), end="")
    return EXIT_OK


def cmd_render(args: argparse.Namespace) -> int:
    template = Path(args.template).read_text()
    bindings = _pairs(args.bind, "--bind")
    engine = TemplateEngine()
    if args.output:
        engine.render_to_file(template, bindings, args.output)
    else:
        print(engine.render(template, bindings).text, end="")
    return EXIT_OK


def cmd_run(args: argparse.Namespace) -> int:
    config = _load_config(args)
    pipeline = get_pipeline(args.pipeline)(
        config=config,
        logger=_make_logger(args, config),
        workspace=args.workspace,
    )
    environ = {**os.environ, **_pairs(args.param, "--param")}
    outcome = pipeline.run(environ)

    if args.json:
        print(json.dumps(outcome.to_dict(), indent=2))
    elif not outcome.ready:
        print(
            "Pipeline parameters were successfully injected. "
            f"Set them and run again (see 'pipewrap params {args.pipeline}')."
        )
    elif outcome.result is not None and outcome.result.artifacts:
        print("Artifacts:")
        for artifact in outcome.result.artifacts:
            print(f"  {artifact}")
    return EXIT_OK if outcome.succeeded else EXIT_FAILED


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pipewrap", description="Render configuration templates and run tool pipelines"
    )
    parser.add_argument("--config", help="Path to a pipewrap.yaml configuration file.")
    parser.add_argument(
        "--workspace",
        help="Directory used for clones, rendered files, and artifacts.",
    )
    parser.add_argument("--log-format", choices=[f.value for f in LogFormat])
    parser.add_argument("--log-level", choices=[level.value for level in LogLevel])
    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="List available pipelines")
    list_parser.set_defaults(func=cmd_list)

    params_parser = subparsers.add_parser("params", help="Show a pipeline's parameters as YAML")
    params_parser.add_argument("pipeline")
    params_parser.set_defaults(func=cmd_params)

    render_parser = subparsers.add_parser("render", help="Render a template file")
    render_parser.add_argument("template", help="Template file with $name placeholders.")
    render_parser.add_argument("--bind", action="append", metavar="NAME=VALUE")
    render_parser.add_argument("--output", help="Write the result here instead of stdout.")
    render_parser.set_defaults(func=cmd_render)

    run_parser = subparsers.add_parser("run", help="Run a pipeline")
    run_parser.add_argument("pipeline")
    run_parser.add_argument(
        "--param",
        action="append",
        metavar="NAME=VALUE",
        help="Parameter value, overrides the environment.",
    )
    run_parser.add_argument("--json", action="store_true", help="Print the run result as JSON.")
    run_parser.set_defaults(func=cmd_run)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return args.func(args)
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))
    except PipelineError as e:
        _report(e)
        if e.category in (ErrorCategory.PARAMETER, ErrorCategory.CONFIG):
            return EXIT_USAGE
        return EXIT_FAILED
    except OSError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_FAILED


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
