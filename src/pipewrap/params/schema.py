"""Parameter schema and the pre-flight check."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

import yaml

from pipewrap.errors import create_error

from .types import NotReady, ParameterDefinition, PreflightResult, Ready


@dataclass(frozen=True)
class ParameterSchema:
    """The set of parameters a pipeline accepts."""

    pipeline: str
    parameters: tuple[ParameterDefinition, ...]
    handshake: bool = True

    def __post_init__(self) -> None:
        names = [p.name for p in self.parameters]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate parameters in '{self.pipeline}': {duplicates}")

    @classmethod
    def of(
        cls, pipeline: str, parameters: Iterable[ParameterDefinition], handshake: bool = True
    ) -> "ParameterSchema":
        return cls(pipeline=pipeline, parameters=tuple(parameters), handshake=handshake)

    @property
    def names(self) -> list[str]:
        return [p.name for p in self.parameters]

    def get(self, name: str) -> ParameterDefinition | None:
        for parameter in self.parameters:
            if parameter.name == name:
                return parameter
        return None

    def check(self, environ: Mapping[str, str]) -> PreflightResult:
        """Pre-flight check of supplied parameter values.

        1. With ``handshake`` set, any declared name absent from ``environ``
           yields NotReady: the run halts and expects re-invocation.
        2. Absent names otherwise take their defaults.
        3. Values are trimmed and coerced to their declared types.
        4. Blank required values raise one MissingParameter naming all of
           them, in declaration order.

        Args:
            environ: Supplied values (usually the process environment)

        Returns:
            Ready(values) or NotReady(schema)

        Raises:
            MissingParameter if required values are blank
            PipelineError(PARAMETER_INVALID) on values of the wrong type
        """
        absent = tuple(p.name for p in self.parameters if p.name not in environ)
        if absent and self.handshake:
            return NotReady(schema=self, absent=absent)

        values: dict[str, Any] = {}
        missing: list[str] = []
        for parameter in self.parameters:
            value = parameter.coerce(environ.get(parameter.name))
            if parameter.required and isinstance(value, str) and not value.strip():
                missing.append(parameter.name)
            values[parameter.name] = value

        if missing:
            raise create_error(
                "MISSING_PARAMETER",
                missing=", ".join(missing),
                names=missing,
                pipeline=self.pipeline,
            )

        return Ready(values)

    def describe(self) -> list[dict[str, Any]]:
        """Declarative description of every parameter."""
        return [p.describe() for p in self.parameters]

    def to_yaml(self) -> str:
        """Parameter schema as a YAML document."""
        return yaml.safe_dump(
            {"pipeline": self.pipeline, "parameters": self.describe()},
            sort_keys=False,
            default_flow_style=False,
        )
