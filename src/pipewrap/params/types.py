"""Parameter definition and pre-flight outcome types."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from pipewrap.errors import create_error
from pipewrap.types import ParameterType

TRUE_VALUES = frozenset({"true", "yes", "y", "1", "on"})
FALSE_VALUES = frozenset({"false", "no", "n", "0", "off", ""})


def parse_bool(value: Any) -> bool:
    """Parse a boolean parameter value.

    Raises:
        ValueError: If value is not a recognised boolean
    """
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise ValueError(f"not a boolean: {value!r}")


@dataclass(frozen=True)
class ParameterDefinition:
    """A named pipeline parameter as declared to the operator."""

    name: str
    type: ParameterType = ParameterType.STRING
    description: str = ""
    default: Any = None
    choices: tuple[str, ...] = ()
    required: bool = False
    trim: bool = True

    def __post_init__(self) -> None:
        if self.type == ParameterType.CHOICE and not self.choices:
            raise ValueError(f"Choice parameter '{self.name}' declares no choices")

    @property
    def effective_default(self) -> Any:
        """Default applied when the parameter is absent."""
        if self.default is not None:
            return self.default
        if self.type == ParameterType.BOOLEAN:
            return False
        if self.type == ParameterType.CHOICE:
            return self.choices[0]
        return ""

    def coerce(self, raw: Any) -> Any:
        """Convert a raw (environment) value to the parameter's type.

        Raises:
            PipelineError(PARAMETER_INVALID) on values of the wrong type
        """
        if raw is None:
            raw = self.effective_default

        if self.type == ParameterType.BOOLEAN:
            try:
                return parse_bool(raw)
            except ValueError as e:
                raise create_error("PARAMETER_INVALID", name=self.name, detail=str(e)) from e

        value = str(raw)
        if self.trim:
            value = value.strip()

        # A blank required choice is reported by the missing-parameter check
        blank_required = self.required and not value
        if self.type == ParameterType.CHOICE and value not in self.choices and not blank_required:
            raise create_error(
                "PARAMETER_INVALID",
                name=self.name,
                detail=f"'{value}' is not one of: {', '.join(self.choices)}",
            )
        return value

    def describe(self) -> dict[str, Any]:
        """Declarative description (name, type, default, description, choices)."""
        data: dict[str, Any] = {
            "name": self.name,
            "type": self.type.value,
            "description": self.description,
            "required": self.required,
        }
        if self.type == ParameterType.CHOICE:
            data["choices"] = list(self.choices)
        elif self.type != ParameterType.PASSWORD and self.default is not None:
            data["default"] = self.default
        return data


@dataclass(frozen=True)
class Ready:
    """All parameters resolved; ``values`` is read-only."""

    values: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    @property
    def ready(self) -> bool:
        return True


@dataclass(frozen=True)
class NotReady:
    """Parameters were declared but not supplied; the run must halt.

    This is the first-run handshake: the operator re-invokes the pipeline
    with values for ``schema.parameters``.
    """

    schema: Any  # ParameterSchema
    absent: tuple[str, ...] = ()
    message: str = "Pipeline parameters were declared. Supply values and run again."

    @property
    def ready(self) -> bool:
        return False


PreflightResult = Ready | NotReady
