"""Pipeline parameter declaration and pre-flight check."""

from .schema import ParameterSchema
from .types import NotReady, ParameterDefinition, PreflightResult, Ready, parse_bool

__all__ = [
    "ParameterSchema",
    "ParameterDefinition",
    "PreflightResult",
    "Ready",
    "NotReady",
    "parse_bool",
]
