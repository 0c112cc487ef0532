"""Template Engine for pipeline configuration files."""

from .engine import TemplateEngine, render
from .parser import extract_placeholders, missing_bindings
from .types import RenderResult

__all__ = [
    "TemplateEngine",
    "RenderResult",
    "render",
    "extract_placeholders",
    "missing_bindings",
]
