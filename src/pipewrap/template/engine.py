"""Template Engine implementation."""

import logging
import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pipewrap.errors import create_error

from .parser import (
    PLACEHOLDER_PATTERN,
    check_malformed,
    extract_placeholders,
    format_value,
    missing_bindings,
)
from .types import RenderResult

logger = logging.getLogger(__name__)


class TemplateEngine:
    """Fill ``$name`` placeholders in configuration templates.

    Supports:
    - Named placeholders: $hosts_list
    - Braced placeholders: ${agent_version}
    - Escaped dollar: $$

    A '${' that does not open a valid braced name is an error.

    Does NOT support:
    - Expressions, method calls or nested property access
    - Control flow (if/for)
    """

    def render(self, template: str, bindings: Mapping[str, Any]) -> RenderResult:
        """Render a template with a variable binding.

        Single left-to-right pass: substituted values are never scanned for
        placeholders again. Bindings not referenced by the template are
        ignored.

        Args:
            template: Template text
            bindings: Placeholder name to value

        Returns:
            RenderResult with the rendered text

        Raises:
            TemplateError if a placeholder has no binding (the error names the
            first unresolved placeholder) or a braced placeholder is malformed
        """
        substituted: list[str] = []

        def replace(match: re.Match[str]) -> str:
            check_malformed(match)
            if match.group("escaped") is not None:
                return "$"
            name = match.group("braced") or match.group("named")
            value = bindings.get(name)
            if value is None:
                raise create_error("TEMPLATE_ERROR", variable=name)
            if name not in substituted:
                substituted.append(name)
            return format_value(value)

        text = PLACEHOLDER_PATTERN.sub(replace, template)
        return RenderResult(text=text, placeholders=substituted)

    def render_to_file(
        self,
        template: str,
        bindings: Mapping[str, Any],
        path: str | Path,
        mode: int | None = None,
    ) -> Path:
        """Render a template and write the artifact to ``path``.

        Args:
            template: Template text
            bindings: Placeholder name to value
            path: Destination file, parent directories are created
            mode: Optional permission bits applied before content is written

        Returns:
            Path of the written file
        """
        text = self.render(template, bindings).text
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        if mode is not None:
            path.touch(mode=mode, exist_ok=True)
            os.chmod(path, mode)
        path.write_text(text)
        logger.debug("Rendered %d bytes to %s", len(text), path)
        return path

    def validate(self, template: str, bindings: Mapping[str, Any]) -> list[str]:
        """Return every unresolved placeholder (empty if renderable)."""
        return missing_bindings(template, bindings)

    def extract_references(self, template: str) -> list[str]:
        """Extract placeholder names, e.g. "hosts=$h" -> ["h"]."""
        return extract_placeholders(template)


_default_engine = TemplateEngine()


def render(template: str, bindings: Mapping[str, Any]) -> str:
    """Render ``template`` with ``bindings`` and return the artifact text."""
    return _default_engine.render(template, bindings).text
