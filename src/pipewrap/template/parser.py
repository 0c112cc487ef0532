"""Template parsing utilities."""

import re
from collections.abc import Iterator, Mapping
from typing import Any

from pipewrap.errors import create_error

# $$ (escaped dollar), ${name} or $name; any other ${ is malformed
PLACEHOLDER_PATTERN = re.compile(
    r"\$(?:(?P<escaped>\$)"
    r"|\{(?P<braced>[A-Za-z_][A-Za-z0-9_]*)\}"
    r"|(?P<malformed>\{[^}\s$]*\}?)"
    r"|(?P<named>[A-Za-z_][A-Za-z0-9_]*))"
)


def iter_placeholders(text: str) -> Iterator[re.Match[str]]:
    """Yield placeholder matches in left-to-right order, skipping ``$$``.

    Raises:
        TemplateError if a braced placeholder is malformed
    """
    for match in PLACEHOLDER_PATTERN.finditer(text):
        check_malformed(match)
        if match.group("escaped") is None:
            yield match


def check_malformed(match: re.Match[str]) -> None:
    """Raise TemplateError for an unterminated or invalid ``${...}``."""
    if match.group("malformed") is not None:
        raise create_error("TEMPLATE_SYNTAX", token=match.group(0))


def placeholder_name(match: re.Match[str]) -> str:
    """Return the variable name of a placeholder match."""
    return match.group("braced") or match.group("named")


def extract_placeholders(text: str) -> list[str]:
    """Extract placeholder names in order of first appearance.

    Args:
        text: Template text

    Returns:
        Unique placeholder names, e.g. ``["hosts_list", "ssh_user"]``
    """
    seen: dict[str, None] = {}
    for match in iter_placeholders(text):
        seen.setdefault(placeholder_name(match), None)
    return list(seen)


def missing_bindings(text: str, bindings: Mapping[str, Any]) -> list[str]:
    """List every placeholder without a usable binding, in template order.

    A binding whose value is None counts as missing.
    """
    return [name for name in extract_placeholders(text) if bindings.get(name) is None]


def format_value(value: Any) -> str:
    """Convert a bound value to template text.

    Booleans render lowercase so that playbooks and inventories read them as
    YAML/INI booleans.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
