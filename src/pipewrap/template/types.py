"""Template Engine type definitions."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class RenderResult:
    """Result of template rendering."""

    text: str  # Rendered artifact
    placeholders: list[str] = field(default_factory=list)  # Names substituted, in order
