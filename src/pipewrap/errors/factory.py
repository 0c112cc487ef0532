"""Error factory for creating PipelineErrors from any exception type."""

from typing import Any

from .errors import PipelineError
from .matchers import ErrorMatcherChain
from .registry import ErrorRegistry


class ErrorFactory:
    """Creates PipelineErrors from codes or arbitrary exceptions."""

    def __init__(
        self,
        registry: ErrorRegistry | None = None,
        matcher_chain: ErrorMatcherChain | None = None,
    ):
        """Initialize error factory.

        Args:
            registry: Error registry (defaults to new ErrorRegistry())
            matcher_chain: Matcher chain (defaults to new ErrorMatcherChain())
        """
        self.registry = registry or ErrorRegistry()
        self.matcher_chain = matcher_chain or ErrorMatcherChain()

    def from_exception(
        self,
        error: Exception,
        pipeline: str | None = None,
        step: str | None = None,
    ) -> PipelineError:
        """Convert any exception to PipelineError.

        Args:
            error: Exception to convert
            pipeline: Optional pipeline name
            step: Optional step name

        Returns:
            PipelineError instance
        """
        if isinstance(error, PipelineError):
            return error.with_context(pipeline=pipeline, step=step)

        match_result = self.matcher_chain.match(error)

        context = match_result.context.copy()
        if pipeline:
            context["pipeline"] = pipeline
        if step:
            context["step"] = step

        return self.registry.create(code=match_result.code, context=context)

    def create(
        self,
        code: str,
        context: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> PipelineError:
        """Create PipelineError directly from code.

        Args:
            code: Error code
            context: Context variables for template interpolation
            **kwargs: Additional context variables

        Returns:
            PipelineError instance
        """
        merged_context = dict(context or {})
        merged_context.update(kwargs)

        return self.registry.create(code=code, context=merged_context)


# Convenience singleton
_default_factory: ErrorFactory | None = None


def get_error_factory() -> ErrorFactory:
    """Get default error factory singleton."""
    global _default_factory  # noqa: PLW0603
    if _default_factory is None:
        _default_factory = ErrorFactory()
    return _default_factory


def create_error(code: str, **context: Any) -> PipelineError:
    """Convenience function to create error.

    Args:
        code: Error code
        **context: Context variables for template interpolation

    Returns:
        PipelineError instance
    """
    return get_error_factory().create(code, context)
