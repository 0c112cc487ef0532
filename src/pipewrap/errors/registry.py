"""Error registry for creating errors from templates."""

import dataclasses
from typing import Any

from .errors import (
    ErrorCategory,
    ErrorTemplate,
    ExternalToolFailure,
    MissingParameter,
    PipelineError,
    TemplateError,
)

# Fields filled by the registry itself; context keys with these names are
# only used for message interpolation.
_RESERVED_FIELDS = {"code", "category", "message", "detail", "suggestion", "cause", "timestamp"}


class ErrorRegistry:
    """Registry of error templates. Creates errors from templates + context."""

    def __init__(self) -> None:
        """Initialize error registry with built-in templates."""
        self._templates: dict[str, ErrorTemplate] = {}
        self._load_builtin_templates()

    def get_template(self, code: str) -> ErrorTemplate | None:
        """Get template by error code.

        Args:
            code: Error code to look up

        Returns:
            ErrorTemplate if found, None otherwise
        """
        return self._templates.get(code)

    def list_codes(self) -> list[str]:
        """List all registered error codes."""
        return list(self._templates.keys())

    def register(self, template: ErrorTemplate) -> None:
        """Add or replace an error template."""
        self._templates[template.code] = template

    def create(
        self,
        code: str,
        context: dict[str, Any] | None = None,
        cause: PipelineError | None = None,
    ) -> PipelineError:
        """Create error instance from template + context.

        Context keys that match a field of the template's error class
        (``variable``, ``names``, ``exit_code``, ``step`` ...) are also set on
        the error.

        Args:
            code: Error code
            context: Context variables for template interpolation
            cause: Optional cause error

        Returns:
            PipelineError (or subclass) instance

        Raises:
            ValueError: If error code not found
        """
        template = self.get_template(code)
        if not template:
            msg = f"Unknown error code: {code}"
            raise ValueError(msg)

        context = context or {}

        message = self._interpolate(template.message_template, context)
        detail = self._interpolate(template.detail_template, context)
        suggestion = self._interpolate(template.suggestion_template, context)

        if message is None:
            message = f"Error {code}"

        field_names = {f.name for f in dataclasses.fields(template.error_class)}
        extra = {
            key: value
            for key, value in context.items()
            if key in field_names and key not in _RESERVED_FIELDS
        }

        return template.error_class(
            code=template.code,
            category=template.category,
            message=message,
            detail=detail,
            suggestion=suggestion,
            cause=cause,
            **extra,
        )

    def _interpolate(
        self,
        template: str | None,
        context: dict[str, Any],
    ) -> str | None:
        """Safe string interpolation.

        Args:
            template: Template string with {var} placeholders
            context: Context variables

        Returns:
            Interpolated string or None if template is None
        """
        if template is None:
            return None

        try:
            return template.format(**context)
        except (KeyError, IndexError):
            # Missing context variable - return template as-is
            return template

    def _load_builtin_templates(self) -> None:
        """Load hardcoded built-in templates."""
        # PARAMETER Errors
        self._templates["MISSING_PARAMETER"] = ErrorTemplate(
            code="MISSING_PARAMETER",
            category=ErrorCategory.PARAMETER,
            message_template="Missing pipeline parameters: {missing}",
            detail_template="{missing} undefined for current run",
            suggestion_template="Set the listed parameters and run again",
            error_class=MissingParameter,
        )

        self._templates["PARAMETER_INVALID"] = ErrorTemplate(
            code="PARAMETER_INVALID",
            category=ErrorCategory.PARAMETER,
            message_template="Invalid value for parameter '{name}'",
            detail_template="{detail}",
            suggestion_template="Check the parameter schema with 'pipewrap params'",
        )

        # TEMPLATE Errors
        self._templates["TEMPLATE_ERROR"] = ErrorTemplate(
            code="TEMPLATE_ERROR",
            category=ErrorCategory.TEMPLATE,
            message_template="Template variable '{variable}' is not bound",
            detail_template="Rendering stopped at the first unresolved placeholder '${variable}'",
            suggestion_template="Add '{variable}' to the variable binding",
            error_class=TemplateError,
        )

        self._templates["TEMPLATE_SYNTAX"] = ErrorTemplate(
            code="TEMPLATE_SYNTAX",
            category=ErrorCategory.TEMPLATE,
            message_template="Malformed placeholder '{token}'",
            detail_template="A braced placeholder must be '${{name}}' with a valid identifier",
            suggestion_template="Close the braces with a valid name or write '$$' for a literal dollar",
            error_class=TemplateError,
        )

        # TOOL Errors
        self._templates["TOOL_FAILED"] = ErrorTemplate(
            code="TOOL_FAILED",
            category=ErrorCategory.TOOL,
            message_template="Command failed with exit status {exit_code}: {command}",
            detail_template="{output}",
            error_class=ExternalToolFailure,
        )

        self._templates["TOOL_NOT_FOUND"] = ErrorTemplate(
            code="TOOL_NOT_FOUND",
            category=ErrorCategory.TOOL,
            message_template="Executable not found: {command}",
            detail_template="{detail}",
            suggestion_template="Install the tool or add it to PATH",
            error_class=ExternalToolFailure,
        )

        # CONFIG Errors
        self._templates["CONFIG_INVALID"] = ErrorTemplate(
            code="CONFIG_INVALID",
            category=ErrorCategory.CONFIG,
            message_template="Configuration is invalid",
            detail_template="{detail}",
            suggestion_template="Check the configuration file",
        )

        self._templates["PIPELINE_NOT_FOUND"] = ErrorTemplate(
            code="PIPELINE_NOT_FOUND",
            category=ErrorCategory.CONFIG,
            message_template="Unknown pipeline: {name}",
            suggestion_template="Available pipelines: {available}",
        )

        # SYSTEM Errors
        self._templates["INTERNAL_ERROR"] = ErrorTemplate(
            code="INTERNAL_ERROR",
            category=ErrorCategory.SYSTEM,
            message_template="Internal error: {error_type}: {error}",
        )
