"""External command runner."""

from .runner import Command, ExternalStepRunner, format_command

__all__ = ["ExternalStepRunner", "Command", "format_command"]
