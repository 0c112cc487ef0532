"""Error matchers for converting exceptions to PipelineErrors."""

import subprocess
from typing import Any

from .errors import ErrorMatcher, MatchResult


class ExecutableNotFoundMatcher(ErrorMatcher):
    """Matches a missing executable or script."""

    def matches(self, error: Exception) -> bool:
        return isinstance(error, FileNotFoundError)

    def extract(self, error: Exception) -> MatchResult:
        filename = getattr(error, "filename", None)
        return MatchResult(
            code="TOOL_NOT_FOUND",
            context={"command": filename or "unknown", "detail": str(error), "exit_code": 127},
        )


class CalledProcessMatcher(ErrorMatcher):
    """Matches subprocess.CalledProcessError raised by check=True calls."""

    def matches(self, error: Exception) -> bool:
        return isinstance(error, subprocess.CalledProcessError)

    def extract(self, error: Exception) -> MatchResult:
        assert isinstance(error, subprocess.CalledProcessError)
        command = error.cmd if isinstance(error.cmd, str) else " ".join(map(str, error.cmd))
        output = error.stderr or error.output or ""
        if isinstance(output, bytes):
            output = output.decode(errors="replace")
        return MatchResult(
            code="TOOL_FAILED",
            context={
                "command": command,
                "exit_code": error.returncode,
                "output": output.strip(),
            },
        )


class OSErrorMatcher(ErrorMatcher):
    """Matches other OS-level failures (permissions, exec format...)."""

    def matches(self, error: Exception) -> bool:
        return isinstance(error, OSError)

    def extract(self, error: Exception) -> MatchResult:
        filename = getattr(error, "filename", None)
        return MatchResult(
            code="TOOL_FAILED",
            context={
                "command": filename or "unknown",
                "exit_code": 126,
                "output": str(error),
            },
        )


class DefaultMatcher(ErrorMatcher):
    """Fallback matcher for anything else."""

    def matches(self, error: Exception) -> bool:
        return True

    def extract(self, error: Exception) -> MatchResult:
        context: dict[str, Any] = {
            "error_type": type(error).__name__,
            "error": str(error),
        }
        return MatchResult(code="INTERNAL_ERROR", context=context)


class ErrorMatcherChain:
    """Chain of matchers tried in order. First match wins."""

    def __init__(self, matchers: list[ErrorMatcher] | None = None):
        """Initialize matcher chain.

        Args:
            matchers: Matchers to use (defaults to the built-in chain)
        """
        self._matchers = matchers or [
            ExecutableNotFoundMatcher(),
            CalledProcessMatcher(),
            OSErrorMatcher(),
        ]
        self._default = DefaultMatcher()

    def add(self, matcher: ErrorMatcher) -> None:
        """Insert a matcher ahead of the built-in ones."""
        self._matchers.insert(0, matcher)

    def match(self, error: Exception) -> MatchResult:
        """Find the first matcher that handles the error.

        Args:
            error: Exception to match

        Returns:
            MatchResult from the first matching matcher
        """
        for matcher in self._matchers:
            if matcher.matches(error):
                return matcher.extract(error)
        return self._default.extract(error)
