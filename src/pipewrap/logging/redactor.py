"""Masking of secret values in log output."""

from typing import Any


class Redactor:
    """Replaces registered secret values with a fixed marker."""

    REDACTED = "****"

    def __init__(self, secrets: list[str] | None = None) -> None:
        self._secrets: set[str] = set()
        for secret in secrets or []:
            self.add(secret)

    def add(self, secret: str | None) -> bool:
        """Register a value to mask. Blank values are ignored.

        Returns:
            True if ``secret`` was not registered before
        """
        if not secret or not secret.strip() or secret in self._secrets:
            return False
        self._secrets.add(secret)
        return True

    def discard(self, secret: str) -> None:
        """Stop masking ``secret``."""
        self._secrets.discard(secret)

    def __contains__(self, secret: object) -> bool:
        return secret in self._secrets

    def redact(self, data: Any) -> Any:
        """Recursively redact secrets in strings, dicts and lists.

        Args:
            data: Data to redact

        Returns:
            Redacted copy with secret values replaced
        """
        if not self._secrets:
            return data

        if isinstance(data, dict):
            return {key: self.redact(value) for key, value in data.items()}
        elif isinstance(data, (list, tuple)):
            return [self.redact(item) for item in data]
        elif isinstance(data, str):
            return self._redact_text(data)
        else:
            return data

    def _redact_text(self, text: str) -> str:
        # Longest first so a secret containing another is masked whole
        for secret in sorted(self._secrets, key=len, reverse=True):
            text = text.replace(secret, self.REDACTED)
        return text
