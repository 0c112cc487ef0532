"""Test doubles for pipewrap.

- FakeRunner: records commands and returns scripted results
"""

from .fake_runner import Call, FakeRunner

__all__ = ["Call", "FakeRunner"]
