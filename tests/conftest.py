"""
Pytest configuration and shared fixtures for pipewrap tests.
"""

import io
import sys
from collections.abc import Callable
from dataclasses import replace
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pipewrap.config import PipewrapConfig  # noqa: E402
from pipewrap.logging import LogConfig, PipelineLogger  # noqa: E402
from pipewrap.types import LogFormat, LogLevel  # noqa: E402
from tests.mocks import FakeRunner  # noqa: E402

# =============================================================================
# Path Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Return an empty workspace directory."""
    path = tmp_path / "workspace"
    path.mkdir()
    return path


# =============================================================================
# Logger Fixtures
# =============================================================================


@pytest.fixture
def log_stream() -> io.StringIO:
    """Capture logger output."""
    return io.StringIO()


@pytest.fixture
def pipeline_logger(log_stream: io.StringIO) -> PipelineLogger:
    """Colored DEBUG logger writing to ``log_stream``."""
    return PipelineLogger(
        LogConfig(level=LogLevel.DEBUG, format=LogFormat.COLORED, output=log_stream)
    )


# =============================================================================
# Runner and Config Fixtures
# =============================================================================


@pytest.fixture
def fake_runner() -> FakeRunner:
    """Runner double that records commands and succeeds by default."""
    return FakeRunner()


@pytest.fixture
def config(tmp_path: Path) -> PipewrapConfig:
    """Default configuration rooted in tmp_path."""
    defaults = PipewrapConfig()
    return replace(
        defaults,
        workspace=str(tmp_path / "runs"),
        zabbix_agent=replace(defaults.zabbix_agent, known_hosts=str(tmp_path / "known_hosts")),
    )


@pytest.fixture
def make_environ() -> Callable[..., dict[str, str]]:
    """Build a parameter environment from keyword arguments."""

    def _make(**values: object) -> dict[str, str]:
        return {key: str(value) for key, value in values.items()}

    return _make


# =============================================================================
# Markers Configuration
# =============================================================================


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "property: Property-based tests")
    config.addinivalue_line("markers", "cli: CLI tests")
    config.addinivalue_line("markers", "pipeline: Pipeline tests")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption("--run-slow", action="store_true", default=False, help="Run slow tests")


def pytest_collection_modifyitems(config, items):
    """Skip slow tests unless --run-slow is given."""
    if config.getoption("--run-slow"):
        return
    skip_slow = pytest.mark.skip(reason="needs --run-slow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)
