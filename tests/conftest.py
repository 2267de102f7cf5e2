"""
Shared pytest fixtures for the multiai test suite
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Scripted providers live next to the tests
_tests_dir = Path(__file__).parent
if str(_tests_dir) not in sys.path:
    sys.path.insert(0, str(_tests_dir))

from multiai.config import DEFAULT_API_KEY_ENV, EngineConfig  # noqa: E402


def pytest_report_header(config: pytest.Config) -> str:
    version = ".".join(map(str, sys.version_info[:3]))
    if sys.version_info < (3, 11):
        pytest.exit(f"multiai needs Python 3.11+ (running {version})", returncode=1)
    return f"multiai test suite on Python {version}"


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch):
    """Keep real API keys and config files out of every test."""
    for env_var in DEFAULT_API_KEY_ENV.values():
        monkeypatch.delenv(env_var, raising=False)
    monkeypatch.delenv("MULTIAI_CONFIG_FILE", raising=False)
    yield


@pytest.fixture
def fast_config() -> EngineConfig:
    """Engine configuration with a short task deadline."""
    return EngineConfig(task_timeout_seconds=0.3, cancel_grace_seconds=0.05)
