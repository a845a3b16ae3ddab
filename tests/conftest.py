"""Root pytest configuration for all tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from blockerdiverter.config import PluginConfig, reset_config
from blockerdiverter.persistence import clear_template_cache
from tests.utils import FakeClock, FakeHost

# Configure pytest-asyncio to use auto mode
# This is redundant with pyproject.toml but ensures it's set
pytest_plugins = ("pytest_asyncio",)


@pytest.fixture(autouse=True)
def _isolated_environment(tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch):
    """Keep real user config, env overrides and caches out of every test."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path_factory.mktemp("xdg")))
    monkeypatch.delenv("BLOCKER_DIVERTER_LOG", raising=False)
    reset_config()
    clear_template_cache()
    yield
    reset_config()
    clear_template_cache()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def config() -> PluginConfig:
    return PluginConfig(default_divert_blockers=True)
