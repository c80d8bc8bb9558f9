"""Fixtures for nexus_terminal tests."""

from __future__ import annotations

import os
from collections.abc import Generator
from pathlib import Path

import pytest
from nexus_terminal.config import ConfigManager
from nexus_terminal.display import RecordingDisplay, TextStyler


@pytest.fixture
def display() -> RecordingDisplay:
    return RecordingDisplay()


@pytest.fixture
def plain_styler() -> TextStyler:
    return TextStyler(color=False)


@pytest.fixture
def temp_home(tmp_path: Path) -> Path:
    """Create a temporary home directory."""
    home = tmp_path / "home"
    home.mkdir()
    return home


@pytest.fixture
def temp_config_dir(temp_home: Path) -> Path:
    """Create a temporary config directory under fake home."""
    config_dir = temp_home / ".config" / "nexus-terminal"
    config_dir.mkdir(parents=True)
    return config_dir


@pytest.fixture
def temp_project_dir(tmp_path: Path) -> Path:
    """Create a temporary project directory."""
    project_dir = tmp_path / "project"
    project_dir.mkdir()
    return project_dir


@pytest.fixture
def config_manager(temp_config_dir: Path, temp_project_dir: Path) -> ConfigManager:
    """Create a ConfigManager with temp directories."""
    return ConfigManager(config_dir=temp_config_dir, project_dir=temp_project_dir)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Generator[None, None, None]:
    """Remove NEXUS_TERMINAL_* variables and any .env in the working directory."""
    for key in list(os.environ):
        if key.startswith("NEXUS_TERMINAL_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    yield
