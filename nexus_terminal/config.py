"""Configuration management for nexus-terminal.

Configuration is loaded with project-level priority (no merging):

1. **config.toml**:
   - Global: ~/.config/nexus-terminal/config.toml
   - Project: .nexus/config.toml (overrides global entirely)
   - Contains: general, executor, display, session

2. **Environment variables** (NEXUS_TERMINAL_*):
   - Merged on top of config.toml
"""

from __future__ import annotations

import tomllib
from importlib import resources
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

# =============================================================================
# Errors
# =============================================================================


class ConfigError(ValueError):
    """Raised when a configuration file cannot be parsed or validated."""


# =============================================================================
# Configuration Models
# =============================================================================


class GeneralConfig(BaseModel):
    """General session configuration."""

    agent_name: str = "nexus"
    """Name shown at the start of the prompt."""

    history_capacity: int = Field(default=100, gt=0)
    """Maximum number of commands kept for up/down navigation."""


class ExecutorConfig(BaseModel):
    """Local shell executor configuration."""

    timeout: float = Field(default=300.0, gt=0)
    """Seconds before a running command is killed."""

    max_output_lines: int = Field(default=1000, gt=0)
    """Maximum output lines kept per command."""

    shell: str | None = None
    """Shell executable. Empty means the platform default."""


DEFAULT_QUICK_COMMANDS = [
    "nexus --version",
    "nexus status",
    "git status",
    "git log --oneline -10",
]


class DisplayConfig(BaseModel):
    """Display and rendering configuration."""

    color: bool = True
    """Emit ANSI colors."""

    echo_command: bool = True
    """Print an 'Executing: <command>' banner before each command runs."""

    show_history_on_exit: bool = False
    """Print the execution history table when the session ends."""

    quick_commands: list[str] = Field(default_factory=lambda: list(DEFAULT_QUICK_COMMANDS))
    """Suggested commands listed in the welcome banner."""


class SessionConfig(BaseModel):
    """Session behaviour configuration."""

    interrupt_cancels: bool = False
    """Let Ctrl+C cancel a running command instead of being ignored."""


class TerminalConfig(BaseModel):
    """Complete nexus-terminal configuration."""

    general: GeneralConfig = Field(default_factory=GeneralConfig)
    executor: ExecutorConfig = Field(default_factory=ExecutorConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    env: dict[str, str] = Field(default_factory=dict)
    """Environment variables added to every executed command."""


# =============================================================================
# Environment Settings (using pydantic-settings)
# =============================================================================


class EnvSettings(BaseSettings):
    """Settings from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="NEXUS_TERMINAL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # General
    agent_name: str | None = None
    history_capacity: int | None = None

    # Executor
    timeout: float | None = None
    max_output_lines: int | None = None
    shell: str | None = None

    # Display
    color: bool | None = None
    echo_command: bool | None = None
    show_history_on_exit: bool | None = None

    # Session
    interrupt_cancels: bool | None = None


# Section each environment setting is merged into
_ENV_SECTIONS: dict[str, tuple[str, ...]] = {
    "general": ("agent_name", "history_capacity"),
    "executor": ("timeout", "max_output_lines", "shell"),
    "display": ("color", "echo_command", "show_history_on_exit"),
    "session": ("interrupt_cancels",),
}


# =============================================================================
# ConfigManager
# =============================================================================


class ConfigManager:
    """Manages configuration loading from global, project, and environment sources."""

    DEFAULT_CONFIG_DIR = Path.home() / ".config" / "nexus-terminal"
    PROJECT_CONFIG_DIR = ".nexus"

    def __init__(
        self,
        config_dir: Path | None = None,
        project_dir: Path | None = None,
    ) -> None:
        self._config_dir = config_dir or self.DEFAULT_CONFIG_DIR
        self._project_dir = project_dir or Path.cwd()
        self._config: TerminalConfig | None = None
        self._loaded_sources: list[str] = []

    @property
    def config(self) -> TerminalConfig:
        """Get current configuration, loading if necessary."""
        if self._config is None:
            self._config = self.load()
        return self._config

    @property
    def config_dir(self) -> Path:
        """Get global config directory."""
        return self._config_dir

    @property
    def project_dir(self) -> Path:
        """Get project directory."""
        return self._project_dir

    @property
    def loaded_sources(self) -> list[str]:
        """Get list of loaded configuration sources."""
        return self._loaded_sources.copy()

    def load(self) -> TerminalConfig:
        """Load configuration from all sources.

        Priority (higher wins):
        1. config.toml: Project > Global (no merging between the two)
        2. Environment overrides, merged on top

        Raises:
            ConfigError: If a file is not valid TOML or fails validation.
        """
        self._loaded_sources = []
        merged: dict[str, Any] = {}

        project_config_file = self._project_dir / self.PROJECT_CONFIG_DIR / "config.toml"
        global_config_file = self._config_dir / "config.toml"

        for config_file in (project_config_file, global_config_file):
            if config_file.exists():
                merged = _read_toml(config_file)
                self._loaded_sources.append(str(config_file))
                break

        env_overrides = self._load_env_overrides()
        if env_overrides:
            merged = _deep_merge(merged, env_overrides)
            self._loaded_sources.append("environment")

        try:
            self._config = TerminalConfig.model_validate(merged)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e
        return self._config

    def reload(self) -> TerminalConfig:
        """Force reload configuration."""
        self._config = None
        return self.load()

    def _load_env_overrides(self) -> dict[str, Any]:
        """Load settings from environment using pydantic-settings."""
        try:
            env = EnvSettings()
        except ValidationError as e:
            raise ConfigError(f"Invalid environment setting: {e}") from e

        overrides: dict[str, Any] = {}
        for section, names in _ENV_SECTIONS.items():
            values = {name: getattr(env, name) for name in names if getattr(env, name) is not None}
            if values:
                overrides[section] = values
        return overrides

    def ensure_config_dir(self) -> None:
        """Create global config directory."""
        self._config_dir.mkdir(parents=True, exist_ok=True)

    def save_default_config(self, force: bool = False) -> Path | None:
        """Save default global configuration.

        Returns:
            Path written, or None if a config already exists and force is False.
        """
        config_file = self.get_global_config_file()
        if config_file.exists() and not force:
            return None

        self.ensure_config_dir()
        config_file.write_text(_load_template("config.toml"))
        return config_file

    def get_global_config_file(self) -> Path:
        """Get path to global config file."""
        return self._config_dir / "config.toml"

    def get_project_config_file(self) -> Path:
        """Get path to project config file."""
        return self._project_dir / self.PROJECT_CONFIG_DIR / "config.toml"


# =============================================================================
# Internal Utilities
# =============================================================================


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _load_template(name: str) -> str:
    """Load a template file."""
    template_files = resources.files("nexus_terminal").joinpath("templates")
    return template_files.joinpath(name).read_text(encoding="utf-8")


# =============================================================================
# Convenience Functions
# =============================================================================


def load_config(
    config_dir: Path | None = None,
    project_dir: Path | None = None,
) -> TerminalConfig:
    """Load configuration from all sources.

    Args:
        config_dir: Optional custom global config directory.
        project_dir: Optional custom project directory.

    Returns:
        Loaded TerminalConfig.
    """
    manager = ConfigManager(config_dir=config_dir, project_dir=project_dir)
    return manager.load()
