"""CLI entry point for nexus-terminal.

Minimal CLI that launches the interactive session.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import click

from nexus_terminal import __version__
from nexus_terminal.config import ConfigError, ConfigManager, TerminalConfig
from nexus_terminal.logging import configure_logging, get_logger

logger = get_logger(__name__)


def apply_overrides(
    config: TerminalConfig,
    agent_name: str | None = None,
    no_color: bool = False,
) -> TerminalConfig:
    """Apply command line overrides on top of loaded configuration."""
    updates: dict[str, object] = {}
    if agent_name:
        updates["general"] = config.general.model_copy(update={"agent_name": agent_name})
    if no_color:
        updates["display"] = config.display.model_copy(update={"color": False})
    return config.model_copy(update=updates) if updates else config


# =============================================================================
# CLI Entry Point
# =============================================================================


@click.group(invoke_without_command=True)
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose logging")
@click.option(
    "--cwd",
    "working_dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Working directory for executed commands",
)
@click.option("--agent-name", default=None, help="Name shown in the prompt")
@click.option("-c", "--command", "commands", multiple=True, help="Run a command before the interactive session")
@click.option("--no-color", is_flag=True, help="Disable ANSI colors")
@click.version_option(version=__version__, prog_name="nexus-terminal")
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    working_dir: Path | None,
    agent_name: str | None,
    commands: tuple[str, ...],
    no_color: bool,
) -> None:
    """Nexus Terminal - interactive command session.

    Keys inside the session:
      Enter     - Run the command
      Up/Down   - Browse history
      Ctrl+C    - Discard the current line
      Ctrl+L    - Clear the screen
      Ctrl+D    - Exit
    """
    configure_logging(verbose=verbose)

    if ctx.invoked_subcommand is not None:
        return

    logger.debug("Starting nexus-terminal v%s", __version__)

    working_dir = (working_dir or Path.cwd()).resolve()
    config_manager = ConfigManager(project_dir=working_dir)
    try:
        config = config_manager.load()
    except ConfigError as e:
        raise click.ClickException(str(e)) from e

    logger.debug("Loaded configuration from: %s", ", ".join(config_manager.loaded_sources) or "defaults")
    config = apply_overrides(config, agent_name=agent_name, no_color=no_color)

    if not sys.stdin.isatty():
        raise click.ClickException("nexus-terminal needs an interactive terminal")

    try:
        asyncio.run(_run_session(config, working_dir, list(commands), verbose))
    except KeyboardInterrupt:
        click.echo("\nGoodbye!")
        sys.exit(130)
    except Exception as e:
        logger.exception("Fatal error")
        click.echo()
        click.echo(click.style("FATAL ERROR", fg="red", bold=True))
        click.echo(f"Error type: {type(e).__name__}")
        click.echo(f"Message: {e}")
        if not verbose:
            click.echo("Run with --verbose flag for full traceback.")
        sys.exit(1)


@cli.command()
@click.option("--force", is_flag=True, help="Overwrite an existing configuration file")
def init(force: bool) -> None:
    """Write the default global configuration file."""
    config_manager = ConfigManager()
    path = config_manager.save_default_config(force=force)
    if path is None:
        click.echo(f"Configuration already exists: {config_manager.get_global_config_file()}")
        click.echo("Use --force to overwrite.")
        return
    click.echo(click.style(f"Configuration written to {path}", fg="green"))


async def _run_session(
    config: TerminalConfig,
    working_dir: Path,
    commands: list[str],
    verbose: bool,
) -> None:
    """Run the terminal session."""
    from nexus_terminal.app import TerminalApp

    async with TerminalApp(config=config, working_dir=working_dir, verbose=verbose) as app:
        await app.run(commands)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
