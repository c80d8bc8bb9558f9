"""Executor boundary and the local shell executor.

The session treats command execution as an opaque async call that either
returns the whole output or raises. Output arrives in one piece on settlement;
there is no partial streaming.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
from pathlib import Path
from typing import Protocol, runtime_checkable

from nexus_terminal.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 300.0
DEFAULT_MAX_OUTPUT_LINES = 1000


class ExecutionError(Exception):
    """Raised by executors when a command cannot be run to completion."""


@runtime_checkable
class Executor(Protocol):
    """Asynchronous command executor."""

    async def execute(self, command: str, working_dir: str) -> str:
        """Run a command and return its complete output.

        Args:
            command: Command line as typed by the user.
            working_dir: Directory (or label) the command runs in.

        Raises:
            Exception: Any failure; the session renders it as an error line.
        """
        ...


def truncate_lines(text: str, max_lines: int) -> str:
    """Keep the first max_lines lines, noting how many were dropped."""
    lines = text.split("\n")
    if len(lines) <= max_lines:
        return text
    dropped = len(lines) - max_lines
    return "\n".join([*lines[:max_lines], f"... ({dropped} more lines)"])


class ShellExecutor:
    """Run commands through the local shell.

    Non-zero exits still resolve: stderr is appended to stdout so the user
    sees the failure text. Timeouts and spawn failures raise ExecutionError.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        max_output_lines: int = DEFAULT_MAX_OUTPUT_LINES,
        shell: str | None = None,
        env: dict[str, str] | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            timeout: Seconds before a command is killed.
            max_output_lines: Output lines kept per command.
            shell: Shell executable; None uses the platform default.
            env: Extra environment variables layered over os.environ.
        """
        self.timeout = timeout
        self.max_output_lines = max_output_lines
        self.shell = shell
        self.env = env or {}

    def _resolve_dir(self, working_dir: str) -> Path | None:
        if not working_dir:
            return None
        path = Path(working_dir).expanduser()
        if not path.is_dir():
            raise ExecutionError(f"Working directory not found: {working_dir}")
        return path

    async def execute(self, command: str, working_dir: str) -> str:
        cwd = self._resolve_dir(working_dir)
        env = {**os.environ, **self.env}

        logger.debug("Executing %r in %s", command, cwd)
        try:
            process = await asyncio.create_subprocess_shell(
                command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=cwd,
                env=env,
                executable=self.shell,
            )
        except OSError as e:
            raise ExecutionError(f"Failed to start command: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except TimeoutError as e:
            await _kill(process)
            raise ExecutionError(f"Command timed out ({self.timeout:g}s)") from e
        except asyncio.CancelledError:
            await _kill(process)
            raise

        stdout_text = stdout.decode("utf-8", errors="replace")
        stderr_text = stderr.decode("utf-8", errors="replace")
        logger.debug("Command %r exited with %s", command, process.returncode)

        output = stdout_text
        if process.returncode != 0 and stderr_text:
            output = f"{stdout_text}\n{stderr_text}" if stdout_text else stderr_text
        return truncate_lines(output, self.max_output_lines)


async def _kill(process: asyncio.subprocess.Process) -> None:
    """Kill a process and reap it."""
    with contextlib.suppress(ProcessLookupError):
        process.kill()
    await process.wait()
