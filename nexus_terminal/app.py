"""Terminal application for nexus-terminal.

This module wires the session core to a real terminal:
- prompt_toolkit input in raw mode, one KeyPress at a time
- Vt100Display over a prompt_toolkit output
- ShellExecutor running commands in the working directory
- Queue-based logging drained into the scrollback between commands

Example:
    from nexus_terminal.app import TerminalApp

    async with TerminalApp(config) as app:
        await app.run()
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import TracebackType
from typing import TYPE_CHECKING

from prompt_toolkit.input import create_input
from prompt_toolkit.output import create_output

from nexus_terminal.config import TerminalConfig
from nexus_terminal.controller import SessionController
from nexus_terminal.display import Display, TextStyler, Vt100Display
from nexus_terminal.executor import Executor, ShellExecutor
from nexus_terminal.history_view import render_history
from nexus_terminal.logging import LogEvent, configure_session_logging, get_logger, reset_logging
from nexus_terminal.prompt import PromptContext
from nexus_terminal.state import SessionPhase

if TYPE_CHECKING:
    from prompt_toolkit.input import Input
    from prompt_toolkit.output import Output

logger = get_logger(__name__)

EXIT_KEY = "\x04"  # Ctrl+D
APP_TITLE = "Nexus Terminal"


@dataclass
class TerminalApp:
    """Interactive terminal session bound to stdin/stdout.

    Manages the lifecycle of:
    - prompt_toolkit input/output
    - SessionController (with display and executor)
    - Session logging redirection

    Usage:
        async with TerminalApp(config) as app:
            await app.run()
    """

    config: TerminalConfig
    working_dir: Path | None = None
    verbose: bool = False
    executor: Executor | None = None
    input: Input | None = None
    output: Output | None = None

    _display: Display | None = field(default=None, init=False)
    _styler: TextStyler = field(default_factory=TextStyler, init=False)
    _controller: SessionController | None = field(default=None, init=False)
    _log_queue: asyncio.Queue[LogEvent] = field(default_factory=asyncio.Queue, init=False)
    _exit_event: asyncio.Event = field(default_factory=asyncio.Event, init=False)

    @property
    def controller(self) -> SessionController:
        if self._controller is None:
            raise RuntimeError("TerminalApp not initialized. Use 'async with TerminalApp(...)'.")
        return self._controller

    @property
    def display(self) -> Display:
        if self._display is None:
            raise RuntimeError("TerminalApp not initialized. Use 'async with TerminalApp(...)'.")
        return self._display

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def __aenter__(self) -> TerminalApp:
        """Initialize resources."""
        if self.input is None:
            self.input = create_input()
        if self.output is None:
            self.output = create_output()

        self._display = Vt100Display(self.output)
        self._styler = TextStyler(color=self.config.display.color, width=self._get_terminal_width())

        if self.executor is None:
            self.executor = ShellExecutor(
                timeout=self.config.executor.timeout,
                max_output_lines=self.config.executor.max_output_lines,
                shell=self.config.executor.shell,
                env=self.config.env,
            )

        context = PromptContext.from_path(self.working_dir or Path.cwd())
        self._controller = SessionController.from_config(
            self.config,
            executor=self.executor,
            display=self._display,
            context=context,
        )
        self._controller.add_phase_observer(self._on_phase_change)

        logger.info("TerminalApp initialized in %s", context.executor_dir)
        configure_session_logging(self._log_queue, level=logging.DEBUG if self.verbose else logging.INFO)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Cleanup resources."""
        if self._controller is not None:
            await self._controller.aclose()
        reset_logging()

    # =========================================================================
    # Output Helpers
    # =========================================================================

    def _get_terminal_width(self) -> int:
        if self.output is not None:
            try:
                return self.output.get_size().columns
            except OSError:
                return 120
        return 120

    def _show_welcome(self) -> None:
        hints = [
            'Type commands to execute. Use "nexus <command>" for Nexus CLI.',
            "Press Ctrl+C to cancel, Ctrl+L to clear, Ctrl+D to exit.",
        ]
        if self.config.display.quick_commands:
            hints.append("Try: " + ", ".join(self.config.display.quick_commands))
        self.display.write_line(self._styler.welcome(APP_TITLE, hints))
        self.display.write_line("")

    def _show_history(self) -> None:
        records = self.controller.log.records
        if not records:
            return
        self.display.write_line("")
        self.display.write_line(self._styler.render(render_history(records)))

    def _drain_logs(self) -> None:
        """Render queued log events as system lines.

        Only errors are shown unless verbose; warnings about failed commands
        are already visible as error lines.
        """
        min_level = logging.DEBUG if self.verbose else logging.ERROR
        while not self._log_queue.empty():
            event = self._log_queue.get_nowait()
            if event.levelno >= min_level:
                self.display.write_line(self._styler.system(f"{event.level}: {event.message}"))

    def _on_phase_change(self, old: SessionPhase, new: SessionPhase) -> None:
        if new == SessionPhase.IDLE:
            self._drain_logs()

    # =========================================================================
    # Input
    # =========================================================================

    def handle_key(self, data: str) -> None:
        """Route one raw key to the controller; Ctrl+D on an empty idle line exits."""
        controller = self.controller
        if data == EXIT_KEY and not controller.is_executing and not controller.buffer:
            self._exit_event.set()
            return
        controller.feed(data)

    def _on_input_ready(self) -> None:
        assert self.input is not None
        for key_press in self.input.read_keys():
            self.handle_key(key_press.data)
        if self.input.closed:
            self._exit_event.set()

    # =========================================================================
    # Main Run Loop
    # =========================================================================

    async def run(self, commands: list[str] | None = None) -> None:
        """Run the session until Ctrl+D or end of input.

        Args:
            commands: Commands submitted before interactive input starts.
        """
        assert self.input is not None

        self._show_welcome()
        self.controller.start()

        for command in commands or []:
            self.controller.submit_text(command)
            await self.controller.wait_idle()

        with self.input.raw_mode(), self.input.attach(self._on_input_ready):
            await self._exit_event.wait()

        await self.controller.aclose()
        self.display.write_line("")
        if self.config.display.show_history_on_exit:
            self._show_history()
