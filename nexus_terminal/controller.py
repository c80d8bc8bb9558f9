"""Interactive terminal session controller.

SessionController turns classified key actions into an edited command line,
keeps the command history, runs submitted commands through an executor and
renders the results. A single execution lock (the EXECUTING phase) prevents
overlapping commands: while a command is in flight every edit action is
ignored.

Input handling is synchronous. The only suspension point is the executor
await inside the execution task, so handlers always observe the controller's
current state.

Example:
    controller = SessionController(executor=ShellExecutor(), display=display)
    controller.start()
    for data in ("l", "s", "\\r"):
        controller.feed(data)
    await controller.wait_idle()
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

from nexus_terminal.buffer import LineBuffer
from nexus_terminal.display import Display, TextStyler
from nexus_terminal.executor import ExecutionError, Executor
from nexus_terminal.history import EMPTY_LINE, NONE_AVAILABLE, HistoryRing
from nexus_terminal.keys import SUBMIT, ActionKind, KeyAction, classify
from nexus_terminal.logging import get_logger
from nexus_terminal.prompt import PromptContext, PromptRenderer
from nexus_terminal.records import ExecutionLog, ExecutionRecord, ExecutionStatus, utcnow
from nexus_terminal.state import SessionPhase, SessionStateMachine

if TYPE_CHECKING:
    from nexus_terminal.config import TerminalConfig

logger = get_logger(__name__)

CANCELLED_OUTPUT = "Cancelled"


def split_output(output: str) -> list[str]:
    """Split executor output into display lines.

    A single trailing newline does not produce an extra blank line.
    """
    if output.endswith("\n"):
        output = output[:-1]
    if not output:
        return []
    return output.split("\n")


def describe_error(error: BaseException) -> str:
    """Text shown and logged for an executor failure.

    ExecutionError messages are used verbatim; other exceptions are prefixed
    with their type name.
    """
    message = str(error)
    if not message:
        return type(error).__name__
    if isinstance(error, ExecutionError):
        return message
    return f"{type(error).__name__}: {message}"


class SessionController:
    """State machine for one terminal session.

    Each session owns its controller; state is never shared between sessions.
    """

    def __init__(
        self,
        executor: Executor,
        display: Display,
        *,
        context: PromptContext | None = None,
        agent_name: str = "nexus",
        history_capacity: int = 100,
        styler: TextStyler | None = None,
        log: ExecutionLog | None = None,
        echo_command: bool = True,
        interrupt_cancels: bool = False,
    ) -> None:
        """Initialize the controller.

        Args:
            executor: Runs submitted commands.
            display: Receives all rendered text.
            context: Initial prompt context.
            agent_name: Name shown in the prompt.
            history_capacity: Commands kept for navigation.
            styler: Renders styled fragments; defaults to colored output.
            log: Execution log sink; a new one is created if omitted.
            echo_command: Print an 'Executing: <command>' banner.
            interrupt_cancels: Let Interrupt cancel a running command.
        """
        self._executor = executor
        self._display = display
        self._context = context or PromptContext()
        self._renderer = PromptRenderer(agent_name)
        self._styler = styler or TextStyler()
        self._log = log if log is not None else ExecutionLog()
        self._echo_command = echo_command
        self._interrupt_cancels = interrupt_cancels

        self._buffer = LineBuffer()
        self._history = HistoryRing(history_capacity)
        self._state = SessionStateMachine()
        self._task: asyncio.Task[None] | None = None
        self._cancel_requested = False

        self._handlers: dict[ActionKind, Callable[[KeyAction], None]] = {
            ActionKind.PRINTABLE: self._on_printable,
            ActionKind.BACKSPACE: self._on_backspace,
            ActionKind.SUBMIT: self._on_submit,
            ActionKind.INTERRUPT: self._on_interrupt,
            ActionKind.CLEAR_SCREEN: self._on_clear_screen,
            ActionKind.HISTORY_UP: self._on_history_up,
            ActionKind.HISTORY_DOWN: self._on_history_down,
        }

    @classmethod
    def from_config(
        cls,
        config: TerminalConfig,
        executor: Executor,
        display: Display,
        context: PromptContext | None = None,
        log: ExecutionLog | None = None,
    ) -> SessionController:
        """Build a controller from loaded configuration."""
        return cls(
            executor=executor,
            display=display,
            context=context,
            agent_name=config.general.agent_name,
            history_capacity=config.general.history_capacity,
            styler=TextStyler(color=config.display.color),
            log=log,
            echo_command=config.display.echo_command,
            interrupt_cancels=config.session.interrupt_cancels,
        )

    # =========================================================================
    # State Access
    # =========================================================================

    @property
    def buffer(self) -> LineBuffer:
        return self._buffer

    @property
    def history(self) -> HistoryRing:
        return self._history

    @property
    def log(self) -> ExecutionLog:
        return self._log

    @property
    def phase(self) -> SessionPhase:
        return self._state.phase

    @property
    def is_executing(self) -> bool:
        return self._state.is_executing

    @property
    def context(self) -> PromptContext:
        return self._context

    @property
    def prompt(self) -> str:
        """Plain prompt literal for the current context."""
        return self._renderer.render(self._context.working_label)

    def set_context(self, context: PromptContext) -> None:
        """Replace the working context used by later prompts and commands."""
        self._context = context

    def add_phase_observer(self, callback: Callable[[SessionPhase, SessionPhase], None]) -> None:
        """Observe Idle/Executing transitions."""
        self._state.add_observer(callback)

    # =========================================================================
    # Input
    # =========================================================================

    def start(self) -> None:
        """Write the first prompt."""
        self._write_prompt()

    def feed(self, data: str) -> KeyAction:
        """Classify raw input and dispatch it.

        Returns:
            The classified action.
        """
        action = classify(data)
        self.handle(action)
        return action

    def handle(self, action: KeyAction) -> None:
        """Dispatch a classified action."""
        if self._state.is_executing:
            if action.kind is ActionKind.INTERRUPT and self._interrupt_cancels:
                self._cancel_execution()
            return

        handler = self._handlers.get(action.kind)
        if handler is not None:
            handler(action)

    def submit_text(self, command: str) -> bool:
        """Type a whole command and submit it (quick commands).

        Returns:
            False if a command is already executing, True otherwise.
        """
        if self._state.is_executing:
            return False
        self._buffer.set_to(command)
        self._redraw_input_line()
        self.handle(SUBMIT)
        return True

    def reset_screen(self, banner: str | None = None) -> bool:
        """Clear the display and the pending input, then reprint the prompt.

        Returns:
            False if a command is executing (nothing is changed), True otherwise.
        """
        if self._state.is_executing:
            return False
        self._display.clear()
        self._buffer.clear()
        self._history.reset_cursor()
        if banner:
            self._display.write_line(banner)
        self._write_prompt()
        return True

    # =========================================================================
    # Edit Actions
    # =========================================================================

    def _on_printable(self, action: KeyAction) -> None:
        self._buffer.append(action.char)
        self._display.write(action.char)

    def _on_backspace(self, action: KeyAction) -> None:
        if self._buffer.backspace_one():
            self._display.write("\b \b")

    def _on_clear_screen(self, action: KeyAction) -> None:
        self._display.clear()
        self._redraw_input_line()

    def _on_interrupt(self, action: KeyAction) -> None:
        self._display.write("^C")
        self._display.write_line("")
        self._history.reset_cursor()
        self._buffer.clear()
        self._write_prompt()

    def _on_history_up(self, action: KeyAction) -> None:
        recalled = self._history.navigate_up()
        if recalled is NONE_AVAILABLE:
            return
        self._buffer.set_to(str(recalled))
        self._redraw_input_line()

    def _on_history_down(self, action: KeyAction) -> None:
        result = self._history.navigate_down()
        if result is NONE_AVAILABLE:
            return
        self._buffer.set_to("" if result is EMPTY_LINE else str(result))
        self._redraw_input_line()

    def _on_submit(self, action: KeyAction) -> None:
        command = self._buffer.snapshot().strip()
        self._buffer.clear()
        self._display.write_line("")

        if not command:
            self._write_prompt()
            return

        self._history.record(command)
        self._state.start_executing()

        if self._echo_command:
            self._display.write_line(self._styler.banner(command))
            self._display.write_line("")

        logger.debug("Submitting %r", command)
        self._task = asyncio.create_task(self._execute(command, self._context.executor_dir))

    # =========================================================================
    # Execution
    # =========================================================================

    async def _execute(self, command: str, working_dir: str) -> None:
        start_time = utcnow()
        try:
            output = await self._executor.execute(command, working_dir)
        except asyncio.CancelledError:
            if not self._cancel_requested:
                # Session shutdown: leave the display alone
                self._release()
                raise
            output = CANCELLED_OUTPUT
            status = ExecutionStatus.ERROR
            lines = [self._styler.system(CANCELLED_OUTPUT)]
        except Exception as e:
            output = describe_error(e)
            logger.warning("Command %r failed: %s", command, output)
            status = ExecutionStatus.ERROR
            lines = [self._styler.error(output)]
        else:
            status = ExecutionStatus.COMPLETED
            lines = split_output(output)
        self._settle(command, output, status, start_time, lines)

    def _settle(
        self,
        command: str,
        output: str,
        status: ExecutionStatus,
        start_time: datetime,
        lines: list[str],
    ) -> None:
        """Render the result, log it and return to idle with a fresh prompt.

        The execution lock is released even if rendering or a log subscriber
        fails.
        """
        try:
            for line in lines:
                self._display.write_line(line)
        finally:
            record = ExecutionRecord(
                command=command,
                output=output,
                status=status,
                start_time=start_time,
                end_time=utcnow(),
            )
            try:
                self._log.append(record)
            except Exception:
                logger.exception("Execution log subscriber failed for %r", command)
            finally:
                self._release()
        self._display.write_line("")
        self._write_prompt()

    def _release(self) -> None:
        """Drop the in-flight task and leave the EXECUTING phase."""
        self._task = None
        self._cancel_requested = False
        self._state.finish()

    def _cancel_execution(self) -> None:
        if self._task is None or self._task.done() or self._cancel_requested:
            return
        self._cancel_requested = True
        self._display.write("^C")
        self._display.write_line("")
        self._task.cancel()

    async def wait_idle(self) -> None:
        """Wait for the in-flight command, if any, to settle."""
        task = self._task
        if task is not None:
            await asyncio.shield(task)

    async def aclose(self) -> None:
        """Cancel the in-flight command without rendering (session shutdown)."""
        task = self._task
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    # =========================================================================
    # Rendering
    # =========================================================================

    def _write_prompt(self) -> None:
        self._display.write(self._styler.prompt(self._renderer.agent_name, self._context.working_label))

    def _redraw_input_line(self) -> None:
        """Rewrite the current line as prompt plus buffer, keeping scrollback."""
        self._display.move_cursor_to_column_start()
        self._display.clear_to_end_of_line()
        self._write_prompt()
        self._display.write(self._buffer.snapshot())
