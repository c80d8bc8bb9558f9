"""Tests for nexus_terminal.controller module."""

from __future__ import annotations

import asyncio

import pytest
from nexus_terminal.config import DisplayConfig, GeneralConfig, SessionConfig, TerminalConfig
from nexus_terminal.controller import SessionController, describe_error, split_output
from nexus_terminal.display import RecordingDisplay, TextStyler
from nexus_terminal.executor import ExecutionError
from nexus_terminal.prompt import PromptContext
from nexus_terminal.records import ExecutionRecord, ExecutionStatus
from nexus_terminal.state import SessionPhase

PROMPT = "nexus:~$ "


class FakeExecutor:
    """Executor double recording calls.

    Returns `output`, or raises `error` when set. When `gate` is set the call
    blocks until the event fires, keeping the session in EXECUTING.
    """

    def __init__(self, output: str = "", error: BaseException | None = None) -> None:
        self.output = output
        self.error = error
        self.gate: asyncio.Event | None = None
        self.calls: list[tuple[str, str]] = []

    async def execute(self, command: str, working_dir: str) -> str:
        self.calls.append((command, working_dir))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.output


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def controller(executor: FakeExecutor, display: RecordingDisplay, plain_styler: TextStyler) -> SessionController:
    """Started controller with plain output."""
    ctrl = SessionController(executor=executor, display=display, styler=plain_styler)
    ctrl.start()
    return ctrl


def type_text(controller: SessionController, text: str) -> None:
    for ch in text:
        controller.feed(ch)


async def run_command(controller: SessionController, command: str) -> None:
    type_text(controller, command)
    controller.feed("\r")
    await controller.wait_idle()


# =============================================================================
# Helpers
# =============================================================================


@pytest.mark.parametrize(
    ("output", "lines"),
    [
        ("", []),
        ("\n", []),
        ("hi", ["hi"]),
        ("hi\n", ["hi"]),
        ("a\nb\n", ["a", "b"]),
        ("a\n\nb", ["a", "", "b"]),
        ("a\n\n", ["a", ""]),
    ],
)
def test_split_output(output: str, lines: list[str]) -> None:
    assert split_output(output) == lines


def test_describe_error() -> None:
    assert describe_error(ExecutionError("command not found")) == "command not found"
    assert describe_error(ValueError("bad value")) == "ValueError: bad value"
    assert describe_error(RuntimeError()) == "RuntimeError"


# =============================================================================
# Editing
# =============================================================================


async def test_start_writes_prompt(controller: SessionController, display: RecordingDisplay) -> None:
    assert display.text == PROMPT
    assert controller.phase == SessionPhase.IDLE
    assert controller.prompt == PROMPT


async def test_printable_echoes(controller: SessionController, display: RecordingDisplay) -> None:
    type_text(controller, "ls -la")

    assert controller.buffer.snapshot() == "ls -la"
    assert display.current_line == PROMPT + "ls -la"


async def test_backspace_erases_last_char(controller: SessionController, display: RecordingDisplay) -> None:
    type_text(controller, "ab")
    controller.feed("\x7f")

    assert controller.buffer.snapshot() == "a"
    assert display.calls[-1] == ("write", "\b \b")


async def test_backspace_on_empty_line_writes_nothing(
    controller: SessionController, display: RecordingDisplay
) -> None:
    display.reset_calls()

    controller.feed("\x7f")
    controller.feed("\x08")

    assert display.calls == []
    assert controller.buffer.snapshot() == ""


async def test_ignored_keys_do_nothing(controller: SessionController, display: RecordingDisplay) -> None:
    display.reset_calls()

    for data in ("\x1b[C", "\x1b[D", "\t", "é"):
        controller.feed(data)

    assert display.calls == []


async def test_interrupt_discards_line(controller: SessionController, display: RecordingDisplay) -> None:
    type_text(controller, "abc")
    controller.feed("\x03")

    assert controller.buffer.snapshot() == ""
    assert display.lines[-1] == PROMPT + "abc^C"
    assert display.current_line == PROMPT
    assert len(controller.log) == 0


async def test_interrupt_resets_history_navigation(
    controller: SessionController, executor: FakeExecutor
) -> None:
    await run_command(controller, "ls")
    controller.feed("\x1b[A")
    assert controller.history.cursor == 0

    controller.feed("\x03")

    assert controller.history.cursor is None


async def test_clear_screen_keeps_pending_text(controller: SessionController, display: RecordingDisplay) -> None:
    await run_command(controller, "ls")
    type_text(controller, "git st")

    controller.feed("\x0c")

    assert ("clear", "") in display.calls
    assert display.screen == [PROMPT + "git st"]
    assert controller.buffer.snapshot() == "git st"


# =============================================================================
# Submission
# =============================================================================


async def test_submit_runs_command(
    controller: SessionController, display: RecordingDisplay, executor: FakeExecutor
) -> None:
    """A completed command is rendered, logged and recorded in history."""
    executor.output = "hi\n"

    await run_command(controller, "echo hi")

    assert executor.calls == [("echo hi", "~")]
    assert display.text.endswith("hi\n\n" + PROMPT)
    assert "Executing: echo hi\n\n" in display.text
    assert controller.buffer.snapshot() == ""
    assert controller.history.entries[-1] == "echo hi"
    assert controller.phase == SessionPhase.IDLE

    record = controller.log.latest
    assert record is not None
    assert record.command == "echo hi"
    assert record.output == "hi\n"
    assert record.status == ExecutionStatus.COMPLETED
    assert record.end_time >= record.start_time


async def test_submit_renders_error(
    controller: SessionController, display: RecordingDisplay, executor: FakeExecutor
) -> None:
    executor.error = ExecutionError("command not found")

    await run_command(controller, "bad-cmd")

    assert "Error: command not found\n" in display.text
    assert display.current_line == PROMPT
    assert controller.phase == SessionPhase.IDLE

    record = controller.log.latest
    assert record is not None
    assert record.status == ExecutionStatus.ERROR
    assert record.output == "command not found"
    assert record.is_error


async def test_error_without_message_uses_type_name(
    controller: SessionController, display: RecordingDisplay, executor: FakeExecutor
) -> None:
    executor.error = RuntimeError()

    await run_command(controller, "boom")

    assert "Error: RuntimeError\n" in display.text


async def test_multiline_output(
    controller: SessionController, display: RecordingDisplay, executor: FakeExecutor
) -> None:
    executor.output = "one\ntwo\nthree\n"

    await run_command(controller, "cat file")

    assert display.lines[-4:] == ["one", "two", "three", ""]


async def test_empty_output_only_reprompts(
    controller: SessionController, display: RecordingDisplay, executor: FakeExecutor
) -> None:
    await run_command(controller, "true")

    assert display.text.endswith("Executing: true\n\n\n" + PROMPT)
    assert controller.log.latest is not None


@pytest.mark.parametrize("text", ["", "   ", "\t"])
async def test_blank_submit_is_noop(
    controller: SessionController, display: RecordingDisplay, executor: FakeExecutor, text: str
) -> None:
    """Blank lines are not executed, logged or recorded."""
    type_text(controller, text)
    controller.feed("\r")
    await controller.wait_idle()

    assert executor.calls == []
    assert len(controller.log) == 0
    assert len(controller.history) == 0
    assert controller.phase == SessionPhase.IDLE
    assert display.current_line == PROMPT


async def test_submit_strips_surrounding_whitespace(controller: SessionController, executor: FakeExecutor) -> None:
    await run_command(controller, "  ls  ")

    assert executor.calls == [("ls", "~")]
    assert controller.history.entries == ("ls",)


async def test_echo_command_disabled(
    executor: FakeExecutor, display: RecordingDisplay, plain_styler: TextStyler
) -> None:
    controller = SessionController(executor=executor, display=display, styler=plain_styler, echo_command=False)
    controller.start()
    executor.output = "ok"

    await run_command(controller, "ls")

    assert "Executing" not in display.text
    assert display.text == PROMPT + "ls\nok\n\n" + PROMPT


# =============================================================================
# Execution Lock
# =============================================================================


async def test_input_ignored_while_executing(
    controller: SessionController, display: RecordingDisplay, executor: FakeExecutor
) -> None:
    """Every edit action is dropped while a command runs, history included."""
    await run_command(controller, "ls")
    await run_command(controller, "pwd")

    executor.gate = asyncio.Event()
    type_text(controller, "sleep 1")
    controller.feed("\r")
    await asyncio.sleep(0)

    assert controller.is_executing
    calls_before = list(display.calls)
    entries_before = controller.history.entries

    for data in ("x", "\x7f", "\x0c", "\x1b[A", "\x1b[A", "\x1b[B", "\x03", "\r"):
        controller.feed(data)

    assert display.calls == calls_before
    assert controller.buffer.snapshot() == ""
    assert controller.history.cursor is None
    assert controller.history.entries == entries_before == ("ls", "pwd", "sleep 1")
    assert executor.calls[-1] == ("sleep 1", "~")
    assert len(executor.calls) == 3

    executor.gate.set()
    await controller.wait_idle()

    assert not controller.is_executing
    assert controller.history.cursor is None
    assert len(controller.log) == 3


async def test_failing_log_subscriber_releases_lock(
    controller: SessionController, display: RecordingDisplay, executor: FakeExecutor
) -> None:
    """A subscriber error is logged; the session still reprompts and accepts input."""

    def failing(record: ExecutionRecord) -> None:
        raise RuntimeError("sink down")

    controller.log.subscribe(failing)
    executor.output = "hi\n"

    await run_command(controller, "echo hi")

    assert not controller.is_executing
    assert len(controller.log) == 1
    assert display.text.endswith("hi\n\n" + PROMPT)

    type_text(controller, "ls")

    assert controller.buffer.snapshot() == "ls"


async def test_failing_display_releases_lock(executor: FakeExecutor, plain_styler: TextStyler) -> None:
    """A display failure while rendering output propagates but leaves the session idle."""

    class BrokenDisplay(RecordingDisplay):
        def write_line(self, text: str) -> None:
            if text == "hi":
                raise RuntimeError("display down")
            super().write_line(text)

    display = BrokenDisplay()
    controller = SessionController(executor=executor, display=display, styler=plain_styler)
    controller.start()
    executor.output = "hi\n"

    type_text(controller, "echo hi")
    controller.feed("\r")
    with pytest.raises(RuntimeError, match="display down"):
        await controller.wait_idle()

    assert not controller.is_executing
    assert controller.log.latest is not None
    assert controller.log.latest.command == "echo hi"

    type_text(controller, "ls")

    assert controller.buffer.snapshot() == "ls"


async def test_submit_text_while_executing_is_rejected(
    controller: SessionController, executor: FakeExecutor
) -> None:
    executor.gate = asyncio.Event()
    assert controller.submit_text("first") is True

    assert controller.submit_text("second") is False
    assert controller.reset_screen() is False

    executor.gate.set()
    await controller.wait_idle()
    assert executor.calls == [("first", "~")]


async def test_phase_observer(controller: SessionController, executor: FakeExecutor) -> None:
    transitions: list[tuple[SessionPhase, SessionPhase]] = []
    controller.add_phase_observer(lambda old, new: transitions.append((old, new)))

    await run_command(controller, "ls")

    assert transitions == [
        (SessionPhase.IDLE, SessionPhase.EXECUTING),
        (SessionPhase.EXECUTING, SessionPhase.IDLE),
    ]


# =============================================================================
# History Navigation
# =============================================================================


async def test_history_navigation_redraws_line(controller: SessionController, display: RecordingDisplay) -> None:
    await run_command(controller, "ls")
    await run_command(controller, "pwd")

    controller.feed("\x1b[A")
    assert controller.buffer.snapshot() == "pwd"
    assert display.current_line == PROMPT + "pwd"

    controller.feed("\x1b[A")
    assert controller.buffer.snapshot() == "ls"
    assert display.current_line == PROMPT + "ls"

    controller.feed("\x1b[A")
    assert controller.buffer.snapshot() == "ls"

    controller.feed("\x1b[B")
    assert display.current_line == PROMPT + "pwd"

    controller.feed("\x1b[B")
    assert controller.buffer.snapshot() == ""
    assert display.current_line == PROMPT


async def test_history_up_with_empty_history(controller: SessionController, display: RecordingDisplay) -> None:
    type_text(controller, "draft")
    display.reset_calls()

    controller.feed("\x1b[A")
    controller.feed("\x1b[B")

    assert display.calls == []
    assert controller.buffer.snapshot() == "draft"


async def test_recalled_command_resubmits(controller: SessionController, executor: FakeExecutor) -> None:
    """Resubmitting a recalled command adds a duplicate history entry."""
    await run_command(controller, "ls")

    controller.feed("\x1b[A")
    controller.feed("\r")
    await controller.wait_idle()

    assert executor.calls == [("ls", "~"), ("ls", "~")]
    assert controller.history.entries == ("ls", "ls")
    assert controller.history.cursor is None


async def test_recalled_command_can_be_edited(controller: SessionController, executor: FakeExecutor) -> None:
    await run_command(controller, "git status")

    controller.feed("\x1b[A")
    for _ in range(6):
        controller.feed("\x7f")
    type_text(controller, "log")
    controller.feed("\r")
    await controller.wait_idle()

    assert executor.calls[-1] == ("git log", "~")


async def test_history_capacity(executor: FakeExecutor, display: RecordingDisplay, plain_styler: TextStyler) -> None:
    controller = SessionController(executor=executor, display=display, styler=plain_styler, history_capacity=2)
    controller.start()

    for command in ("a", "b", "c"):
        await run_command(controller, command)

    assert controller.history.entries == ("b", "c")
    assert len(controller.log) == 3


# =============================================================================
# Cancellation
# =============================================================================


async def test_interrupt_ignored_while_executing_by_default(
    controller: SessionController, executor: FakeExecutor
) -> None:
    executor.gate = asyncio.Event()
    controller.submit_text("sleep 10")
    await asyncio.sleep(0)

    controller.feed("\x03")
    await asyncio.sleep(0)

    assert controller.is_executing

    executor.gate.set()
    await controller.wait_idle()
    assert controller.log.latest is not None
    assert controller.log.latest.status == ExecutionStatus.COMPLETED


async def test_interrupt_cancels_when_enabled(
    executor: FakeExecutor, display: RecordingDisplay, plain_styler: TextStyler
) -> None:
    controller = SessionController(executor=executor, display=display, styler=plain_styler, interrupt_cancels=True)
    controller.start()
    executor.gate = asyncio.Event()
    controller.submit_text("sleep 10")
    await asyncio.sleep(0)

    controller.feed("\x03")
    await controller.wait_idle()

    assert not controller.is_executing
    assert "^C\n[SYS] Cancelled\n" in display.text
    assert display.current_line == PROMPT

    record = controller.log.latest
    assert record is not None
    assert record.output == "Cancelled"
    assert record.status == ExecutionStatus.ERROR


async def test_aclose_cancels_without_rendering(
    controller: SessionController, display: RecordingDisplay, executor: FakeExecutor
) -> None:
    executor.gate = asyncio.Event()
    controller.submit_text("sleep 10")
    await asyncio.sleep(0)

    await controller.aclose()

    assert not controller.is_executing
    assert len(controller.log) == 0
    assert "Cancelled" not in display.text


async def test_aclose_when_idle(controller: SessionController) -> None:
    await controller.aclose()
    await controller.wait_idle()

    assert controller.phase == SessionPhase.IDLE


# =============================================================================
# Screen and Context
# =============================================================================


async def test_submit_text(controller: SessionController, display: RecordingDisplay, executor: FakeExecutor) -> None:
    executor.output = "clean"
    type_text(controller, "draft")

    assert controller.submit_text("git status") is True
    await controller.wait_idle()

    assert executor.calls == [("git status", "~")]
    assert display.lines[0] == PROMPT + "git status"


async def test_reset_screen(controller: SessionController, display: RecordingDisplay) -> None:
    await run_command(controller, "ls")
    type_text(controller, "abc")
    controller.feed("\x1b[A")

    assert controller.reset_screen("Welcome back") is True

    assert display.screen == ["Welcome back", PROMPT]
    assert controller.buffer.snapshot() == ""
    assert controller.history.cursor is None


async def test_reset_screen_without_banner(controller: SessionController, display: RecordingDisplay) -> None:
    type_text(controller, "abc")

    controller.reset_screen()

    assert display.screen == [PROMPT]


async def test_set_context(controller: SessionController, display: RecordingDisplay, executor: FakeExecutor) -> None:
    controller.set_context(PromptContext.from_path("/srv/app"))

    assert controller.prompt == "nexus:app$ "

    await run_command(controller, "ls")

    assert executor.calls == [("ls", "/srv/app")]
    assert display.current_line == "nexus:app$ "


async def test_log_subscriber(controller: SessionController) -> None:
    received: list[ExecutionRecord] = []
    controller.log.subscribe(received.append)

    await run_command(controller, "ls")
    await run_command(controller, "pwd")

    assert [record.command for record in received] == ["ls", "pwd"]
    assert list(controller.log) == received


async def test_from_config(executor: FakeExecutor, display: RecordingDisplay) -> None:
    config = TerminalConfig(
        general=GeneralConfig(agent_name="agent", history_capacity=5),
        display=DisplayConfig(color=False),
        session=SessionConfig(interrupt_cancels=True),
    )

    controller = SessionController.from_config(config, executor=executor, display=display)
    controller.start()

    assert controller.history.capacity == 5
    assert display.text == "agent:~$ "
