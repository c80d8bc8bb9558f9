"""Display boundary and adapters.

The session core only pushes text to a display; it never reads from it. This
module provides:
- Display: The protocol the controller consumes
- TextStyler: Rich-based rendering of styled fragments to ANSI strings
- RecordingDisplay: In-memory display with a minimal screen model
- Vt100Display: Display over a prompt_toolkit Output (real terminals)

Example:
    styler = TextStyler()
    display = Vt100Display(create_output())
    display.write(styler.prompt("nexus", "project"))
"""

from __future__ import annotations

from io import StringIO
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

if TYPE_CHECKING:
    from prompt_toolkit.output import Output


# =============================================================================
# Protocol
# =============================================================================


@runtime_checkable
class Display(Protocol):
    """Text sink for a terminal session."""

    def write(self, text: str) -> None:
        """Write text at the cursor."""
        ...

    def write_line(self, text: str) -> None:
        """Write text followed by a line break."""
        ...

    def clear(self) -> None:
        """Clear the screen."""
        ...

    def move_cursor_to_column_start(self) -> None:
        """Move the cursor to column 0 of the current line."""
        ...

    def clear_to_end_of_line(self) -> None:
        """Erase from the cursor to the end of the line."""
        ...


# =============================================================================
# Styling
# =============================================================================


class TextStyler:
    """Render styled fragments to ANSI strings.

    With color disabled the output is the plain text, which keeps transcripts
    and tests free of escape sequences.
    """

    def __init__(self, color: bool = True, width: int | None = None) -> None:
        self._color = color
        self._width = width or 120

    @property
    def color(self) -> bool:
        return self._color

    def render(self, renderable: Any, width: int | None = None, soft_wrap: bool = False) -> str:
        """Render a Rich object to an ANSI string without the trailing newline.

        Args:
            renderable: Rich renderable object.
            width: Optional width override.
            soft_wrap: Disable Rich's word wrapping (for single lines).
        """
        string_io = StringIO()
        console = Console(
            file=string_io,
            force_terminal=True,
            width=width or self._width,
            color_system="standard" if self._color else None,
            highlight=False,
        )
        console.print(renderable, soft_wrap=soft_wrap)
        return string_io.getvalue().rstrip("\n")

    def style(self, text: str, style: str = "") -> str:
        """Render a single styled line."""
        return self.render(Text(text, style=style), soft_wrap=True)

    def prompt(self, agent_name: str, working_label: str) -> str:
        """Render the prompt with the agent in green and the label in blue.

        The plain text always equals render_prompt(working_label, agent_name).
        """
        text = Text()
        text.append(agent_name, style="bold green")
        text.append(":")
        text.append(working_label, style="bold blue")
        text.append("$ ")
        return self.render(text, soft_wrap=True)

    def banner(self, command: str) -> str:
        return self.style(f"Executing: {command}", "bold cyan")

    def error(self, message: str) -> str:
        return self.style(f"Error: {message}", "bold red")

    def system(self, message: str) -> str:
        text = Text()
        text.append("[SYS] ", style="bold yellow")
        text.append(message)
        return self.render(text, soft_wrap=True)

    def welcome(self, title: str, hints: list[str]) -> str:
        """Render the welcome panel shown when a session starts."""
        body = Text()
        for i, hint in enumerate(hints):
            if i:
                body.append("\n")
            body.append(hint, style="dim")
        return self.render(Panel(body, title=Text(title, style="bold cyan"), border_style="blue"))


# =============================================================================
# Adapters
# =============================================================================


class RecordingDisplay:
    """In-memory display.

    Records every call and keeps a minimal screen model: finished scrollback
    lines plus the current line with a cursor column. Understands ``\\r``,
    ``\\n`` and ``\\b`` inside written text.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []
        self.lines: list[str] = []
        self._current: list[str] = []
        self._column = 0
        self._text: list[str] = []

    # -- Display protocol -----------------------------------------------------

    def write(self, text: str) -> None:
        self.calls.append(("write", text))
        self._text.append(text)
        self._feed(text)

    def write_line(self, text: str) -> None:
        self.calls.append(("write_line", text))
        self._text.append(text + "\n")
        self._feed(text + "\n")

    def clear(self) -> None:
        self.calls.append(("clear", ""))
        self.lines.clear()
        self._current = []
        self._column = 0

    def move_cursor_to_column_start(self) -> None:
        self.calls.append(("move_cursor_to_column_start", ""))
        self._column = 0

    def clear_to_end_of_line(self) -> None:
        self.calls.append(("clear_to_end_of_line", ""))
        del self._current[self._column :]

    # -- Inspection -----------------------------------------------------------

    @property
    def current_line(self) -> str:
        """Text of the line the cursor is on."""
        return "".join(self._current)

    @property
    def text(self) -> str:
        """Everything written, in order, with write_line breaks as ``\\n``."""
        return "".join(self._text)

    @property
    def screen(self) -> list[str]:
        """Scrollback lines followed by the current line."""
        return [*self.lines, self.current_line]

    def reset_calls(self) -> None:
        self.calls.clear()
        self._text.clear()

    def _feed(self, text: str) -> None:
        for ch in text:
            if ch == "\n":
                self.lines.append("".join(self._current))
                self._current = []
                self._column = 0
            elif ch == "\r":
                self._column = 0
            elif ch == "\b":
                self._column = max(0, self._column - 1)
            else:
                if self._column < len(self._current):
                    self._current[self._column] = ch
                else:
                    self._current.append(ch)
                self._column += 1


class Vt100Display:
    """Display writing VT100 sequences through a prompt_toolkit Output.

    The terminal is expected to be in raw mode, so line breaks are written as
    ``\\r\\n``.
    """

    def __init__(self, output: Output) -> None:
        self._output = output

    def write(self, text: str) -> None:
        self._output.write_raw(text.replace("\n", "\r\n"))
        self._output.flush()

    def write_line(self, text: str) -> None:
        self.write(text + "\n")

    def clear(self) -> None:
        self._output.erase_screen()
        self._output.cursor_goto(0, 0)
        self._output.flush()

    def move_cursor_to_column_start(self) -> None:
        self._output.write_raw("\r")
        self._output.flush()

    def clear_to_end_of_line(self) -> None:
        self._output.erase_end_of_line()
        self._output.flush()
