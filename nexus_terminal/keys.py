"""Raw key classification.

Maps one raw input unit, as delivered by the terminal (a printable character
or a control sequence), to a semantic edit action. Classification is pure and
knows nothing about session state; gating on the execution lock happens in
the controller.

Example:
    action = classify("\\x1b[A")
    assert action.kind is ActionKind.HISTORY_UP
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ActionKind(str, Enum):
    """Semantic edit action kinds."""

    PRINTABLE = "printable"
    BACKSPACE = "backspace"
    SUBMIT = "submit"
    INTERRUPT = "interrupt"
    CLEAR_SCREEN = "clear_screen"
    HISTORY_UP = "history_up"
    HISTORY_DOWN = "history_down"
    IGNORED = "ignored"


@dataclass(frozen=True)
class KeyAction:
    """A classified input unit.

    Attributes:
        kind: The action kind.
        char: The character for PRINTABLE actions, empty otherwise.
    """

    kind: ActionKind
    char: str = ""

    @classmethod
    def printable(cls, char: str) -> KeyAction:
        """Build a PRINTABLE action for a single character."""
        return cls(ActionKind.PRINTABLE, char)

    @property
    def is_printable(self) -> bool:
        return self.kind is ActionKind.PRINTABLE


BACKSPACE = KeyAction(ActionKind.BACKSPACE)
SUBMIT = KeyAction(ActionKind.SUBMIT)
INTERRUPT = KeyAction(ActionKind.INTERRUPT)
CLEAR_SCREEN = KeyAction(ActionKind.CLEAR_SCREEN)
HISTORY_UP = KeyAction(ActionKind.HISTORY_UP)
HISTORY_DOWN = KeyAction(ActionKind.HISTORY_DOWN)
IGNORED = KeyAction(ActionKind.IGNORED)

# Control sequences recognised by the session. Both CSI and SS3 arrow forms
# are accepted since terminals in application cursor mode send the latter.
CONTROL_SEQUENCES: dict[str, KeyAction] = {
    "\r": SUBMIT,
    "\x7f": BACKSPACE,
    "\x08": BACKSPACE,
    "\x03": INTERRUPT,
    "\x0c": CLEAR_SCREEN,
    "\x1b[A": HISTORY_UP,
    "\x1bOA": HISTORY_UP,
    "\x1b[B": HISTORY_DOWN,
    "\x1bOB": HISTORY_DOWN,
}


def is_printable(data: str) -> bool:
    """Check if data is a single visible ASCII character (space through tilde)."""
    return len(data) == 1 and " " <= data <= "~"


def classify(data: str) -> KeyAction:
    """Classify one raw input unit.

    Args:
        data: Raw key data (a character or an escape sequence).

    Returns:
        The matching KeyAction; IGNORED for anything unrecognised.
    """
    if is_printable(data):
        return KeyAction.printable(data)
    return CONTROL_SEQUENCES.get(data, IGNORED)
