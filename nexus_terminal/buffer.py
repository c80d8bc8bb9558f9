"""Command line buffer with tail-only editing."""

from __future__ import annotations


class LineBuffer:
    """The text of the command currently being composed.

    Editing only touches the tail: one character is appended or the last one
    removed. There is no interior cursor. No operation raises.
    """

    def __init__(self, text: str = "") -> None:
        self._chars: list[str] = list(text)

    def append(self, ch: str) -> None:
        """Append a character at the tail."""
        self._chars.append(ch)

    def backspace_one(self) -> bool:
        """Remove the last character.

        Returns:
            True if a character was removed, False if the buffer was empty.
        """
        if not self._chars:
            return False
        self._chars.pop()
        return True

    def clear(self) -> None:
        self._chars.clear()

    def set_to(self, text: str) -> None:
        """Replace the whole buffer (used when recalling history)."""
        self._chars = list(text)

    def snapshot(self) -> str:
        """Get the current text."""
        return "".join(self._chars)

    def __len__(self) -> int:
        return len(self._chars)

    def __bool__(self) -> bool:
        return bool(self._chars)

    def __repr__(self) -> str:
        return f"LineBuffer({self.snapshot()!r})"
