"""Bounded command history with a navigation cursor.

Navigation follows the usual shell convention:
- Up starts at the most recent entry and stops at the oldest (no wrap).
- Down walks back towards the most recent entry and then exits to an empty
  line, leaving navigation.

Boundary conditions are reported with sentinels rather than exceptions.
"""

from __future__ import annotations

from collections import deque
from enum import Enum
from typing import Final


class HistorySignal(Enum):
    """Navigation sentinels."""

    NONE_AVAILABLE = "none_available"
    """Nothing changed: the ring is empty or no navigation is in progress."""

    EMPTY_LINE = "empty_line"
    """Navigation left the ring downward; the caller should clear the line."""


NONE_AVAILABLE: Final = HistorySignal.NONE_AVAILABLE
EMPTY_LINE: Final = HistorySignal.EMPTY_LINE

DEFAULT_CAPACITY = 100


class HistoryRing:
    """Append-only FIFO of executed commands.

    Identical commands are not de-duplicated; each submission gets its own
    entry. Inserting beyond capacity evicts the oldest entry.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        """Initialize the ring.

        Args:
            capacity: Maximum number of entries kept.

        Raises:
            ValueError: If capacity is not positive.
        """
        if capacity <= 0:
            raise ValueError(f"History capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._entries: deque[str] = deque()
        self._cursor: int | None = None

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def cursor(self) -> int | None:
        """Index of the recalled entry, None when not navigating."""
        return self._cursor

    @property
    def entries(self) -> tuple[str, ...]:
        """Snapshot of entries, oldest first."""
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def record(self, command: str) -> None:
        """Append a command, evicting the oldest entry when full."""
        if len(self._entries) >= self._capacity:
            self._entries.popleft()
        self._entries.append(command)
        self._cursor = None

    def navigate_up(self) -> str | HistorySignal:
        """Move towards older entries.

        Returns:
            The recalled entry, or NONE_AVAILABLE if the ring is empty.
        """
        if not self._entries:
            return NONE_AVAILABLE
        if self._cursor is None:
            self._cursor = len(self._entries) - 1
        elif self._cursor > 0:
            self._cursor -= 1
        return self._entries[self._cursor]

    def navigate_down(self) -> str | HistorySignal:
        """Move towards newer entries.

        Returns:
            The recalled entry, EMPTY_LINE when stepping past the most recent
            entry, or NONE_AVAILABLE when not navigating.
        """
        if self._cursor is None:
            return NONE_AVAILABLE
        if self._cursor < len(self._entries) - 1:
            self._cursor += 1
            return self._entries[self._cursor]
        self._cursor = None
        return EMPTY_LINE

    def reset_cursor(self) -> None:
        """Leave navigation (on submit and interrupt)."""
        self._cursor = None
