"""Session state management.

Provides the explicit two-phase state machine behind the execution lock.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum, auto

from nexus_terminal.logging import get_logger

logger = get_logger(__name__)


class SessionPhase(Enum):
    """Session execution phase.

    - IDLE: Accepting edit actions
    - EXECUTING: One command is in flight; edit actions are ignored
    """

    IDLE = auto()
    EXECUTING = auto()


# Valid state transitions
VALID_TRANSITIONS: dict[SessionPhase, set[SessionPhase]] = {
    SessionPhase.IDLE: {SessionPhase.EXECUTING},
    SessionPhase.EXECUTING: {SessionPhase.IDLE},
}


class SessionStateMachine:
    """Explicit state machine for a terminal session.

    Manages phase transitions and notifies observers when the phase changes.
    Invalid transitions are logged but not blocked to maintain robustness.
    """

    def __init__(self) -> None:
        self._phase = SessionPhase.IDLE
        self._observers: list[Callable[[SessionPhase, SessionPhase], None]] = []

    @property
    def phase(self) -> SessionPhase:
        """Get current execution phase."""
        return self._phase

    @property
    def is_executing(self) -> bool:
        return self._phase == SessionPhase.EXECUTING

    def add_observer(self, callback: Callable[[SessionPhase, SessionPhase], None]) -> None:
        """Add phase change observer.

        Args:
            callback: Function called with (old_phase, new_phase).
        """
        self._observers.append(callback)

    def transition(self, new_phase: SessionPhase) -> bool:
        """Transition to a new phase.

        Args:
            new_phase: Target phase.

        Returns:
            True if transition was valid, False otherwise.
        """
        if self._phase == new_phase:
            return True

        is_valid = new_phase in VALID_TRANSITIONS.get(self._phase, set())
        if not is_valid:
            logger.warning("Invalid session transition: %s -> %s", self._phase.name, new_phase.name)

        old_phase = self._phase
        self._phase = new_phase

        for observer in self._observers:
            observer(old_phase, new_phase)

        return is_valid

    def start_executing(self) -> bool:
        """Transition to executing phase."""
        return self.transition(SessionPhase.EXECUTING)

    def finish(self) -> bool:
        """Transition back to idle."""
        return self.transition(SessionPhase.IDLE)
