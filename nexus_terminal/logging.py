"""Logging configuration for nexus-terminal.

While the session owns the terminal in raw mode, stray writes to stderr would
corrupt the input line. Session logging therefore redirects the package logger
to a queue-based handler; the app drains the queue and renders the records as
scrollback lines between commands.

Key components:
- LogEvent: Event type for log messages (extends TerminalEvent)
- QueueHandler: Logging handler that emits LogEvents to a queue
- configure_session_logging(): Redirect the package logger to a queue

Usage:
    from nexus_terminal.logging import configure_session_logging, LogEvent

    log_queue = asyncio.Queue()
    configure_session_logging(log_queue)
"""

from __future__ import annotations

import logging
from asyncio import Queue
from dataclasses import dataclass

from nexus_terminal.events import TerminalEvent

# Logger name to configure
LOGGER_NAME = "nexus_terminal"

# Cache for initialization state
_initialized = False


# -----------------------------------------------------------------------------
# Log Event
# -----------------------------------------------------------------------------


@dataclass
class LogEvent(TerminalEvent):
    """Log message event for in-session display.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        levelno: Numeric log level.
        logger_name: Name of the logger that produced the message.
        message: Formatted log message.
        func_name: Function name where log was called.
        line_no: Line number where log was called.
    """

    level: str = "INFO"
    levelno: int = logging.INFO
    logger_name: str = ""
    message: str = ""
    func_name: str = ""
    line_no: int = 0


# -----------------------------------------------------------------------------
# Queue Handler
# -----------------------------------------------------------------------------


class QueueHandler(logging.Handler):
    """Logging handler that emits LogEvents to an asyncio queue."""

    def __init__(self, queue: Queue, level: int = logging.DEBUG) -> None:
        """Initialize the queue handler.

        Args:
            queue: Asyncio queue to emit events to.
            level: Minimum log level to handle.
        """
        super().__init__(level)
        self._queue = queue

    def emit(self, record: logging.LogRecord) -> None:
        """Emit a log record as a LogEvent."""
        try:
            msg = self.format(record)
            event = LogEvent(
                event_id=f"log-{record.created:.0f}-{record.lineno}",
                level=record.levelname,
                levelno=record.levelno,
                logger_name=record.name,
                message=msg,
                func_name=record.funcName,
                line_no=record.lineno,
            )
            self._queue.put_nowait(event)
        except Exception:
            # Don't raise exceptions from logging
            self.handleError(record)


# -----------------------------------------------------------------------------
# Configuration Functions
# -----------------------------------------------------------------------------


def configure_session_logging(
    queue: Queue,
    level: int = logging.INFO,
) -> None:
    """Redirect the package logger to a queue for the session's lifetime.

    Calling it again without reset_logging() in between is a no-op.

    Args:
        queue: Asyncio queue to receive LogEvents.
        level: Minimum log level to capture (default: INFO).
    """
    global _initialized

    if _initialized:
        return

    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()

    handler = QueueHandler(queue, level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)

    logger.setLevel(level)
    logger.propagate = False

    _initialized = True


def reset_logging() -> None:
    """Reset logging configuration.

    Useful for tests or when the session hands the terminal back.
    """
    global _initialized

    logging.getLogger(LOGGER_NAME).handlers.clear()

    _initialized = False


def configure_logging(verbose: bool = False) -> None:
    """Configure basic stderr logging for CLI startup.

    Used before the session takes over the terminal. Once it does, call
    configure_session_logging() to switch to queue mode.

    Args:
        verbose: If True, set DEBUG level; otherwise INFO.
    """
    level = logging.DEBUG if verbose else logging.INFO

    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logger.addHandler(handler)

    logger.setLevel(level)
    logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    """Get a logger for the given module name.

    Args:
        name: Module name (typically __name__).

    Returns:
        Logger instance under the nexus_terminal namespace.
    """
    if not name.startswith(LOGGER_NAME):
        name = f"{LOGGER_NAME}.{name}"

    return logging.getLogger(name)
