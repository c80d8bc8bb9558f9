"""Sideband event types for nexus-terminal.

Events flow from the session to whoever drains the app's queues (for now the
log pane). They carry an id and a creation timestamp.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class TerminalEvent:
    """Base class for sideband events.

    Attributes:
        event_id: Unique identifier for the event.
        timestamp: When the event was created.
    """

    event_id: str
    timestamp: datetime = field(default_factory=datetime.now)
