"""Execution records and the append-only execution log."""

from __future__ import annotations

import enum
import uuid
from collections.abc import Callable, Iterator
from datetime import datetime, timezone

from pydantic import BaseModel, Field


class ExecutionStatus(str, enum.Enum):
    """Outcome of one executed command."""

    COMPLETED = "completed"
    ERROR = "error"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ExecutionRecord(BaseModel):
    """One finished command."""

    record_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    command: str
    output: str
    status: ExecutionStatus
    start_time: datetime
    end_time: datetime

    def duration(self) -> float:
        """Execution duration in seconds."""
        return (self.end_time - self.start_time).total_seconds()

    @property
    def is_error(self) -> bool:
        return self.status == ExecutionStatus.ERROR


class ExecutionLog:
    """Append-only sink of execution records.

    Records are read by the history view; subscribers are notified after
    each append. There is no deletion.
    """

    def __init__(self) -> None:
        self._records: list[ExecutionRecord] = []
        self._subscribers: list[Callable[[ExecutionRecord], None]] = []

    def append(self, record: ExecutionRecord) -> None:
        self._records.append(record)
        for callback in self._subscribers:
            callback(record)

    def subscribe(self, callback: Callable[[ExecutionRecord], None]) -> None:
        """Register a callback invoked with each new record."""
        self._subscribers.append(callback)

    @property
    def records(self) -> tuple[ExecutionRecord, ...]:
        return tuple(self._records)

    @property
    def latest(self) -> ExecutionRecord | None:
        return self._records[-1] if self._records else None

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[ExecutionRecord]:
        return iter(tuple(self._records))
