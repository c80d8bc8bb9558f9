"""Read-only views over the execution log.

- format_duration(): Human-readable duration of a record
- render_history(): Rich table of executed commands
- transcript(): Plain-text copy of the session (``$ command`` then output)
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta

from rich.table import Table
from rich.text import Text

from nexus_terminal.records import ExecutionRecord

OUTPUT_PREVIEW_CHARS = 500


def format_duration(start: datetime, end: datetime | None) -> str:
    """Format an execution duration.

    Returns ``running`` without an end time, milliseconds below one second,
    otherwise seconds with one decimal.
    """
    if end is None:
        return "running"
    millis = (end - start) // timedelta(milliseconds=1)
    if millis < 1000:
        return f"{millis}ms"
    return f"{millis / 1000:.1f}s"


def preview_output(output: str, limit: int = OUTPUT_PREVIEW_CHARS) -> str:
    if len(output) > limit:
        return output[:limit] + "..."
    return output


def render_history(records: Iterable[ExecutionRecord]) -> Table:
    """Build a table with one row per executed command."""
    table = Table(title="History", show_lines=False, expand=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Command", style="bold")
    table.add_column("Status")
    table.add_column("Started", style="dim")
    table.add_column("Duration", justify="right", style="dim")
    table.add_column("Output")

    for index, record in enumerate(records, start=1):
        status = Text("Error", style="red") if record.is_error else Text("Done", style="green")
        table.add_row(
            str(index),
            record.command,
            status,
            record.start_time.astimezone().strftime("%H:%M:%S"),
            format_duration(record.start_time, record.end_time),
            preview_output(record.output),
        )
    return table


def transcript(records: Iterable[ExecutionRecord]) -> str:
    """Plain-text transcript of the session, one block per command."""
    return "\n\n".join(f"$ {record.command}\n{record.output}" for record in records)
