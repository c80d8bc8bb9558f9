"""Prompt rendering.

The prompt is a fixed literal: ``<agent-name>:<working-label>$ ``.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePath

DEFAULT_AGENT_NAME = "nexus"
HOME_LABEL = "~"


@dataclass(frozen=True)
class PromptContext:
    """Current working context shown in the prompt.

    Attributes:
        working_label: Short display label, usually the last path segment.
        working_dir: Full directory handed to the executor, if known.
    """

    working_label: str = HOME_LABEL
    working_dir: str | None = None

    @classmethod
    def from_path(cls, path: str | PurePath | None) -> PromptContext:
        """Build a context from a directory path.

        The label is the last path segment, or ``~`` when there is none.
        """
        if path is None:
            return cls()
        text = str(path)
        label = text.rstrip("/").split("/")[-1] if text.strip("/") else ""
        return cls(working_label=label or HOME_LABEL, working_dir=text)

    @property
    def executor_dir(self) -> str:
        """Directory argument passed to the executor."""
        return self.working_dir if self.working_dir is not None else self.working_label


def render_prompt(working_label: str, agent_name: str = DEFAULT_AGENT_NAME) -> str:
    """Render the prompt literal for a working label."""
    return f"{agent_name}:{working_label}$ "


class PromptRenderer:
    """Prompt renderer bound to an agent name."""

    def __init__(self, agent_name: str = DEFAULT_AGENT_NAME) -> None:
        self.agent_name = agent_name

    def render(self, working_label: str) -> str:
        return render_prompt(working_label, self.agent_name)
