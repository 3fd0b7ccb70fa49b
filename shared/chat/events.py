"""Chat entry shape shared by the parser, the response filter and sinks."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ChatEntry:
    """
    One parsed broadcast chat message.

    Transient: entries are handed to the response filter and the transcript
    and are not retained by the per-cycle state.
    """

    viewer: str
    text: str
    raw: str = ""

    def display_line(self) -> str:
        return f"{self.viewer}: {self.text}"


__all__ = ["ChatEntry"]
