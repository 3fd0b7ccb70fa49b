"""Append-only chat transcript.

Holds every accepted chat line for the lifetime of the engine. The poll core
only ever appends here; nothing in the resolution path reads it back. The
transcript itself stays in memory: the durable JSONL copy is written by
core.sinks.TranscriptSink through append_jsonl(), away from the engine lock.
"""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional

from shared.chat.events import ChatEntry
from shared.logging.logger import get_logger

log = get_logger("shared.storage.transcript")


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class TranscriptEntry:
    viewer: str
    text: str
    raw: str = ""
    ts: str = field(default_factory=_utc_now_iso)

    @classmethod
    def from_chat(cls, entry: ChatEntry) -> "TranscriptEntry":
        return cls(viewer=entry.viewer, text=entry.text, raw=entry.raw)

    def line(self) -> str:
        return f"{self.viewer}: {self.text}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ts": self.ts,
            "viewer": self.viewer,
            "text": self.text,
            "raw": self.raw,
        }


class Transcript:
    """
    Full-history chat transcript.

    - Append-only (no removal, no reset at cycle boundaries)
    - Thread-safe appends
    - Memory only; appending never touches the filesystem
    """

    def __init__(self) -> None:
        self._entries: List[TranscriptEntry] = []
        self._lock = threading.Lock()

    # ------------------------------------------------------------------

    def append(self, entry: ChatEntry) -> TranscriptEntry:
        record = TranscriptEntry.from_chat(entry)
        with self._lock:
            self._entries.append(record)
        return record

    # ------------------------------------------------------------------

    def entries(self) -> List[TranscriptEntry]:
        with self._lock:
            return list(self._entries)

    def lines(self) -> List[str]:
        return [entry.line() for entry in self.entries()]

    def last(self) -> Optional[TranscriptEntry]:
        with self._lock:
            return self._entries[-1] if self._entries else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __iter__(self) -> Iterator[TranscriptEntry]:
        return iter(self.entries())


def append_jsonl(path: Path, records: Iterable[TranscriptEntry]) -> int:
    """
    Append records to a JSONL file. Returns the number of lines written.

    Best-effort: write failures are logged, not raised. Blocking; callers on
    the event loop run it through asyncio.to_thread().
    """
    rows = [json.dumps(record.to_dict(), ensure_ascii=False) for record in records]
    if not rows:
        return 0

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as f:
            f.write("\n".join(rows) + "\n")
    except OSError as exc:
        log.warning(f"Failed to append {len(rows)} transcript line(s) to {path}: {exc}")
        return 0

    return len(rows)


__all__ = ["Transcript", "TranscriptEntry", "append_jsonl"]
