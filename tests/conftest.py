from __future__ import annotations

import json
import os
import random
from pathlib import Path
from typing import List, Tuple

import pytest

# Keep test runs from writing per-run log files.
os.environ.setdefault("CHATPOLL_LOG_DIR", "")

from core.sinks import PollSink  # noqa: E402


def privmsg(viewer: str, text: str, channel: str = "streamer") -> str:
    """Build a Twitch broadcast chat line as the IRC server sends it."""
    return f":{viewer}!{viewer}@{viewer}.tmi.twitch.tv PRIVMSG #{channel} :{text}"


class RecordingSink(PollSink):
    def __init__(self) -> None:
        self.results: List[Tuple[int, object]] = []
        self.chat_lines: List[str] = []
        self.remaining: List[float] = []

    def on_result(self, outcome, *, cycle: int) -> None:
        self.results.append((cycle, outcome))

    def on_chat_line(self, entry) -> None:
        self.chat_lines.append(entry.display_line())

    def on_remaining(self, seconds: float) -> None:
        self.remaining.append(seconds)


@pytest.fixture()
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture()
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture()
def config_file(tmp_path: Path) -> Path:
    p = tmp_path / "poll.json"
    p.write_text(
        json.dumps(
            {
                "poll": {
                    "candidates": ["yes", "no"],
                    "dedup_per_viewer": True,
                    "tie_break_policy": "fastest_reached",
                    "cycle_duration_seconds": 5,
                    "query": "least_common",
                }
            }
        ),
        encoding="utf-8",
    )
    return p
