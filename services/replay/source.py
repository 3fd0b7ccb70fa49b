"""
Replay line source.

Feeds a file of raw protocol lines (one per line, as captured from IRC)
into the runtime, optionally paced, so polls can be exercised without a
live channel.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import AsyncGenerator, List

from shared.logging.logger import get_logger

log = get_logger("replay.source")


class ReplayLineSource:
    def __init__(self, path: Path | str, *, interval_seconds: float = 0.0) -> None:
        self.path = Path(path)
        self.interval_seconds = max(0.0, float(interval_seconds))

    def read_lines(self) -> List[str]:
        if not self.path.exists():
            raise FileNotFoundError(f"Replay file not found: {self.path}")
        with self.path.open("r", encoding="utf-8", errors="ignore") as f:
            return [line.rstrip("\r\n") for line in f if line.strip()]

    async def iter_lines(self) -> AsyncGenerator[str, None]:
        lines = self.read_lines()
        log.info(f"Replaying {len(lines)} line(s) from {self.path}")

        for line in lines:
            yield line
            # Always yield control so the timer task keeps ticking.
            await asyncio.sleep(self.interval_seconds)

        log.info(f"Replay of {self.path} complete")


__all__ = ["ReplayLineSource"]
