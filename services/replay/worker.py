import asyncio
from typing import Iterable, List, Optional

from core.engine import PollEngine
from core.sinks import PollSink, broadcast_chat_line
from services.replay.source import ReplayLineSource
from shared.logging.logger import get_logger

log = get_logger("replay.worker")


class ReplayWorker:
    """
    Pumps a replay file through the poll engine once.

    `finished` is set when the worker stops, whether the file was exhausted or
    could not be read. A read failure is kept on `error`; the host only
    resolves the last cycle when it is None.
    """

    def __init__(
        self,
        *,
        engine: PollEngine,
        source: ReplayLineSource,
        sinks: Iterable[PollSink] = (),
    ):
        self.engine = engine
        self.source = source
        self.sinks: List[PollSink] = list(sinks)
        self.finished = asyncio.Event()
        self.lines_seen = 0
        self.error: Optional[OSError] = None

    async def run(self) -> None:
        try:
            async for line in self.source.iter_lines():
                self.lines_seen += 1
                entry = self.engine.ingest_line(line)
                if entry is not None:
                    broadcast_chat_line(self.sinks, entry)
        except OSError as e:
            self.error = e
            log.error(f"Replay failed: {e}")
        except asyncio.CancelledError:
            log.debug("Replay worker cancelled")
            raise
        finally:
            self.finished.set()
            log.info(f"Replay worker finished after {self.lines_seen} line(s)")

    async def shutdown(self) -> None:
        self.finished.set()


__all__ = ["ReplayWorker"]
