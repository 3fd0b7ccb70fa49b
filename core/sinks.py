"""
Display sinks for poll results.

A sink is any object that wants to observe the engine: resolved results per
cycle, accepted chat lines, and the cycle countdown. Every hook is optional;
the engine and cycle manager run headless with no sinks at all.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Iterable, List, Optional

from core.tallies import TallyOutcome
from shared.chat.events import ChatEntry
from shared.logging.logger import get_logger
from shared.public_exports.polls import PublicPollExportBuilder, PublicPollSummary
from shared.public_exports.publisher import PublicExportPublisher
from shared.storage.transcript import TranscriptEntry, append_jsonl

log = get_logger("core.sinks")


class PollSink:
    """
    Base sink. Subclasses override only the hooks they care about.
    """

    def on_result(self, outcome: TallyOutcome, *, cycle: int) -> None:
        pass

    def on_chat_line(self, entry: ChatEntry) -> None:
        pass

    def on_remaining(self, seconds: float) -> None:
        pass


class LoggingSink(PollSink):
    """
    Operator console display: results at INFO, chat lines at INFO, countdown
    at DEBUG (only whole-second changes are logged).
    """

    def __init__(self, *, show_chat: bool = True) -> None:
        self.show_chat = show_chat
        self._last_second: Optional[int] = None

    def on_result(self, outcome: TallyOutcome, *, cycle: int) -> None:
        counts = ", ".join(f"{c}={n}" for c, n in outcome.counts_by_candidate())
        suffix = f" (tie broken by {outcome.policy.value})" if outcome.tie_broken else ""
        log.info(
            f"[cycle {cycle}] {outcome.query.value} → {outcome.winner!r} "
            f"[{counts}]{suffix}"
        )

    def on_chat_line(self, entry: ChatEntry) -> None:
        if self.show_chat:
            log.info(f"💬 {entry.display_line()}")

    def on_remaining(self, seconds: float) -> None:
        whole = max(0, int(seconds))
        if whole != self._last_second:
            self._last_second = whole
            log.debug(f"Cycle ends in {whole}s")


class ExportSink(PollSink):
    """
    Writes the public poll export document after every resolution.

    Keeps the most recent `history` cycles in the document.
    """

    def __init__(
        self,
        path: Path | str,
        *,
        history: int = 20,
        publisher: Optional[PublicExportPublisher] = None,
    ) -> None:
        target = Path(path)
        self._relative = Path(target.name)
        self._publisher = publisher or PublicExportPublisher(base_dir=target.parent)
        self._history = max(1, int(history))
        self._summaries: List[PublicPollSummary] = []
        self._builder = PublicPollExportBuilder()

    def on_result(self, outcome: TallyOutcome, *, cycle: int) -> None:
        self._summaries.append(PublicPollSummary.from_outcome(outcome, cycle=cycle))
        self._summaries = self._summaries[-self._history:]
        document = self._builder.build(self._summaries)
        try:
            self._publisher.publish(self._relative, document)
        except OSError as exc:
            log.warning(f"Poll export skipped for cycle {cycle}: {exc}")


class TranscriptSink(PollSink):
    """
    Mirrors transcript-worthy chat lines to a JSONL file.

    on_chat_line() only queues the record; run() drains the queue and writes
    batches through asyncio.to_thread(), so ingestion never waits on disk.
    Scheduler-owned: start it with Scheduler.start_worker(). shutdown()
    flushes whatever is still queued.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self.lines_written = 0
        self._queue: asyncio.Queue = asyncio.Queue()
        self._drained = asyncio.Event()
        self._running = False
        self._closed = False

    def on_chat_line(self, entry: ChatEntry) -> None:
        if not self._closed:
            self._queue.put_nowait(TranscriptEntry.from_chat(entry))

    async def run(self) -> None:
        if self._closed:
            return

        self._running = True
        log.info(f"Transcript mirrored to {self.path}")
        try:
            stopping = False
            while not stopping:
                batch = [await self._queue.get()]
                batch.extend(self._take_pending())
                # None is the shutdown marker
                stopping = None in batch
                await self._write([record for record in batch if record is not None])
        finally:
            self._running = False
            self._drained.set()

    async def shutdown(self) -> None:
        if self._closed:
            return

        self._closed = True
        if self._running:
            self._queue.put_nowait(None)
            await self._drained.wait()
        else:
            await self._write(self._take_pending())

        log.info(f"Transcript mirror closed ({self.lines_written} line(s) written)")

    def _take_pending(self) -> list:
        pending = []
        while not self._queue.empty():
            pending.append(self._queue.get_nowait())
        return pending

    async def _write(self, records: List[TranscriptEntry]) -> None:
        if records:
            self.lines_written += await asyncio.to_thread(append_jsonl, self.path, records)


def broadcast_result(sinks: Iterable[PollSink], outcome: TallyOutcome, *, cycle: int) -> None:
    for sink in sinks:
        try:
            sink.on_result(outcome, cycle=cycle)
        except Exception as e:
            log.error(f"Sink {type(sink).__name__} failed on result: {e}")


def broadcast_chat_line(sinks: Iterable[PollSink], entry: ChatEntry) -> None:
    for sink in sinks:
        try:
            sink.on_chat_line(entry)
        except Exception as e:
            log.error(f"Sink {type(sink).__name__} failed on chat line: {e}")


def broadcast_remaining(sinks: Iterable[PollSink], seconds: float) -> None:
    for sink in sinks:
        try:
            sink.on_remaining(seconds)
        except Exception as e:
            log.error(f"Sink {type(sink).__name__} failed on countdown: {e}")


__all__ = [
    "PollSink",
    "LoggingSink",
    "ExportSink",
    "TranscriptSink",
    "broadcast_result",
    "broadcast_chat_line",
    "broadcast_remaining",
]
