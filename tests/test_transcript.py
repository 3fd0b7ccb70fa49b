"""Append-only transcript and its JSONL mirror."""

import asyncio
import json

from conftest import privmsg

from core.engine import PollEngine
from core.sinks import TranscriptSink, broadcast_chat_line
from shared.chat.events import ChatEntry
from shared.storage.transcript import Transcript, TranscriptEntry, append_jsonl


def read_rows(path):
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


def test_append_and_lines() -> None:
    t = Transcript()
    t.append(ChatEntry("alice", "1", raw=":alice!... PRIVMSG #c :1"))
    t.append(ChatEntry("bob", "hello"))

    assert len(t) == 2
    assert t.lines() == ["alice: 1", "bob: hello"]
    assert t.last().viewer == "bob"
    assert [e.viewer for e in t] == ["alice", "bob"]


def test_entries_returns_copy() -> None:
    t = Transcript()
    t.append(ChatEntry("a", "b"))
    snapshot = t.entries()
    snapshot.clear()
    assert len(t) == 1


def test_append_jsonl(tmp_path) -> None:
    path = tmp_path / "logs" / "transcript.jsonl"
    written = append_jsonl(path, [TranscriptEntry("alice", "ja"), TranscriptEntry("bob", "nein")])

    rows = read_rows(path)
    assert written == 2
    assert [(r["viewer"], r["text"]) for r in rows] == [("alice", "ja"), ("bob", "nein")]
    assert all(r["ts"].endswith("Z") for r in rows)


def test_append_jsonl_failure_is_logged_not_raised(tmp_path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    assert append_jsonl(blocker / "transcript.jsonl", [TranscriptEntry("a", "b")]) == 0


def test_ingestion_does_not_touch_the_mirror_file(tmp_path) -> None:
    path = tmp_path / "logs" / "transcript.jsonl"
    sink = TranscriptSink(path)
    engine = PollEngine(["1", "2"])

    async def scenario():
        task = asyncio.create_task(sink.run())
        await asyncio.sleep(0)

        for viewer, text in [("alice", "1"), ("bob", "hello")]:
            entry = engine.ingest_line(privmsg(viewer, text))
            broadcast_chat_line([sink], entry)
        # Still queued: only the sink's own task writes.
        assert not path.exists()

        await sink.shutdown()
        await task

    asyncio.run(scenario())

    assert [(r["viewer"], r["text"]) for r in read_rows(path)] == [("alice", "1"), ("bob", "hello")]
    assert sink.lines_written == 2
    assert engine.transcript.lines() == ["alice: 1", "bob: hello"]


def test_transcript_sink_flushes_without_running(tmp_path) -> None:
    path = tmp_path / "transcript.jsonl"
    sink = TranscriptSink(path)
    sink.on_chat_line(ChatEntry("alice", "1"))

    asyncio.run(sink.shutdown())
    sink.on_chat_line(ChatEntry("late", "2"))

    assert [r["viewer"] for r in read_rows(path)] == ["alice"]
    # A run() started after shutdown returns at once.
    asyncio.run(asyncio.wait_for(sink.run(), timeout=1))
