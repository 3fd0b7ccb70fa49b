"""PollEngine: ingestion, atomic resolve-and-reset, stop semantics."""

import threading

import pytest
from conftest import privmsg

from core.engine import PollEngine
from core.errors import EngineStoppedError
from core.responses import Verdict
from core.tallies import PollQuery, TieBreakPolicy
from shared.chat.events import ChatEntry


def test_dedup_scenario_counts_first_answer_only() -> None:
    engine = PollEngine(["yes", "no"], dedup_per_viewer=True, policy=TieBreakPolicy.FIRST_OPTION)
    engine.ingest_line(privmsg("v1", "yes"))
    engine.ingest_line(privmsg("v1", "no"))

    outcome = engine.tally()
    assert outcome.counts_by_candidate() == [("yes", 1), ("no", 0)]


def test_ingest_line_return_values() -> None:
    engine = PollEngine(["yes", "no"], dedup_per_viewer=True)

    assert engine.ingest_line("PING :tmi.twitch.tv") is None
    first = engine.ingest_line(privmsg("v1", "yes"))
    assert first is not None and first.viewer == "v1"
    assert engine.ingest_line(privmsg("v1", "no")) is None


def test_malformed_line_leaves_state_untouched() -> None:
    engine = PollEngine(["a", "b"])
    engine.ingest_line(privmsg("v1", "a"))
    before = engine.working_log()

    assert engine.ingest_line(":nobody PRIVMSG #chan no delimiters") is None
    assert engine.ingest_line("garbage PRIVMSG") is None
    assert engine.working_log() == before


def test_resolve_cycle_resets_state() -> None:
    engine = PollEngine(["a", "b"], dedup_per_viewer=True, policy=TieBreakPolicy.FIRST_OPTION)
    engine.ingest_line(privmsg("v1", "b"))
    engine.ingest_line(privmsg("v2", "b"))

    outcome = engine.resolve_cycle()
    assert outcome.winner == "b"
    assert engine.working_log() == []
    assert engine.submitted_viewers() == set()

    again = engine.resolve_cycle()
    assert again.counts == (0, 0)
    assert again.tie_broken


def test_viewer_may_answer_again_after_reset() -> None:
    engine = PollEngine(["a", "b"], dedup_per_viewer=True)
    engine.ingest_line(privmsg("v1", "a"))
    engine.resolve_cycle()
    engine.ingest_line(privmsg("v1", "b"))
    assert engine.working_log() == ["b"]


def test_queries_do_not_reset() -> None:
    engine = PollEngine(["a", "b"], policy=TieBreakPolicy.FIRST_OPTION)
    for viewer, text in [("v1", "a"), ("v2", "a"), ("v3", "b")]:
        engine.ingest_line(privmsg(viewer, text))

    assert engine.most_common() == "a"
    assert engine.least_common() == "b"
    assert engine.most_common(["b", "c"]) == "b"
    assert len(engine.working_log()) == 3


def test_least_common_cycle_query() -> None:
    engine = PollEngine(["a", "b", "c"], policy=TieBreakPolicy.FASTEST_REACHED)
    for viewer, text in [("v1", "c"), ("v2", "a"), ("v3", "a")]:
        engine.ingest_line(privmsg(viewer, text))
    outcome = engine.resolve_cycle(PollQuery.LEAST_COMMON)
    assert outcome.winner == "b"


def test_transcript_keeps_history_across_cycles() -> None:
    engine = PollEngine(["a"])
    engine.ingest_line(privmsg("v1", "a"))
    engine.resolve_cycle()
    engine.ingest_line(privmsg("v2", "hello"))
    assert engine.transcript.lines() == ["v1: a", "v2: hello"]


def test_ingest_entry_reports_verdict() -> None:
    engine = PollEngine(["a"], dedup_per_viewer=True)
    assert engine.ingest_entry(ChatEntry("v1", "nope")) is Verdict.UNMATCHED
    assert engine.ingest_entry(ChatEntry("v1", "A")) is Verdict.COUNTED
    assert engine.ingest_entry(ChatEntry("v1", "a")) is Verdict.DUPLICATE


def test_stop_blocks_further_work() -> None:
    engine = PollEngine(["a", "b"])
    engine.ingest_line(privmsg("v1", "a"))
    engine.stop()

    assert engine.stopped
    assert engine.ingest_line(privmsg("v2", "b")) is None
    assert engine.ingest_entry(ChatEntry("v3", "b")) is None
    with pytest.raises(EngineStoppedError):
        engine.resolve_cycle()


def test_set_candidates_applies_to_next_resolution() -> None:
    engine = PollEngine(["a", "b"], policy=TieBreakPolicy.FIRST_OPTION)
    engine.ingest_line(privmsg("v1", "c"))
    engine.set_candidates(["b", "c"])
    assert engine.candidates == ("b", "c")
    assert engine.resolve_cycle().winner == "c"


def test_concurrent_ingest_and_resolve_lose_nothing() -> None:
    engine = PollEngine(["a"])
    per_thread = 500
    threads = 4
    totals = []

    def produce(tag: int) -> None:
        for i in range(per_thread):
            engine.ingest_line(privmsg(f"v{tag}_{i}", "a"))

    workers = [threading.Thread(target=produce, args=(t,)) for t in range(threads)]
    for w in workers:
        w.start()
    while any(w.is_alive() for w in workers):
        totals.append(engine.resolve_cycle().counts[0])
    for w in workers:
        w.join()
    totals.append(engine.resolve_cycle().counts[0])

    assert sum(totals) == per_thread * threads


def test_metrics_track_ingestion() -> None:
    engine = PollEngine(["a"], dedup_per_viewer=True)
    engine.ingest_line("PING :tmi.twitch.tv")
    engine.ingest_line(privmsg("v1", "a"))
    engine.ingest_line(privmsg("v1", "a"))
    engine.resolve_cycle()

    metrics = engine.get_metrics()
    assert metrics == {"lines": 3, "parsed": 2, "accepted": 1, "resolutions": 1}
