"""Tally counting and tie-break resolution."""

import random
from collections import Counter

import pytest

from core.errors import EmptyCandidateSetError
from core.tallies import (
    PollQuery,
    TieBreakPolicy,
    count_responses,
    first_occurrences,
    least_common,
    most_common,
    resolve,
)


def test_count_responses_matches_exactly() -> None:
    log = ["a", "b", "a", "zzz", "a"]
    assert count_responses(["a", "b", "c"], log) == [3, 1, 0]


def test_sum_of_tally_never_exceeds_log() -> None:
    log = ["a", "b", "x", "y"]
    counts = count_responses(["a", "b"], log)
    assert sum(counts) <= len(log)

    matching = ["a", "b", "b"]
    assert sum(count_responses(["a", "b"], matching)) == len(matching)


def test_duplicate_candidates_count_independently() -> None:
    assert count_responses(["a", "a", "b"], ["a", "a", "b"]) == [2, 2, 1]


def test_candidates_are_compared_normalized() -> None:
    assert count_responses(["Yes ", "NO"], ["yes", "no", "no"]) == [1, 2]


def test_tally_is_idempotent() -> None:
    log = ["b", "a", "a"]
    assert count_responses(["a", "b"], log) == count_responses(["a", "b"], log)


def test_first_occurrences() -> None:
    assert first_occurrences(["b", "a", "b", "c"]) == {"b": 0, "a": 1, "c": 3}


def test_single_extreme_ignores_policy(rng) -> None:
    log = ["b", "a", "a"]
    for policy in TieBreakPolicy:
        outcome = resolve(["a", "b"], log, policy=policy, rng=rng)
        assert outcome.winner == "a"
        assert outcome.counts == (2, 1)
        assert not outcome.tie_broken


def test_least_common_single_extreme(rng) -> None:
    log = ["b", "a", "a"]
    assert least_common(["a", "b"], log, policy=TieBreakPolicy.RANDOM, rng=rng) == "b"


def test_first_option_is_deterministic() -> None:
    log = ["c", "b", "c", "b"]
    results = {
        most_common(["a", "b", "c"], log, policy=TieBreakPolicy.FIRST_OPTION)
        for _ in range(50)
    }
    assert results == {"b"}


def test_fastest_reached_prefers_earliest_first_occurrence() -> None:
    assert most_common(["a", "b"], ["a", "b"], policy=TieBreakPolicy.FASTEST_REACHED) == "a"
    assert most_common(["a", "b"], ["b", "a"], policy=TieBreakPolicy.FASTEST_REACHED) == "b"


def test_fastest_reached_uses_first_not_last_occurrence() -> None:
    # b appears first; a reaches 2 last but b's first sighting is earlier.
    log = ["b", "a", "a", "b"]
    assert most_common(["a", "b"], log, policy=TieBreakPolicy.FASTEST_REACHED) == "b"


def test_fastest_reached_absent_candidates_rank_last() -> None:
    # counts a=1, b=0, c=0: b and c tie and neither appears in the log
    log = ["a", "x"]
    outcome = resolve(
        ["a", "b", "c"],
        log,
        query=PollQuery.LEAST_COMMON,
        policy=TieBreakPolicy.FASTEST_REACHED,
    )
    assert outcome.tied_indices == (1, 2)
    assert outcome.winner == "b"


def test_fastest_reached_all_zero_falls_back_to_first_option() -> None:
    outcome = resolve(["x", "y", "z"], [], policy=TieBreakPolicy.FASTEST_REACHED)
    assert outcome.counts == (0, 0, 0)
    assert outcome.winner == "x"


def test_least_common_fastest_reached_among_present() -> None:
    log = ["b", "a", "c", "c"]
    outcome = resolve(
        ["a", "b", "c"],
        log,
        query=PollQuery.LEAST_COMMON,
        policy=TieBreakPolicy.FASTEST_REACHED,
    )
    assert outcome.tied_indices == (0, 1)
    assert outcome.winner == "b"


def test_result_is_always_a_candidate(rng) -> None:
    candidates = ["1", "2", "3", "4"]
    logs = [[], ["1"], ["2", "2", "3"], ["9", "9"], ["4", "3", "2", "1"]]
    for log in logs:
        for query in PollQuery:
            for policy in TieBreakPolicy:
                outcome = resolve(candidates, log, query=query, policy=policy, rng=rng)
                assert 0 <= outcome.index < len(candidates)
                assert outcome.winner in candidates
                assert outcome.index in outcome.tied_indices


def test_random_tie_break_is_roughly_uniform() -> None:
    generator = random.Random(42)
    trials = 6000
    picks = Counter(
        most_common(["a", "b", "c"], ["a", "b", "c"], policy=TieBreakPolicy.RANDOM, rng=generator)
        for _ in range(trials)
    )
    assert set(picks) == {"a", "b", "c"}
    for count in picks.values():
        assert abs(count - trials / 3) < trials * 0.05


def test_random_only_picks_tied_candidates(rng) -> None:
    for _ in range(200):
        winner = most_common(["a", "b", "c"], ["a", "c"], policy=TieBreakPolicy.RANDOM, rng=rng)
        assert winner in {"a", "c"}


def test_empty_candidate_set_raises() -> None:
    with pytest.raises(EmptyCandidateSetError):
        resolve([], ["a"])
    with pytest.raises(ValueError):
        most_common([], [])


def test_outcome_document() -> None:
    outcome = resolve(["a", "b"], ["a", "b"], policy=TieBreakPolicy.FIRST_OPTION)
    doc = outcome.to_document()
    assert doc["winner"] == "a"
    assert doc["counts"] == [1, 1]
    assert doc["tie_broken"] is True
    assert doc["policy"] == "first_option"
    assert doc["query"] == "most_common"


def test_policy_parse_accepts_names_and_values() -> None:
    assert TieBreakPolicy.parse("fastest_reached") is TieBreakPolicy.FASTEST_REACHED
    assert TieBreakPolicy.parse("First Option") is TieBreakPolicy.FIRST_OPTION
    assert TieBreakPolicy.parse(TieBreakPolicy.RANDOM) is TieBreakPolicy.RANDOM
    with pytest.raises(ValueError):
        TieBreakPolicy.parse("loudest")
