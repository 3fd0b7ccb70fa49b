"""
Poll engine: owner of per-cycle state.

Two plain entry points drive it:
- ingest_line(): called whenever the line source delivers a raw line
- resolve_cycle(): called by the cycle manager when the timer expires

Both run under one lock so no append is lost or counted twice across a
reset boundary, and no partial tally is ever exposed.
"""

from __future__ import annotations

import random
import threading
from typing import List, Optional, Sequence

from core.errors import EngineStoppedError
from core.parser import parse_chat_line
from core.responses import CycleState, ResponseFilter, Verdict
from core.tallies import PollQuery, TallyOutcome, TieBreakPolicy, resolve
from shared.chat.events import ChatEntry
from shared.logging.logger import get_logger
from shared.storage.transcript import Transcript

log = get_logger("core.engine")


class PollEngine:
    def __init__(
        self,
        candidates: Sequence[str],
        *,
        dedup_per_viewer: bool = False,
        policy: TieBreakPolicy = TieBreakPolicy.RANDOM,
        transcript: Optional[Transcript] = None,
        rng: Optional[random.Random] = None,
    ):
        self._candidates = tuple(candidates)
        self.policy = TieBreakPolicy.parse(policy)
        self.transcript = transcript if transcript is not None else Transcript()
        self._filter = ResponseFilter(
            dedup_per_viewer=dedup_per_viewer,
            transcript=self.transcript,
        )
        self._rng = rng
        self._state = CycleState()
        self._lock = threading.Lock()
        self._stopped = False

        # Observational counters; never consulted by resolution.
        self._metrics = {
            "lines": 0,
            "parsed": 0,
            "accepted": 0,
            "resolutions": 0,
        }

    # ------------------------------------------------------------------ #
    # Configuration views
    # ------------------------------------------------------------------ #

    @property
    def candidates(self) -> tuple:
        return self._candidates

    def set_candidates(self, candidates: Sequence[str]) -> None:
        """
        Replace the active candidate set.

        Takes effect for subsequent ingestion and resolutions; entries already
        in the working log are kept and re-tallied against the new set.
        """
        with self._lock:
            self._candidates = tuple(candidates)
        log.info(f"Active candidates set to {list(self._candidates)}")

    @property
    def dedup_per_viewer(self) -> bool:
        return self._filter.dedup_per_viewer

    @property
    def stopped(self) -> bool:
        return self._stopped

    # ------------------------------------------------------------------ #
    # Ingestion
    # ------------------------------------------------------------------ #

    def ingest_line(self, raw: str) -> Optional[ChatEntry]:
        """
        Parse and filter one raw protocol line.

        Returns the parsed entry when it reached the transcript (counted or
        not). Returns None for non-chat lines, malformed lines, repeat answers
        under per-viewer dedup, and anything received after stop().
        """
        entry = parse_chat_line(raw)

        with self._lock:
            if self._stopped:
                return None

            self._metrics["lines"] += 1
            if entry is None:
                return None

            self._metrics["parsed"] += 1
            verdict = self._accept(entry)

        return None if verdict is Verdict.DUPLICATE else entry

    def ingest_entry(self, entry: ChatEntry) -> Optional[Verdict]:
        """Filter an already-parsed entry. Returns None after stop()."""
        with self._lock:
            if self._stopped:
                return None
            return self._accept(entry)

    def _accept(self, entry: ChatEntry) -> Verdict:
        verdict = self._filter.accept(entry, self._candidates, self._state)
        if verdict.counted:
            self._metrics["accepted"] += 1
        return verdict

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def tally(self, candidates: Optional[Sequence[str]] = None) -> TallyOutcome:
        """Resolve against the current working log without resetting it."""
        return self._resolve(candidates, PollQuery.MOST_COMMON, reset=False)

    def most_common(self, candidates: Optional[Sequence[str]] = None) -> str:
        return self._resolve(candidates, PollQuery.MOST_COMMON, reset=False).winner

    def least_common(self, candidates: Optional[Sequence[str]] = None) -> str:
        return self._resolve(candidates, PollQuery.LEAST_COMMON, reset=False).winner

    def resolve_cycle(
        self,
        query: PollQuery = PollQuery.MOST_COMMON,
        candidates: Optional[Sequence[str]] = None,
    ) -> TallyOutcome:
        """
        Resolve the current cycle and clear its state as one atomic step.
        """
        return self._resolve(candidates, query, reset=True)

    def _resolve(
        self,
        candidates: Optional[Sequence[str]],
        query: PollQuery,
        *,
        reset: bool,
    ) -> TallyOutcome:
        with self._lock:
            if self._stopped:
                raise EngineStoppedError("Poll engine has been stopped")

            options = self._candidates if candidates is None else tuple(candidates)
            outcome = resolve(
                options,
                self._state.working_log,
                query=PollQuery.parse(query),
                policy=self.policy,
                rng=self._rng,
            )
            self._metrics["resolutions"] += 1

            if reset:
                self._state.clear()

        log.debug(
            f"Resolved {outcome.query.value}: {outcome.winner!r} "
            f"counts={outcome.counts_by_candidate()} tie_broken={outcome.tie_broken}"
        )
        return outcome

    # ------------------------------------------------------------------ #
    # Lifecycle / visibility
    # ------------------------------------------------------------------ #

    def stop(self) -> None:
        """
        Stop accepting lines and resolutions.

        Waits for any in-flight resolution to finish; it either completed
        fully or had not started.
        """
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
            pending = len(self._state.working_log)
        log.info(f"Poll engine stopped ({pending} unresolved response(s) abandoned)")

    def working_log(self) -> List[str]:
        with self._lock:
            return list(self._state.working_log)

    def submitted_viewers(self) -> set:
        with self._lock:
            return set(self._state.submitted_viewers)

    def get_metrics(self) -> dict:
        with self._lock:
            return dict(self._metrics)


__all__ = ["PollEngine"]
