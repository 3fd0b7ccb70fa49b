"""
Cycle manager.

Owns the repeating poll timer. It never reads a clock: the host feeds it
elapsed time through tick() (or forces an expiry with expire()), and on
expiry it resolves the cycle through the engine, hands the outcome to the
sinks and restarts the countdown.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from core.engine import PollEngine
from core.sinks import PollSink, broadcast_remaining, broadcast_result
from core.tallies import PollQuery, TallyOutcome
from shared.logging.logger import get_logger

log = get_logger("core.cycle")


class CycleManager:
    def __init__(
        self,
        engine: PollEngine,
        *,
        duration_seconds: float,
        query: PollQuery = PollQuery.MOST_COMMON,
        candidates: Optional[Sequence[str]] = None,
        sinks: Iterable[PollSink] = (),
    ):
        duration = float(duration_seconds)
        if duration <= 0:
            raise ValueError(f"cycle duration must be positive, got {duration_seconds!r}")

        self.engine = engine
        self.duration_seconds = duration
        self.query = PollQuery.parse(query)
        self.candidates = tuple(candidates) if candidates is not None else None
        self.sinks: List[PollSink] = list(sinks)

        self._remaining = duration
        self._cycle = 1
        self._stopped = False
        self._last_outcome: Optional[TallyOutcome] = None

    # ------------------------------------------------------------------ #
    # Read-only views
    # ------------------------------------------------------------------ #

    @property
    def remaining(self) -> float:
        return self._remaining

    @property
    def cycle(self) -> int:
        """Number of the cycle currently accumulating (starts at 1)."""
        return self._cycle

    @property
    def last_outcome(self) -> Optional[TallyOutcome]:
        return self._last_outcome

    @property
    def stopped(self) -> bool:
        return self._stopped

    # ------------------------------------------------------------------ #
    # Timer entry points
    # ------------------------------------------------------------------ #

    def tick(self, elapsed_seconds: float) -> Optional[TallyOutcome]:
        """
        Advance the countdown. Returns the outcome if this tick ended a cycle.
        """
        if self._stopped:
            return None

        self._remaining -= max(0.0, float(elapsed_seconds))
        broadcast_remaining(self.sinks, max(0.0, self._remaining))

        if self._remaining <= 0:
            return self.expire()
        return None

    def expire(self) -> TallyOutcome:
        """
        End the current cycle now: resolve, emit, reset and restart.
        """
        cycle = self._cycle
        outcome = self.engine.resolve_cycle(self.query, self.candidates)

        self._last_outcome = outcome
        self._cycle += 1
        self._remaining = self.duration_seconds

        log.info(
            f"[cycle {cycle}] resolved {outcome.winner!r} "
            f"from {outcome.log_size} response(s)"
        )
        broadcast_result(self.sinks, outcome, cycle=cycle)
        return outcome

    def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        log.info(f"Cycle manager stopped during cycle {self._cycle}")


__all__ = ["CycleManager"]
