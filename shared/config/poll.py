from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from core.tallies.models import PollQuery, TieBreakPolicy
from shared.logging.logger import get_logger

log = get_logger("shared.config.poll")

_CONFIG_PATH = Path(__file__).parent / "poll.json"

DEFAULT_CANDIDATES = ("1", "2", "3")


@dataclass
class PollConfig:
    candidates: List[str] = field(default_factory=lambda: list(DEFAULT_CANDIDATES))
    dedup_per_viewer: bool = False
    tie_break_policy: TieBreakPolicy = TieBreakPolicy.RANDOM
    cycle_duration_seconds: float = 20.0
    query: PollQuery = PollQuery.MOST_COMMON
    tick_interval_seconds: float = 0.25
    transcript_path: Optional[str] = None
    export_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "candidates": list(self.candidates),
            "dedup_per_viewer": self.dedup_per_viewer,
            "tie_break_policy": self.tie_break_policy.value,
            "cycle_duration_seconds": self.cycle_duration_seconds,
            "query": self.query.value,
            "tick_interval_seconds": self.tick_interval_seconds,
            "transcript_path": self.transcript_path,
            "export_path": self.export_path,
        }


def _load_json(path: Path) -> Dict[str, Any]:
    if not path.exists():
        log.warning(f"poll config not found at {path}; using defaults")
        return {}

    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
            return data if isinstance(data, dict) else {}
    except (OSError, ValueError) as e:
        log.warning(f"Failed to load poll config {path} ({e}); using defaults")
        return {}


def _load_candidates(raw: Any) -> List[str]:
    if raw is None:
        return list(DEFAULT_CANDIDATES)

    if isinstance(raw, str):
        raw = [part for part in raw.split(",")]

    if not isinstance(raw, (list, tuple)):
        log.warning("candidates must be a list of strings; using defaults")
        return list(DEFAULT_CANDIDATES)

    candidates = [str(c).strip() for c in raw if str(c).strip()]
    if not candidates:
        log.warning("candidates list is empty; using defaults")
        return list(DEFAULT_CANDIDATES)
    return candidates


def _load_bool(raw: Any, name: str, default: bool) -> bool:
    if raw is None:
        return default
    if isinstance(raw, bool):
        return raw
    log.warning(f"{name} must be boolean; defaulting to {str(default).lower()}")
    return default


def _load_positive_float(raw: Any, name: str, default: float) -> float:
    if raw is None:
        return default
    try:
        value = float(raw)
    except (TypeError, ValueError):
        log.warning(f"{name} must be a number; defaulting to {default}")
        return default
    if value <= 0:
        log.warning(f"{name} must be positive; defaulting to {default}")
        return default
    return value


def _load_policy(raw: Any) -> TieBreakPolicy:
    if raw is None:
        return PollConfig.tie_break_policy
    try:
        return TieBreakPolicy.parse(raw)
    except ValueError:
        log.warning(f"Unknown tie_break_policy {raw!r}; defaulting to random")
        return PollConfig.tie_break_policy


def _load_query(raw: Any) -> PollQuery:
    if raw is None:
        return PollConfig.query
    try:
        return PollQuery.parse(raw)
    except ValueError:
        log.warning(f"Unknown query {raw!r}; defaulting to most_common")
        return PollConfig.query


def _load_optional_path(raw: Any, name: str) -> Optional[str]:
    if raw is None or raw == "":
        return None
    if not isinstance(raw, str):
        log.warning(f"{name} must be a string path; ignoring")
        return None
    return raw


def load_poll_config(raw: Optional[Dict[str, Any]] = None) -> PollConfig:
    raw = raw if raw is not None else _load_json(_CONFIG_PATH)
    if not isinstance(raw, dict):
        raw = {}

    poll_raw = raw.get("poll", raw)
    if not isinstance(poll_raw, dict):
        poll_raw = {}

    return PollConfig(
        candidates=_load_candidates(poll_raw.get("candidates")),
        dedup_per_viewer=_load_bool(
            poll_raw.get("dedup_per_viewer"), "dedup_per_viewer", PollConfig.dedup_per_viewer
        ),
        tie_break_policy=_load_policy(poll_raw.get("tie_break_policy")),
        cycle_duration_seconds=_load_positive_float(
            poll_raw.get("cycle_duration_seconds"),
            "cycle_duration_seconds",
            PollConfig.cycle_duration_seconds,
        ),
        query=_load_query(poll_raw.get("query")),
        tick_interval_seconds=_load_positive_float(
            poll_raw.get("tick_interval_seconds"),
            "tick_interval_seconds",
            PollConfig.tick_interval_seconds,
        ),
        transcript_path=_load_optional_path(poll_raw.get("transcript_path"), "transcript_path"),
        export_path=_load_optional_path(poll_raw.get("export_path"), "export_path"),
    )
