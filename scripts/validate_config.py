"""
======================================================================
 ChatPoll Runtime — Version v0.1.0 (Build 2026.10)
======================================================================

Configuration validation script.

Validates a poll configuration file against schemas/poll.schema.json.

Design rules:
- No side effects on import
- No runtime startup
- Validation only (no mutation)
- Forward-compatible: unknown fields are ignored
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from core.config_loader import ConfigLoader


# ------------------------------------------------------------
# Helpers
# ------------------------------------------------------------

def _load_json(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ValueError(f"{path}: file not found")

    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise ValueError(f"{path.name}: invalid JSON ({e})") from e

    if not isinstance(data, dict):
        raise ValueError(f"{path.name}: root JSON value must be an object")
    return data


def _error(msg: str):
    print(f"[CONFIG ERROR] {msg}", file=sys.stderr)


# ------------------------------------------------------------
# Validators
# ------------------------------------------------------------

def validate_poll_config(path: Optional[Path] = None) -> List[str]:
    """
    Validate a poll config document. Returns the list of problems found.
    """
    loader = ConfigLoader(path)

    try:
        data = _load_json(loader.config_path)
    except ValueError as e:
        return [str(e)]

    return [
        f"{loader.config_path.name}: {problem}"
        for problem in loader.validation_errors(data)
    ]


# ------------------------------------------------------------
# Entry point
# ------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Validate a ChatPoll config file")
    parser.add_argument("config", nargs="?", help="Config path (defaults to shared/config/poll.json)")
    args = parser.parse_args(argv)

    problems = validate_poll_config(Path(args.config) if args.config else None)
    for problem in problems:
        _error(problem)

    if problems:
        print("Configuration validation failed.", file=sys.stderr)
        return 1

    print("Configuration validation passed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
