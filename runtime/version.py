"""Runtime version metadata for ChatPoll.

This module is import-safe and exposes authoritative version identifiers for
other runtime modules without executing side effects on import.
"""

from __future__ import annotations

PROJECT_NAME = "ChatPoll Runtime"
VERSION = "v0.1.0"
BUILD = "2026.10"
LICENSE = "MIT"

__all__ = [
    "PROJECT_NAME",
    "VERSION",
    "BUILD",
    "LICENSE",
    "as_string",
]


def as_string() -> str:
    return f"{PROJECT_NAME} {VERSION} (Build {BUILD})"
