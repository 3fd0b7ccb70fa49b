"""
Twitch IRC line parser.

Recognizes broadcast chat lines only and extracts (viewer, message) by
position rather than by a full IRC grammar:

    :viewer!viewer@viewer.tmi.twitch.tv PRIVMSG #channel :message text

Anything else (PING, numeric replies, JOIN/PART, CAP acks) yields None.
"""

from __future__ import annotations

from typing import Optional

from shared.chat.events import ChatEntry
from shared.logging.logger import get_logger

log = get_logger("core.parser")

BROADCAST_MARKER = "PRIVMSG"
VIEWER_DELIMITER = "!"
MESSAGE_DELIMITER = ":"


def _strip_tags(line: str) -> str:
    # IRCv3 tags: "@key=value;key2=value2 :prefix COMMAND ..."
    if line.startswith("@"):
        if " " not in line:
            return ""
        return line.split(" ", 1)[1]
    return line


def parse_chat_line(raw: str) -> Optional[ChatEntry]:
    """
    Parse one raw protocol line into a ChatEntry.

    Returns None for non-chat traffic and for malformed chat lines; never
    raises on bad input.
    """
    if not raw:
        return None

    line = raw.rstrip("\r\n")
    body = _strip_tags(line)
    if BROADCAST_MARKER not in body:
        return None

    split_point = body.find(VIEWER_DELIMITER, 1)
    if split_point < 0:
        log.debug(f"Dropping malformed chat line (no viewer delimiter): {line!r}")
        return None

    viewer = body[1:split_point]
    if not viewer:
        log.debug(f"Dropping malformed chat line (empty viewer): {line!r}")
        return None

    message_point = body.find(MESSAGE_DELIMITER, split_point + 1)
    if message_point < 0:
        log.debug(f"Dropping malformed chat line (no message delimiter): {line!r}")
        return None

    return ChatEntry(viewer=viewer, text=body[message_point + 1:], raw=line)


__all__ = ["BROADCAST_MARKER", "parse_chat_line"]
