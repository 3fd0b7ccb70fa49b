import logging
import os
from datetime import datetime
from pathlib import Path

_LOGGERS = {}


def _log_dir() -> Path | None:
    """
    Resolve the per-run log directory.

    CHATPOLL_LOG_DIR overrides the default ./logs; an empty value disables
    file logging entirely (console only).
    """
    raw = os.getenv("CHATPOLL_LOG_DIR")
    if raw is None:
        return Path("logs")
    raw = raw.strip()
    if not raw:
        return None
    return Path(raw)


def get_logger(
    name: str,
    *,
    runtime: str = "chatpoll",
) -> logging.Logger:
    """
    Create or retrieve a named logger.

    Parameters:
    - name: logger namespace (e.g. core.engine, twitch.chat)
    - runtime: log file prefix (chatpoll | replay | future runtimes)
    """
    cache_key = f"{runtime}:{name}"
    if cache_key in _LOGGERS:
        return _LOGGERS[cache_key]

    logger = logging.getLogger(cache_key)
    logger.setLevel(logging.DEBUG)

    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    )

    # ------------------------------
    # Console handler
    # ------------------------------
    console = logging.StreamHandler()
    console.setFormatter(formatter)
    console.setLevel(logging.INFO)
    logger.addHandler(console)

    # ------------------------------
    # File handler (one per run)
    # ------------------------------
    log_dir = _log_dir()
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        logfile = log_dir / f"{runtime}-{timestamp}.log"

        file_handler = logging.FileHandler(logfile, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False
    _LOGGERS[cache_key] = logger

    return logger
