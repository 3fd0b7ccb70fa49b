"""
Atomic JSON publisher for poll result exports.

Overlays poll the export file while the runtime rewrites it every cycle, so
each write goes to a temp file in the same directory and is swapped in with
a single rename.
"""
from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from shared.logging.logger import get_logger

log = get_logger("shared.public_exports.publisher")


class PublicExportPublisher:
    DEFAULT_BASE_DIR = Path("exports/polls")

    def __init__(self, *, base_dir: Path | str | None = None) -> None:
        self._base_dir = Path(base_dir) if base_dir else self.DEFAULT_BASE_DIR

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def _write_atomic(self, target: Path, payload: Any) -> None:
        serialized = json.dumps(payload, indent=2, ensure_ascii=False)
        target.parent.mkdir(parents=True, exist_ok=True)

        with tempfile.NamedTemporaryFile(
            "w", dir=target.parent, delete=False, encoding="utf-8", suffix=".tmp"
        ) as tmp:
            tmp.write(serialized)
            tmp.flush()
            os.fsync(tmp.fileno())
            temp_path = Path(tmp.name)

        temp_path.replace(target)

    def publish(self, relative_path: Path | str, payload: Any) -> Path:
        """
        Write an export document under the base directory and return its path.
        """
        target = self._base_dir / Path(relative_path)

        try:
            self._write_atomic(target, payload)
        except OSError as exc:
            log.error(f"Failed to write poll export {target}: {exc}")
            raise

        log.debug(f"Poll export written to {target}")
        return target
