"""
Configuration loader.

Reads the poll configuration document, validates it against the JSON schema
and resolves Twitch credentials from the environment. Schema violations are
treated as warnings so the runtime can still boot with per-field defaults;
scripts/validate_config.py is the strict gate.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from jsonschema import Draft7Validator

from shared.config.poll import PollConfig, load_poll_config
from shared.logging.logger import get_logger

log = get_logger("core.config_loader")

ROOT = Path(__file__).resolve().parents[1]


@dataclass
class TwitchCredentials:
    token: str = ""
    channel: str = ""
    nickname: str = ""

    @property
    def complete(self) -> bool:
        return bool(self.token and self.channel)


class ConfigLoader:
    """
    Loads and validates the poll configuration.

    Files:
      - shared/config/poll.json (default document)
      - schemas/poll.schema.json (Draft 7 schema)

    Environment:
      - TWITCH_OAUTH_TOKEN, TWITCH_CHANNEL, TWITCH_BOT_NICK
    """

    CONFIG_PATH = ROOT / "shared" / "config" / "poll.json"
    SCHEMA_PATH = ROOT / "schemas" / "poll.schema.json"

    def __init__(
        self,
        config_path: Path | str | None = None,
        *,
        schema_path: Path | str | None = None,
    ) -> None:
        self.config_path = Path(config_path) if config_path else self.CONFIG_PATH
        self.schema_path = Path(schema_path) if schema_path else self.SCHEMA_PATH

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _load_json(self, path: Path, name: str) -> Dict[str, Any]:
        if not path.exists():
            log.warning(f"{name} config not found at {path}; using defaults")
            return {}

        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
                if isinstance(data, dict):
                    return data
                log.warning(f"{name} config root is not an object; ignoring")
        except (OSError, ValueError) as e:
            log.warning(f"Failed to load {name} config ({e}); using defaults")

        return {}

    def _load_schema(self) -> Optional[Dict[str, Any]]:
        if not self.schema_path.exists():
            log.debug(f"Poll schema not found at {self.schema_path}; skipping")
            return None

        try:
            return json.loads(self.schema_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            log.warning(f"Failed to load poll schema ({e}); skipping validation")
            return None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def load_document(self) -> Dict[str, Any]:
        return self._load_json(self.config_path, "poll")

    def validation_errors(self, payload: Dict[str, Any]) -> List[str]:
        """
        Return human-readable schema violations ("path: message"), sorted by
        location. Empty when the payload is valid or no schema is available.
        """
        schema = self._load_schema()
        if schema is None:
            return []

        validator = Draft7Validator(schema)
        errors = sorted(validator.iter_errors(payload), key=lambda e: list(e.path))
        return [
            f"{'/'.join(str(p) for p in err.path) or '<root>'}: {err.message}"
            for err in errors
        ]

    def load(self) -> PollConfig:
        """
        Load, validate (warnings only) and normalize the poll configuration.
        """
        data = self.load_document()
        if data:
            for problem in self.validation_errors(data):
                log.warning(f"poll config validation warning at {problem}")

        config = load_poll_config(data)
        log.info(f"Poll configuration loaded: {config.to_dict()}")
        return config

    @staticmethod
    def twitch_credentials() -> TwitchCredentials:
        creds = TwitchCredentials(
            token=os.getenv("TWITCH_OAUTH_TOKEN", "").strip(),
            channel=os.getenv("TWITCH_CHANNEL", "").strip(),
            nickname=os.getenv("TWITCH_BOT_NICK", "").strip(),
        )
        log.debug(
            "Twitch credentials resolved: "
            f"token={'SET' if creds.token else 'MISSING'}, "
            f"channel={'SET' if creds.channel else 'MISSING'}, "
            f"nickname={'SET' if creds.nickname else 'MISSING'}"
        )
        return creds
