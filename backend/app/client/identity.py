"""Opaque client identifiers, created once and persisted in a local state file."""

import json
import logging
import random
import string
import time
from pathlib import Path

from app.core.config import settings

logger = logging.getLogger(__name__)

STATE_FILE_NAME = "client_state.json"
USER_ID_KEY = "crypto-chat-user-id"
SESSION_ID_KEY = "crypto-chat-session-id"


def generate_id() -> str:
    """Millisecond timestamp plus seven random base-36 characters."""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=7))
    return f"{int(time.time() * 1000)}_{suffix}"


class ClientIdentity:
    """Lazily creates ``user_...`` / ``session_...`` ids and reuses them across runs."""

    def __init__(self, state_file: Path | None = None) -> None:
        self._state_file = state_file or settings.data_dir / STATE_FILE_NAME

    def _load(self) -> dict[str, str]:
        if self._state_file.exists():
            try:
                return json.loads(self._state_file.read_text())
            except (OSError, json.JSONDecodeError) as e:
                logger.warning("Ignoring unreadable client state %s: %s", self._state_file, e)
        return {}

    def _save(self, state: dict[str, str]) -> None:
        self._state_file.parent.mkdir(parents=True, exist_ok=True)
        self._state_file.write_text(json.dumps(state))

    def _get_or_create(self, key: str, prefix: str) -> str:
        state = self._load()
        value = state.get(key)
        if not value:
            value = f"{prefix}_{generate_id()}"
            state[key] = value
            self._save(state)
        return value

    @property
    def user_id(self) -> str:
        return self._get_or_create(USER_ID_KEY, "user")

    @property
    def session_id(self) -> str:
        return self._get_or_create(SESSION_ID_KEY, "session")
