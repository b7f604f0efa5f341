"""
Token Store — persists the bearer token across client restarts.

The token lives under a single well-known key in a small JSON state
file. Nothing else about the token (expiry, owner) is tracked here.
"""

import json
import logging
import threading
from pathlib import Path
from typing import Optional

import config

logger = logging.getLogger(__name__)

TOKEN_KEY = "token"


class TokenStore:
    """File-backed get/set/clear for one opaque token string."""

    def __init__(self, path=None):
        self.path = Path(path or config.CLIENT_STATE_PATH)
        self._lock = threading.Lock()

    def _read_state(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r") as f:
                state = json.load(f)
            return state if isinstance(state, dict) else {}
        except (OSError, ValueError) as e:
            logger.warning(f"Unreadable client state at {self.path}: {e}")
            return {}

    def _write_state(self, state: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w") as f:
            json.dump(state, f, indent=2)
        tmp_path.replace(self.path)

    def get(self) -> Optional[str]:
        with self._lock:
            token = self._read_state().get(TOKEN_KEY)
        return token or None

    def set(self, token: str) -> None:
        if not token:
            raise ValueError("Refusing to persist an empty token")
        with self._lock:
            state = self._read_state()
            state[TOKEN_KEY] = token
            self._write_state(state)

    def clear(self) -> None:
        with self._lock:
            state = self._read_state()
            if TOKEN_KEY not in state:
                return
            del state[TOKEN_KEY]
            self._write_state(state)
        logger.debug("Persisted token cleared")
