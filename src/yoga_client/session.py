"""
Session management utilities for the yoga API client.

Contains environment helpers, shared timing constants, and the persisted
token store read by every outgoing request.
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def get_int_env(name: str, default: int) -> int:
    """Get an integer from environment variable, with fallback to default."""
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def get_float_env(name: str, default: float) -> float:
    """Get a float from environment variable, with fallback to default."""
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def get_bool_env(name: str, default: bool) -> bool:
    """Get a boolean from environment variable."""
    value = os.environ.get(name, "").lower()
    if not value:
        return default
    return value in ("1", "true", "yes", "on")


# Timing constants - overridable via environment variables
PRIMARY_PROBE_TIMEOUT = get_float_env("YOGA_PRIMARY_PROBE_TIMEOUT", 6.0)  # seconds
FALLBACK_PROBE_TIMEOUT = get_float_env("YOGA_FALLBACK_PROBE_TIMEOUT", 3.0)  # seconds
REQUEST_TIMEOUT = get_float_env("YOGA_REQUEST_TIMEOUT", 60.0)  # seconds - whole dispatch
CONNECT_TIMEOUT = get_float_env("YOGA_CONNECT_TIMEOUT", 10.0)  # seconds - native connect phase
RETRY_DELAY = get_float_env("YOGA_RETRY_DELAY", 2.0)  # seconds - fixed backoff
MAX_RETRIES = get_int_env("YOGA_MAX_RETRIES", 2)  # retries after the first attempt

# Storage key for the persisted session token
TOKEN_KEY = "yogaToken"


class TokenStore:
    """Persisted holder for the session token.

    The token lives in a small JSON document under ``TOKEN_KEY``. Every
    mutation is written to disk before the method returns, so a request
    issued right after ``set_token()`` always sees the new value. With
    ``path=None`` the store is memory-only.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = path
        self._token: str | None = None
        if path is not None:
            self._token = self._read()

    def get_token(self) -> str | None:
        """Get the current token."""
        return self._token

    def set_token(self, token: str) -> None:
        """Store a new token and persist it."""
        if not token:
            raise ValueError("token must be a non-empty string")
        self._token = token
        self._write()

    def clear(self) -> None:
        """Forget the token (logout)."""
        self._token = None
        self._write()

    def _read(self) -> str | None:
        if not self.path.exists():
            return None
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Ignoring unreadable token storage {self.path}: {e}")
            return None
        token = data.get(TOKEN_KEY) if isinstance(data, dict) else None
        return token if isinstance(token, str) and token else None

    def _write(self) -> None:
        if self.path is None:
            return
        data: dict = {}
        if self.path.exists():
            try:
                with open(self.path, encoding="utf-8") as f:
                    loaded = json.load(f)
                if isinstance(loaded, dict):
                    data = loaded
            except (json.JSONDecodeError, IOError) as e:
                logger.warning(f"Overwriting unreadable token storage {self.path}: {e}")
        if self._token is None:
            data.pop(TOKEN_KEY, None)
        else:
            data[TOKEN_KEY] = self._token
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
