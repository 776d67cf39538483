"""
Configuration management for the yoga API client.

Handles loading/saving configuration from a JSON file in the app
directory, and environment overrides for the API base URLs.
"""

import json
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from . import __version__ as APP_VERSION
from .session import (
    CONNECT_TIMEOUT,
    FALLBACK_PROBE_TIMEOUT,
    MAX_RETRIES,
    PRIMARY_PROBE_TIMEOUT,
    REQUEST_TIMEOUT,
    RETRY_DELAY,
    get_bool_env,
    get_float_env,
    get_int_env,
)


# Default API endpoints (production on Render, local Express server)
DEFAULT_API_URL = "https://yoga-pose-detection-1.onrender.com/api"
DEFAULT_LOCAL_API_URL = "http://localhost:5000/api"

APP_NAME = "YogaPose"


def normalize_api_url(url: str) -> str:
    """Normalize an API base URL.

    Accepts a bare host (``api.example.com/api``) or a full URL. Bare
    localhost-style hosts get ``http://``, everything else ``https://``.
    Trailing slashes are stripped so paths can be appended directly.
    """
    url = url.strip().rstrip("/")
    if url.startswith(("http://", "https://")):
        return url
    if url.startswith(("localhost", "127.0.0.1", "[::1]")):
        return f"http://{url}"
    return f"https://{url}"


def get_app_dir() -> Path:
    """Get the application data directory (%LOCALAPPDATA%/YogaPose or ~/YogaPose)."""
    local_app_data = os.environ.get("LOCALAPPDATA", os.path.expanduser("~"))
    return Path(local_app_data) / APP_NAME


def get_config_path() -> Path:
    """Get the path to the config file."""
    return get_app_dir() / "config.json"


def get_storage_path() -> Path:
    """Get the path to the durable key/value storage (session token)."""
    return get_app_dir() / "storage.json"


def get_log_dir() -> Path:
    """Get the log directory."""
    return get_app_dir() / "logs"


def get_log_path() -> Path:
    """Get the path to the current log file."""
    return get_log_dir() / "yoga-client.log"


class CandidateLabel(str, Enum):
    PRIMARY = "primary"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class EndpointCandidate:
    """A base URL the health prober may select."""
    label: CandidateLabel
    base_url: str
    probe_timeout: float


@dataclass
class Config:
    """Yoga API client configuration."""
    api_url: str = DEFAULT_API_URL
    local_api_url: str = DEFAULT_LOCAL_API_URL
    primary_probe_timeout: float = PRIMARY_PROBE_TIMEOUT
    fallback_probe_timeout: float = FALLBACK_PROBE_TIMEOUT
    request_timeout: float = REQUEST_TIMEOUT
    connect_timeout: float = CONNECT_TIMEOUT
    retry_delay: float = RETRY_DELAY
    max_retries: int = MAX_RETRIES
    native_shell: bool = False
    verify_ssl: bool = True
    ca_bundle: Optional[str] = None
    log_level: str = "INFO"

    def candidates(self) -> tuple[EndpointCandidate, ...]:
        """Endpoint candidates in priority order."""
        return (
            EndpointCandidate(
                CandidateLabel.PRIMARY,
                normalize_api_url(self.api_url),
                self.primary_probe_timeout,
            ),
            EndpointCandidate(
                CandidateLabel.FALLBACK,
                normalize_api_url(self.local_api_url),
                self.fallback_probe_timeout,
            ),
        )

    def apply_env(self) -> "Config":
        """Apply YOGA_* environment overrides in place and return self."""
        self.api_url = os.environ.get("YOGA_API_URL") or self.api_url
        self.local_api_url = os.environ.get("YOGA_LOCAL_API_URL") or self.local_api_url
        self.primary_probe_timeout = get_float_env(
            "YOGA_PRIMARY_PROBE_TIMEOUT", self.primary_probe_timeout
        )
        self.fallback_probe_timeout = get_float_env(
            "YOGA_FALLBACK_PROBE_TIMEOUT", self.fallback_probe_timeout
        )
        self.request_timeout = get_float_env("YOGA_REQUEST_TIMEOUT", self.request_timeout)
        self.connect_timeout = get_float_env("YOGA_CONNECT_TIMEOUT", self.connect_timeout)
        self.retry_delay = get_float_env("YOGA_RETRY_DELAY", self.retry_delay)
        self.max_retries = get_int_env("YOGA_MAX_RETRIES", self.max_retries)
        self.native_shell = get_bool_env("YOGA_NATIVE_SHELL", self.native_shell)
        self.verify_ssl = get_bool_env("YOGA_VERIFY_SSL", self.verify_ssl)
        self.ca_bundle = os.environ.get("YOGA_CA_BUNDLE") or self.ca_bundle
        self.log_level = os.environ.get("YOGA_LOG_LEVEL") or self.log_level
        return self

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        d = {
            "api_url": self.api_url,
            "local_api_url": self.local_api_url,
            "primary_probe_timeout": self.primary_probe_timeout,
            "fallback_probe_timeout": self.fallback_probe_timeout,
            "request_timeout": self.request_timeout,
            "connect_timeout": self.connect_timeout,
            "retry_delay": self.retry_delay,
            "max_retries": self.max_retries,
            "native_shell": self.native_shell,
            "verify_ssl": self.verify_ssl,
            "log_level": self.log_level,
        }
        if self.ca_bundle:
            d["ca_bundle"] = self.ca_bundle
        return d

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """Create config from dictionary."""
        return cls(
            api_url=data.get("api_url", DEFAULT_API_URL),
            local_api_url=data.get("local_api_url", DEFAULT_LOCAL_API_URL),
            primary_probe_timeout=float(data.get("primary_probe_timeout", PRIMARY_PROBE_TIMEOUT)),
            fallback_probe_timeout=float(data.get("fallback_probe_timeout", FALLBACK_PROBE_TIMEOUT)),
            request_timeout=float(data.get("request_timeout", REQUEST_TIMEOUT)),
            connect_timeout=float(data.get("connect_timeout", CONNECT_TIMEOUT)),
            retry_delay=float(data.get("retry_delay", RETRY_DELAY)),
            max_retries=int(data.get("max_retries", MAX_RETRIES)),
            native_shell=data.get("native_shell", False),
            verify_ssl=data.get("verify_ssl", True),
            ca_bundle=data.get("ca_bundle"),
            log_level=data.get("log_level", "INFO"),
        )

    def save(self, path: Optional[Path] = None) -> None:
        """Save configuration to file."""
        config_path = path or get_config_path()
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Config":
        """Load configuration from file, or return defaults if not found."""
        config_path = path or get_config_path()
        if config_path.exists():
            try:
                with open(config_path) as f:
                    data = json.load(f)
                return cls.from_dict(data)
            except (json.JSONDecodeError, IOError, TypeError, ValueError):
                # Return defaults if config is corrupted
                pass
        return cls()


def ensure_app_dirs() -> None:
    """Create application directories if they don't exist."""
    get_app_dir().mkdir(parents=True, exist_ok=True)
    get_log_dir().mkdir(parents=True, exist_ok=True)
