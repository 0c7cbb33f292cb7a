"""
Sync client configuration.

Values come from constructor arguments first, then environment variables
(a ``.env`` file is loaded once at import), then defaults:

    SESSIONSYNC_BASE_URL         server address, default http://127.0.0.1:8080
    SESSIONSYNC_SYNC_PATH        sync endpoint path, default /api/v1/sync
    SESSIONSYNC_CONNECT_TIMEOUT  seconds to establish the connection, default 10
    SESSIONSYNC_AUTH_TOKEN       optional bearer token

Reads are never timed out: a sync can legitimately stay silent for a long
time between progress events. Callers wanting a deadline abort the handle.
"""

import os
from dataclasses import dataclass
from typing import Dict, Optional

import httpx
from dotenv import load_dotenv

from sessionsync.exceptions import ConfigurationError

load_dotenv()

DEFAULT_BASE_URL = "http://127.0.0.1:8080"
DEFAULT_SYNC_PATH = "/api/v1/sync"
DEFAULT_CONNECT_TIMEOUT = 10.0


def normalize_base_url(url: str) -> str:
    """
    Normalize a server address into a base URL.

    Rules:
    1. Strip surrounding whitespace
    2. Add http:// when no scheme is given
    3. Remove trailing slashes

    Examples:
        127.0.0.1:8080 -> http://127.0.0.1:8080
        https://sync.example.com/ -> https://sync.example.com
    """
    if not url:
        return url

    url = url.strip()

    if not url.startswith(("http://", "https://")):
        url = f"http://{url}"

    return url.rstrip("/")


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(name, f"{raw!r} is not a number") from None
    if value <= 0:
        raise ConfigurationError(name, "must be positive")
    return value


@dataclass(frozen=True)
class SyncClientConfig:
    """Connection settings for sync sessions."""

    base_url: str = DEFAULT_BASE_URL
    sync_path: str = DEFAULT_SYNC_PATH
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    auth_token: Optional[str] = None

    @classmethod
    def from_env(cls, base_url: Optional[str] = None) -> "SyncClientConfig":
        """
        Build config from the environment.

        Args:
            base_url: Server address (defaults to env SESSIONSYNC_BASE_URL)

        Raises:
            ConfigurationError: An environment value is malformed
        """
        sync_path = os.environ.get("SESSIONSYNC_SYNC_PATH", DEFAULT_SYNC_PATH).strip()
        if not sync_path.startswith("/"):
            sync_path = f"/{sync_path}"

        return cls(
            base_url=normalize_base_url(
                base_url or os.environ.get("SESSIONSYNC_BASE_URL", DEFAULT_BASE_URL)
            ),
            sync_path=sync_path,
            connect_timeout=_env_float("SESSIONSYNC_CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT),
            auth_token=os.environ.get("SESSIONSYNC_AUTH_TOKEN") or None,
        )

    @property
    def sync_url(self) -> str:
        return f"{normalize_base_url(self.base_url)}{self.sync_path}"

    @property
    def timeout(self) -> httpx.Timeout:
        return httpx.Timeout(None, connect=self.connect_timeout)

    def headers(self) -> Dict[str, str]:
        headers = {"Accept": "text/event-stream", "Cache-Control": "no-cache"}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        return headers
