"""Tests for sync client configuration."""

import pytest

from sessionsync.core.config import (
    DEFAULT_BASE_URL,
    DEFAULT_CONNECT_TIMEOUT,
    SyncClientConfig,
    normalize_base_url,
)
from sessionsync.exceptions import ConfigurationError

ENV_VARS = (
    "SESSIONSYNC_BASE_URL",
    "SESSIONSYNC_SYNC_PATH",
    "SESSIONSYNC_CONNECT_TIMEOUT",
    "SESSIONSYNC_AUTH_TOKEN",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("127.0.0.1:8080", "http://127.0.0.1:8080"),
        ("https://sync.example.com/", "https://sync.example.com"),
        ("  http://localhost:8080//  ", "http://localhost:8080"),
        ("", ""),
    ],
)
def test_normalize_base_url(raw, expected):
    assert normalize_base_url(raw) == expected


def test_defaults():
    config = SyncClientConfig.from_env()
    assert config.base_url == DEFAULT_BASE_URL
    assert config.sync_url == f"{DEFAULT_BASE_URL}/api/v1/sync"
    assert config.connect_timeout == DEFAULT_CONNECT_TIMEOUT
    assert config.auth_token is None


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("SESSIONSYNC_BASE_URL", "sync.internal:9000")
    monkeypatch.setenv("SESSIONSYNC_SYNC_PATH", "v2/sync")
    monkeypatch.setenv("SESSIONSYNC_CONNECT_TIMEOUT", "2.5")
    monkeypatch.setenv("SESSIONSYNC_AUTH_TOKEN", "secret")

    config = SyncClientConfig.from_env()

    assert config.sync_url == "http://sync.internal:9000/v2/sync"
    assert config.connect_timeout == 2.5
    assert config.headers()["Authorization"] == "Bearer secret"


def test_argument_wins_over_environment(monkeypatch):
    monkeypatch.setenv("SESSIONSYNC_BASE_URL", "http://from-env")
    assert SyncClientConfig.from_env("http://from-arg/").base_url == "http://from-arg"


@pytest.mark.parametrize("raw", ["soon", "0", "-1"])
def test_invalid_connect_timeout(monkeypatch, raw):
    monkeypatch.setenv("SESSIONSYNC_CONNECT_TIMEOUT", raw)
    with pytest.raises(ConfigurationError, match="SESSIONSYNC_CONNECT_TIMEOUT"):
        SyncClientConfig.from_env()


def test_timeout_has_no_read_deadline():
    timeout = SyncClientConfig(connect_timeout=3.0).timeout
    assert timeout.connect == 3.0
    assert timeout.read is None


def test_headers_without_token():
    headers = SyncClientConfig().headers()
    assert headers["Accept"] == "text/event-stream"
    assert "Authorization" not in headers
