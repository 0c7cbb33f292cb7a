"""Shared fixtures for sync client tests."""

from typing import Callable, List

import httpx
import pytest

from sessionsync.core.config import SyncClientConfig
from sessionsync.services.sync import SyncController
from tests.helpers import BASE_URL


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def config() -> SyncClientConfig:
    return SyncClientConfig(base_url=BASE_URL)


@pytest.fixture
async def make_controller(config) -> Callable[..., SyncController]:
    """Build controllers whose transport is served by the given handler."""
    clients: List[httpx.AsyncClient] = []

    def factory(handler) -> SyncController:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        clients.append(client)
        return SyncController(client=client, config=config)

    yield factory

    for client in clients:
        await client.aclose()
