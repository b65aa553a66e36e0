from __future__ import annotations

from collections.abc import AsyncIterator, Callable

import httpx
import pytest
import pytest_asyncio

from helpers import FakeClock, RecorderSpy, mock_client


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recorder_spy() -> RecorderSpy:
    return RecorderSpy()


@pytest_asyncio.fixture
async def client_factory() -> AsyncIterator[Callable[[dict[str, bytes]], httpx.AsyncClient]]:
    clients: list[httpx.AsyncClient] = []

    def build(assets: dict[str, bytes]) -> httpx.AsyncClient:
        client = mock_client(assets)
        clients.append(client)
        return client

    yield build
    for client in clients:
        await client.aclose()
