from __future__ import annotations

import httpx
import pytest
import pytest_asyncio

from indieauth_discovery.api import app, get_fetcher
from tests.http_stubs import StubRouter


@pytest.fixture
def router() -> StubRouter:
    return StubRouter()


@pytest_asyncio.fixture
async def client(router: StubRouter) -> httpx.AsyncClient:
    async def _stubbed_fetcher():
        async with router.fetcher() as fetcher:
            yield fetcher

    app.dependency_overrides[get_fetcher] = _stubbed_fetcher
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as test_client:
        yield test_client
    app.dependency_overrides.clear()
