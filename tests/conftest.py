from collections.abc import Collection

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient, MockTransport

import app.queries.overpass_query
from app.config import AUTH_IDENTITY_HEADER
from app.main import main
from tests.utils.overpass_stub import OverpassStub


def pytest_collection_modifyitems(config: pytest.Config, items: Collection[pytest.Item]):
    # run all tests in the session in the same event loop
    # https://pytest-asyncio.readthedocs.io/en/latest/how-to-guides/run_session_tests_in_same_loop.html
    session_scope_marker = pytest.mark.asyncio(loop_scope='session')
    for item in items:
        if pytest_asyncio.is_async_test(item):
            item.add_marker(session_scope_marker, append=False)


@pytest.fixture
def overpass(monkeypatch: pytest.MonkeyPatch) -> OverpassStub:
    stub = OverpassStub()
    monkeypatch.setattr(
        app.queries.overpass_query,
        'HTTP',
        AsyncClient(transport=MockTransport(stub.handle)),
    )
    return stub


@pytest_asyncio.fixture(scope='session')
async def transport():
    async with main.router.lifespan_context(main):
        yield ASGITransport(main)  # pyright: ignore[reportArgumentType]


@pytest.fixture
def client(transport: ASGITransport) -> AsyncClient:
    return AsyncClient(base_url='http://127.0.0.1:8000', transport=transport)


@pytest.fixture
def caller_client(client: AsyncClient) -> AsyncClient:
    client.headers[AUTH_IDENTITY_HEADER] = 'user1'
    return client
