import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.core.context import DispatchContext, get_dispatch_context
from src.main import app
from tests.fakes import FakeFirestore, FakePushTransport


@pytest.fixture
def fake_db():
    return FakeFirestore()


@pytest.fixture
def transport():
    return FakePushTransport()


@pytest.fixture
def ctx(fake_db, transport):
    return DispatchContext(db=fake_db, transport=transport)


@pytest_asyncio.fixture
async def client(ctx):
    app.dependency_overrides[get_dispatch_context] = lambda: ctx
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
