# tests/conftest.py — Shared test fixtures
import os
import tempfile

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# Keep the module-level store away from the working directory
os.environ["TASKBOARD_DATA_FILE"] = os.path.join(tempfile.gettempdir(), "taskboard-test-data.json")
os.environ["ENVIRONMENT"] = "test"

from broadcast import BroadcastHub
from database import JsonStore, get_store
from repository import TaskRepository
from main import app

from tests.fakes import FakeClock, FakeProber, FakeScanner


@pytest.fixture
def store(tmp_path) -> JsonStore:
    return JsonStore(tmp_path / "data.json")


@pytest.fixture
def hub() -> BroadcastHub:
    return BroadcastHub()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def repo(store, hub, clock) -> TaskRepository:
    return TaskRepository(store, hub=hub, clock=clock)


@pytest.fixture
def prober() -> FakeProber:
    return FakeProber()


@pytest.fixture
def wired_app(store, hub, prober):
    """The application with per-test store, hub and collaborators"""
    saved = (app.state.hub, app.state.prober, app.state.scanner)
    app.state.hub = hub
    app.state.prober = prober
    app.state.scanner = FakeScanner()
    app.dependency_overrides[get_store] = lambda: store
    yield app
    app.dependency_overrides.clear()
    app.state.hub, app.state.prober, app.state.scanner = saved


@pytest_asyncio.fixture(scope="function")
async def client(wired_app):
    """HTTP test client with overridden store dependency"""
    transport = ASGITransport(app=wired_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def create_task(client: AsyncClient, **fields) -> dict:
    """Create a task through the API and return its JSON"""
    payload = {"title": "Sample task", **fields}
    resp = await client.post("/api/tasks", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()
