"""Shared pytest fixtures for DirStore tests.

A single FastAPI app is created per test session to avoid duplicate
Prometheus metric registration errors (the instrumentator registers
collectors in the global prometheus_client registry).

The storage backend is attached to the app manually for each test, on a
fresh ``tmp_path``, instead of running the full lifespan.
"""

import pytest
from httpx import ASGITransport, AsyncClient

from dirstore.config import DirStoreConfig, ObservabilityConfig, ServerConfig, StorageConfig
from dirstore.server import create_app
from dirstore.storage.local import LocalStorageBackend


@pytest.fixture(scope="session")
def config() -> DirStoreConfig:
    """Create a test DirStoreConfig with metrics enabled."""
    return DirStoreConfig(
        server=ServerConfig(host="127.0.0.1", port=9010),
        storage=StorageConfig(root="/tmp/dirstore-test"),
        observability=ObservabilityConfig(metrics=True, health_check=True),
    )


@pytest.fixture(scope="session")
def app(config: DirStoreConfig):
    """Create a single test FastAPI application for the whole session."""
    return create_app(config)


@pytest.fixture
async def storage(tmp_path):
    """Create and initialize a local storage backend in a temp directory."""
    backend = LocalStorageBackend(str(tmp_path / "objects"))
    await backend.init()
    yield backend
    await backend.close()


@pytest.fixture
async def client(app, storage) -> AsyncClient:
    """Create an async test client with a fresh storage root.

    The previous backend on app.state is restored afterwards so tests do
    not see each other's buckets.
    """
    old_storage = getattr(app.state, "storage", None)
    app.state.storage = storage

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    app.state.storage = old_storage
