# This project was developed with assistance from AI tools.
"""Shared fixtures: in-memory storage areas, a mock data source, and an app client.

The real app from ``wizard.main`` is a module singleton. The ``client``
fixture patches the storage and data-source singletons the routes look up,
so no lifespan (and no network) is needed.
"""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from wizard.main import app as real_app
from wizard.routes import wizard as wizard_routes
from wizard.services.navigation import InFlightGuard
from wizard.services.state_store import ApplicationStateStore
from wizard.services.storage import StorageBackend


@pytest.fixture
def backend():
    return StorageBackend()


@pytest.fixture
def area(backend):
    return backend.area("tab-1")


@pytest.fixture
def store(area):
    handle = area.attach()
    yield ApplicationStateStore(handle)
    handle.close()


@pytest.fixture
def data_source():
    """AsyncMock standing in for UrlaApiClient."""
    source = AsyncMock()
    source.save_application = AsyncMock(return_value={})
    return source


@pytest.fixture
def client(backend, data_source):
    """TestClient with storage + data source patched; redirects are not followed."""
    with (
        patch("wizard.routes.wizard.get_storage_backend", return_value=backend),
        patch("wizard.routes.wizard.get_data_source", return_value=data_source),
        patch("wizard.routes.health.get_storage_backend", return_value=backend),
    ):
        yield TestClient(real_app, follow_redirects=False)
    real_app.dependency_overrides.clear()


@pytest.fixture
def fresh_guard():
    """Give every test its own in-flight guard."""
    guard = InFlightGuard()
    real_app.dependency_overrides[wizard_routes.get_in_flight_guard] = lambda: guard
    yield guard
    real_app.dependency_overrides.pop(wizard_routes.get_in_flight_guard, None)
