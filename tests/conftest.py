"""
Shared test fixtures.
"""

import sys
from pathlib import Path

# Add project root to Python path
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

import pytest

from models.inventory_sync import Location
from tests.factories import FakeCatalogGateway


MAIN = Location("gid://shopify/Location/1", "Main Warehouse")
OUTLET = Location("gid://shopify/Location/2", "Outlet")


# ===================
# FIXTURES
# ===================

@pytest.fixture
def main_location() -> Location:
    return MAIN


@pytest.fixture
def outlet_location() -> Location:
    return OUTLET


@pytest.fixture
def gateway() -> FakeCatalogGateway:
    """
    Fake catalog with a single location.

    Usage:
        def test_something(gateway):
            gateway.add_variant(variant("item-1", sku="ABC"))
    """
    return FakeCatalogGateway(locations=[MAIN])


@pytest.fixture
def multi_location_gateway() -> FakeCatalogGateway:
    """Fake catalog with two locations."""
    return FakeCatalogGateway(locations=[MAIN, OUTLET])


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client():
    """
    Create FastAPI test client.

    Usage:
        def test_endpoint(test_client):
            response = test_client.get("/health")
            assert response.status_code == 200
    """
    from fastapi.testclient import TestClient
    from main import app

    yield TestClient(app)
    app.dependency_overrides.clear()
