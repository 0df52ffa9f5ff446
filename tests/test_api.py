"""Tests for the HTTP driver."""

import pytest
from fastapi.testclient import TestClient

from shopmigration.api.dependencies import get_mapping_store, get_source_factory, get_target
from shopmigration.api.main import app
from shopmigration.extractors.base import MemoryProfile
from shopmigration.models.mapping import MappingType

ROWS = {
    "customers": [
        {"customer_id": "C1", "email": "jane@example.com"},
        {"customer_id": "C2", "email": "john@example.com"},
    ],
    "products": [{"product_id": "P1", "order_number": "SW/1"}],
}


@pytest.fixture
def client(mappings, target):
    """Test client wired to an in-memory store, target and source."""
    app.dependency_overrides[get_mapping_store] = lambda: mappings
    app.dependency_overrides[get_target] = lambda: target
    app.dependency_overrides[get_source_factory] = lambda: (lambda config: MemoryProfile(ROWS))
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealth:
    """Tests for the health endpoint."""

    def test_health_check(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestStepRun:
    """Tests for running step invocations over HTTP."""

    def test_fresh_run_completes(self, client, mappings):
        response = client.post("/api/steps/import_customers/run", json={"config": {"max_execution": ""}})

        assert response.status_code == 200
        data = response.json()
        assert data["progress"]["state"] == "done"
        assert data["progress"]["offset"] == 2
        assert data["message"] == "Customers successfully imported!"
        assert mappings.count(MappingType.CUSTOMER) == 2

    def test_token_resubmitted(self, client, mappings):
        """Test a submitted progress token resumes at its offset."""
        progress = {"step": "import_customers", "offset": 1, "count": 2, "state": "running"}

        response = client.post(
            "/api/steps/import_customers/run",
            json={"config": {"max_execution": ""}, "progress": progress},
        )

        assert response.json()["progress"]["state"] == "done"
        assert mappings.get(MappingType.CUSTOMER, "C1") is None
        assert mappings.get(MappingType.CUSTOMER, "C2") is not None

    def test_error_token_returned(self, client):
        response = client.post("/api/steps/import_products/run", json={"config": {}})

        assert response.status_code == 200
        data = response.json()
        assert data["progress"]["state"] == "error"
        assert data["progress"]["offset"] == 0
        assert "SW/1" in data["message"]

    def test_unknown_step(self, client):
        response = client.post("/api/steps/import_orders/run", json={"config": {}})

        assert response.status_code == 422

    def test_negative_offset_rejected(self, client):
        response = client.post(
            "/api/steps/import_customers/run",
            json={"config": {}, "progress": {"offset": -1}},
        )

        assert response.status_code == 422

    def test_token_of_another_step_rejected(self, client, mappings):
        progress = {"step": "import_products", "offset": 1, "count": 2, "state": "running"}

        response = client.post(
            "/api/steps/import_customers/run",
            json={"config": {"max_execution": ""}, "progress": progress},
        )

        assert response.status_code == 400
        assert "belongs to step import_products" in response.json()["detail"]
        assert mappings.count(MappingType.CUSTOMER) == 0

    def test_invalid_config(self, client):
        response = client.post(
            "/api/steps/import_products/run",
            json={"config": {"number_validation_mode": "fix_it"}},
        )

        assert response.status_code == 400
        assert "number_validation_mode" in response.json()["detail"]

    def test_missing_source(self, client):
        app.dependency_overrides.pop(get_source_factory)

        response = client.post("/api/steps/import_customers/run", json={"config": {}})

        assert response.status_code == 400
        assert "No source configured" in response.json()["detail"]


class TestMappings:
    """Tests for the mapping inspection endpoint."""

    def test_list_mappings(self, client, mappings):
        mappings.put(MappingType.ARTICLE, "P1", "10")
        mappings.put(MappingType.ARTICLE, "P2", "11")

        response = client.get("/api/mappings/article")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert data["entries"][0] == {"entity_type": "article", "source_id": "P1", "target_id": "10"}

    def test_unknown_mapping_type(self, client):
        response = client.get("/api/mappings/orders")

        assert response.status_code == 404
