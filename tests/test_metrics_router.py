"""
Tests for the metrics API router
"""

import pytest
from datetime import datetime
from fastapi.testclient import TestClient

from app.database import get_db
from app.main import app
from app.services.vmdb_metrics import MetricsRepository


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def table_with_metrics(db, evm_table, vmdb_index):
    repo = MetricsRepository(db)
    repo.add_metric(evm_table, "hourly", datetime(2012, 8, 14, 9), {"rows": 10})
    repo.add_metric(evm_table, "hourly", datetime(2012, 8, 14, 10), {"rows": 20})
    repo.add_metric(evm_table, "daily", datetime(2012, 8, 14), {"rows": 15})
    repo.add_metric(vmdb_index, "hourly", datetime(2012, 8, 14, 10), {"index_scans": 3})
    db.commit()
    return evm_table


class TestMetricsRouter:
    """Tests for /api/v1 metrics endpoints."""

    def test_list_tables(self, client, evm_table, text_table, vmdb_index):
        response = client.get("/api/v1/tables")

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["tables"][0]["name"] == "accounts"
        assert body["tables"][0]["text_tables"] == 1
        assert body["tables"][0]["indexes"] == 1

    def test_table_detail(self, client, evm_table, vmdb_index):
        response = client.get(f"/api/v1/tables/{evm_table.id}")

        assert response.status_code == 200
        assert response.json()["indexes"] == [{"id": vmdb_index.id, "name": "accounts_pkey"}]

    def test_table_not_found(self, client):
        assert client.get("/api/v1/tables/999").status_code == 404

    def test_table_metrics_newest_first(self, client, table_with_metrics):
        response = client.get(f"/api/v1/tables/{table_with_metrics.id}/metrics", params={"interval": "hourly"})

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 2
        assert [m["rows"] for m in body["metrics"]] == [20, 10]
        assert body["metrics"][0]["timestamp"] == "2012-08-14T10:00:00"

    def test_unknown_interval(self, client, evm_table):
        response = client.get(f"/api/v1/tables/{evm_table.id}/metrics", params={"interval": "monthly"})

        assert response.status_code == 400

    def test_index_metrics(self, client, table_with_metrics, vmdb_index):
        response = client.get(f"/api/v1/indexes/{vmdb_index.id}/metrics")

        assert response.status_code == 200
        body = response.json()
        assert body["resource"]["type"] == "VmdbIndex"
        assert body["metrics"][0]["index_scans"] == 3

    def test_database_not_configured(self):
        app.dependency_overrides[get_db] = lambda: None
        try:
            response = TestClient(app).get("/api/v1/tables")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 503
