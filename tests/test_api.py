"""
Tests for the FastAPI diagnostics endpoints
===========================================
Runs the app in-process with TestClient and a fresh in-memory history.
"""

import sys
import os
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from apps import fastapi_server
from apps.service import DiagnosticsService
from database.history_store import InMemoryHistoryStore


@pytest.fixture
def client():
    fastapi_server.service = DiagnosticsService(InMemoryHistoryStore(), MagicMock())
    return TestClient(fastapi_server.app)


def test_health_check(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["components"]["history_store"] == "InMemoryHistoryStore"


def test_analyze_dga(client):
    payload = {
        "gases": {"h2": 50, "ch4": 100, "c2h6": 20, "c2h4": 30, "c2h2": 5},
        "header": {"idTrafo": "TR-01"},
    }
    response = client.post("/api/dga/analyze", json=payload)
    assert response.status_code == 200

    report = response.json()
    print(f"Severity: {report['result']['severity']}")
    assert report["faultTypes"] == ["T3", "D2", "ND"]
    assert report["result"]["triangle4"]["faultType"] == "D2"
    assert report["header"]["idTrafo"] == "TR-01"


def test_analyze_dga_negative_gas(client):
    response = client.post("/api/dga/analyze", json={"gases": {"h2": -1}})
    assert response.status_code == 400
    assert response.json()["detail"]["error_type"] == "InvalidReadingError"


def test_manual_analysis(client):
    response = client.post("/api/dga/manual", json={"selections": {"1": "D2", "5": None}})
    assert response.status_code == 200
    assert response.json()["result"]["severity"] == "critical"

    response = client.post("/api/dga/manual", json={"selections": {"4": "T1"}})
    assert response.status_code == 400


def test_upload_csv(client):
    csv = b"h2,ch4,c2h6,c2h4,c2h2\n50,100,20,30,5\n0,10,50,0,0\n"
    response = client.post("/api/dga/upload", files={"file": ("dga.csv", csv, "text/csv")})
    assert response.status_code == 200
    assert response.json()["processed"] == 2


def test_upload_rejects_non_csv(client):
    response = client.post("/api/dga/upload", files={"file": ("dga.txt", b"x", "text/plain")})
    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "Invalid file type"


def test_upload_empty_csv(client):
    response = client.post("/api/dga/upload", files={"file": ("dga.csv", b"", "text/csv")})
    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "Empty CSV file"


def test_breakdown_voltage(client):
    payload = {"dielectricStrengths": [55, 56, 54, 55, 57, 53], "transformerType": "A"}
    response = client.post("/api/breakdown-voltage/analyze", json=payload)
    assert response.status_code == 200
    assert response.json()["result"]["result"] == "fair"

    payload["dielectricStrengths"] = [55, 56]
    response = client.post("/api/breakdown-voltage/analyze", json=payload)
    assert response.status_code == 400


def test_breakdown_voltage_classes(client):
    classes = client.get("/api/breakdown-voltage/classes").json()["classes"]
    assert [c["type"] for c in classes] == ["O", "A", "B", "C"]


def test_recommendation_lookup(client):
    response = client.get("/api/recommendations/T3")
    assert response.status_code == 200
    assert response.json()["priority"] == "urgent"
    assert client.get("/api/recommendations/XYZ").status_code == 404


def test_history_flow(client):
    report = client.post("/api/dga/analyze", json={"gases": {"ch4": 10, "c2h4": 30, "c2h2": 60}}).json()
    entry_id = report["_id"]

    listing = client.get("/api/history", params={"kind": "dga"}).json()
    assert listing["count"] == 1

    assert client.get(f"/api/history/{entry_id}").json()["faultTypes"] == ["D2"]

    pdf = client.get(f"/api/history/{entry_id}/pdf", params={"include_gas": False})
    assert pdf.status_code == 200
    assert pdf.headers["content-type"] == "application/pdf"
    assert pdf.content.startswith(b"%PDF")

    assert client.delete(f"/api/history/{entry_id}").status_code == 200
    assert client.get(f"/api/history/{entry_id}").status_code == 404
    assert client.get(f"/api/history/{entry_id}/pdf").status_code == 404
    assert client.delete(f"/api/history/{entry_id}").status_code == 404


def test_history_filter_and_sort(client):
    for readings in ([55] * 6, [45] * 6, [58] * 6):
        payload = {"dielectricStrengths": readings, "transformerType": "A"}
        assert client.post("/api/breakdown-voltage/analyze", json=payload).status_code == 200

    params = {"kind": "bdv", "result": "fair", "sort_by": "voltage", "order": "asc"}
    entries = client.get("/api/history", params=params).json()["entries"]
    assert [e["result"]["average"] for e in entries] == [55.0, 58.0]

    assert client.get("/api/history", params={"sort_by": "colour"}).status_code == 400
    assert client.get("/api/history", params={"order": "sideways"}).status_code == 422


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
