"""
Tests for the Flask diagnostics endpoints
=========================================
Uses Flask's test client with a fresh in-memory history.
"""

import sys
import os
from io import BytesIO
from unittest.mock import MagicMock

import pytest

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from apps import flask_server
from apps.service import DiagnosticsService
from database.history_store import InMemoryHistoryStore


@pytest.fixture
def client():
    flask_server.service = DiagnosticsService(InMemoryHistoryStore(), MagicMock())
    flask_server.app.config["TESTING"] = True
    return flask_server.app.test_client()


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.get_json()["status"] == "healthy"


def test_analyze_dga(client):
    response = client.post("/api/dga/analyze", json={"gases": {"ch4": 10, "c2h6": 50}})
    assert response.status_code == 200
    assert response.get_json()["faultTypes"] == ["PD", "S"]


def test_analyze_dga_missing_gases(client):
    response = client.post("/api/dga/analyze", json={"header": {}})
    assert response.status_code == 400
    assert response.get_json()["error"] == "Missing gases"


def test_analyze_dga_bad_value(client):
    response = client.post("/api/dga/analyze", json={"gases": {"h2": "lots"}})
    assert response.status_code == 400
    assert response.get_json()["error_type"] == "InvalidReadingError"


def test_json_array_body_is_rejected(client):
    for url in ("/api/dga/analyze", "/api/breakdown-voltage/analyze"):
        response = client.post(url, json=[1, 2, 3])
        assert response.status_code == 400, url
        assert response.get_json()["error"] == "Invalid input"


def test_upload_csv(client):
    data = {"file": (BytesIO(b"h2,ch4,c2h6\n60,20,20\n"), "dga.csv")}
    response = client.post("/api/dga/upload", data=data, content_type="multipart/form-data")
    assert response.status_code == 200

    batch = response.get_json()
    print(batch["reports"][0]["faultTypes"])
    assert batch["processed"] == 1
    assert batch["errors"] == []


def test_upload_requires_file(client):
    response = client.post("/api/dga/upload", data={}, content_type="multipart/form-data")
    assert response.status_code == 400
    assert response.get_json()["error"] == "Missing required file"


def test_breakdown_voltage_and_history(client):
    payload = {"dielectricStrengths": [30, 31, 29, 30, 32, 28], "transformerType": "C"}
    response = client.post("/api/breakdown-voltage/analyze", json=payload)
    assert response.status_code == 200
    assert response.get_json()["result"]["result"] == "fair"

    history = client.get("/api/history?kind=bdv").get_json()
    assert history["count"] == 1

    response = client.post("/api/breakdown-voltage/analyze", json={"transformerType": "C"})
    assert response.status_code == 400


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
