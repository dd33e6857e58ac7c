"""
Tests for the FastAPI service.
"""
import pytest
from fastapi.testclient import TestClient

from backend.main import app


class TestBackend:

    @pytest.fixture
    def client(self):
        return TestClient(app)

    def test_health(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_parse_text(self, client):
        response = client.post("/parse-text", json={
            "text": "XYZ789 Confirmed. You have received Ksh2,000 from JANE on 1/1/25 at 9:00 AM"
        })

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "success"
        assert body["transactions"][0] == {
            "id": "XYZ789",
            "date": "2025-01-01T09:00:00",
            "description": "JANE",
            "amount": 2000.0,
            "type": "RECEIVE",
            "raw": "XYZ789 Confirmed. You have received Ksh2,000 from JANE on 1/1/25 at 9:00 AM",
            "account": None
        }
        assert body["summary"]["total_income"] == 2000.0

    def test_parse_text_blank(self, client):
        response = client.post("/parse-text", json={"text": "   "})

        assert response.status_code == 400
        assert response.json()["detail"] == "No text."

    def test_parse_text_nothing_found(self, client):
        response = client.post("/parse-text", json={"text": "just some words"})

        assert response.status_code == 400
        assert response.json()["detail"] == "No transactions found in this input."

    def test_parse_text_unknown_template(self, client):
        response = client.post("/parse-text", json={"text": "x", "template": "nope"})

        assert response.status_code == 400

    def test_parse_rows(self, client):
        response = client.post("/parse-rows", json={"rows": [
            {"Receipt No.": "TL6HZ097WP", "Completion Time": "2025-12-06 10:15:00",
             "Details": "Merchant Payment", "Withdrawn": "-35.00"}
        ]})

        assert response.status_code == 200
        assert response.json()["transactions"][0]["type"] == "PAYBILL"

    def test_summary(self, client):
        response = client.post("/summary", json={"transactions": [{
            "id": "A1", "date": "2025-01-01T09:00:00", "description": "JANE",
            "amount": 10, "type": "SEND", "raw": "A1"
        }]})

        assert response.status_code == 200
        assert response.json()["total_expense"] == 10.0

    def test_templates(self, client):
        response = client.get("/templates")

        assert response.status_code == 200
        assert "mpesa_v1" in [t["id"] for t in response.json()["templates"]]
