"""
HTTP API Tests

Exercises the FastAPI wrapper through TestClient with an in-memory store.
"""

import pytest
from fastapi.testclient import TestClient

from governance.api.server import app


ALL_CRITERIA = {
    "empowers_community": True,
    "maintains_creator_sovereignty": True,
    "advances_community_liberation": True,
    "resists_oppression": True,
    "supports_mutual_aid": True,
    "enables_democratic_participation": True,
}


def content_request(creator_share=80.0, **overrides):
    body = {
        "kind": "content_storage",
        "revenue_sharing": {
            "creator_share": creator_share,
            "community_share": 100.0 - creator_share,
        },
        "liberation_criteria": ALL_CRITERIA,
    }
    body.update(overrides)
    return body


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setenv("GOV_STORE_BACKEND", "memory")
    monkeypatch.delenv("GOV_CONFIG_FILE", raising=False)
    monkeypatch.setenv("GOV_PROBE_TIMEOUT_SECONDS", "2")
    with TestClient(app) as test_client:
        yield test_client


class TestDecisionEndpoints:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "online"

    def test_approved_submission(self, client):
        response = client.post("/api/v1/decisions", json=content_request())

        assert response.status_code == 200
        body = response.json()
        assert body["mode"] == "normal"
        assert body["audit_id"]
        assert body["decision"]["approved"] is True
        assert body["decision"]["sovereignty"]["revenue_share_compliant"] is True
        assert "Ensure creator receives 80% revenue share" in body["decision"]["implementation_instructions"]

    def test_rejection_is_not_an_http_error(self, client):
        response = client.post("/api/v1/decisions", json=content_request(creator_share=60.0))

        assert response.status_code == 200
        decision = response.json()["decision"]
        assert decision["approved"] is False
        assert any("60" in r and "75" in r for r in decision["reasons"])

    def test_unknown_kind_is_422(self, client):
        response = client.post("/api/v1/decisions", json=content_request(kind="teleport"))
        assert response.status_code == 422

    def test_out_of_range_share_is_422(self, client):
        body = content_request()
        body["revenue_sharing"]["community_share"] = 150.0
        response = client.post("/api/v1/decisions", json=body)
        assert response.status_code == 422

    def test_unbalanced_split_is_rejected_not_an_error(self, client):
        body = content_request(creator_share=60.0)
        body["revenue_sharing"]["community_share"] = 20.0
        response = client.post("/api/v1/decisions", json=body)

        assert response.status_code == 200
        decision = response.json()["decision"]
        assert decision["approved"] is False
        assert any("60" in r and "75" in r for r in decision["reasons"])

    def test_emergency_submission(self, client):
        body = {
            "kind": "backup",
            "backup_config": {"community_approval_required": True},
            "liberation_criteria": ALL_CRITERIA,
        }
        response = client.post("/api/v1/decisions/emergency", json=body)

        assert response.status_code == 200
        payload = response.json()
        assert payload["mode"] == "emergency"
        assert payload["decision"]["emergency_override"] is True
        assert payload["decision"]["consent"]["mechanism"] == "emergency_override"

    def test_list_decisions(self, client):
        client.post("/api/v1/decisions", json=content_request())
        client.post("/api/v1/decisions", json=content_request(creator_share=60.0))

        everything = client.get("/api/v1/decisions").json()["decisions"]
        rejected = client.get("/api/v1/decisions", params={"approved": "false"}).json()["decisions"]

        assert len(everything) == 2
        assert len(rejected) == 1
        assert rejected[0]["fields"]["status"] == "rejected"


class TestIntegrityEndpoints:

    def test_assessment_and_history(self, client):
        client.post("/api/v1/decisions", json=content_request())

        report = client.get("/api/v1/integrity").json()
        assert 0.0 <= report["overall"] <= 1.0
        assert set(report["components"]) == {
            "governance", "sovereignty", "liberation", "backup", "transparency"
        }

        history = client.get("/api/v1/integrity/history").json()["reports"]
        assert [r["id"] for r in history] == [report["id"]]

    def test_history_rejects_bad_timestamp(self, client):
        response = client.get("/api/v1/integrity/history", params={"start": "yesterday"})
        assert response.status_code == 422

    def test_metrics(self, client):
        client.post("/api/v1/decisions", json=content_request())
        metrics = client.get("/api/v1/metrics").json()["metrics"]
        assert metrics["decisions_total"]["count"] == 1
