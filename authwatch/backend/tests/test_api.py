"""
tests/test_api.py

FastAPI route tests using TestClient (synchronous).
Each test gets a fresh in-memory pipeline and a known admin token.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from authwatch.backend.api.main import create_app, set_pipeline
from authwatch.backend.api.routes import auth
from authwatch.backend.config import Settings
from authwatch.backend.errors import StorageError
from authwatch.backend.pipeline import IngestionPipeline
from authwatch.backend.storage import InMemoryAlertRegistry, InMemoryEventStore

TOKEN = "test-token"
ADMIN = {"Authorization": f"Bearer {TOKEN}"}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def pipeline(clock):
    p = IngestionPipeline(InMemoryEventStore(), InMemoryAlertRegistry(), clock=clock)
    set_pipeline(p)
    return p


@pytest.fixture
def client(pipeline):
    cfg = Settings(ADMIN_USERNAME="soc", ADMIN_PASSWORD="hunter2", ADMIN_TOKEN=TOKEN)
    app = create_app(cors_origins=["*"])
    app.dependency_overrides[auth.get_settings] = lambda: cfg
    with TestClient(app) as c:
        yield c


def submit(client, username="admin", ip="45.33.22.11", status="failed"):
    return client.post("/submit-log", json={"username": username, "ip": ip, "status": status})


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

def test_health(client):
    submit(client)
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["pipeline"]["events_received"] == 1
    assert body["pipeline"]["events_stored"] == 1


# ---------------------------------------------------------------------------
# POST /submit-log
# ---------------------------------------------------------------------------

class TestSubmitLog:

    def test_accepts_event(self, client):
        resp = submit(client)
        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "Login event processed"
        assert body["event"]["source_ip"] == "45.33.22.11"
        assert body["event"]["geo_tag"] == "External"
        assert body["event"]["status"] == "failed"
        assert body["alert_created"] is False
        assert body["severity"] is None

    def test_no_auth_required(self, client):
        resp = client.post(
            "/submit-log", json={"username": "bob", "ip": "10.0.0.5", "status": "success"}
        )
        assert resp.status_code == 200

    def test_third_failure_creates_alert(self, client):
        submit(client)
        submit(client)
        body = submit(client).json()
        assert body["alert_created"] is True
        assert body["severity"] == "Medium"
        assert body["risk_score"] == 50

    def test_missing_field_is_400(self, client, pipeline):
        resp = client.post("/submit-log", json={"ip": "45.33.22.11", "status": "failed"})
        assert resp.status_code == 400
        body = resp.json()
        assert body["message"] == "Invalid log data"
        assert body["field"] == "username"
        assert pipeline.store.count() == 0

    def test_blank_username_is_400(self, client):
        resp = submit(client, username="   ")
        assert resp.status_code == 400

    def test_bad_status_is_400(self, client):
        resp = submit(client, status="maybe")
        assert resp.status_code == 400
        assert resp.json()["field"] == "status"

    @pytest.mark.parametrize("payload, field", [
        ({"username": 123, "ip": "45.33.22.11", "status": "failed"}, "username"),
        ({"username": "admin", "ip": 4533, "status": "failed"}, "source_ip"),
        ({"username": "admin", "ip": "45.33.22.11", "status": True}, "status"),
    ])
    def test_non_string_field_is_400(self, client, pipeline, payload, field):
        resp = client.post("/submit-log", json=payload)
        assert resp.status_code == 400
        body = resp.json()
        assert body["message"] == "Invalid log data"
        assert body["field"] == field
        assert pipeline.store.count() == 0

    def test_append_failure_is_503(self, client, pipeline, monkeypatch):
        def broken(event):
            raise StorageError("disk full")

        monkeypatch.setattr(pipeline.store, "append", broken)
        resp = submit(client)
        assert resp.status_code == 503
        assert resp.json()["message"] == "Storage unavailable"

    def test_detection_failure_is_500_and_retryable(self, client, pipeline, monkeypatch):
        submit(client)
        submit(client)

        def broken(*args, **kwargs):
            raise StorageError("registry offline")

        monkeypatch.setattr(pipeline.registry, "upsert", broken)
        resp = submit(client)
        assert resp.status_code == 500
        body = resp.json()
        assert body["retryable"] is True
        assert body["source_ip"] == "45.33.22.11"
        assert pipeline.store.count() == 3


# ---------------------------------------------------------------------------
# Admin gate + POST /login
# ---------------------------------------------------------------------------

class TestAuth:

    @pytest.mark.parametrize("method, path", [
        ("get", "/logs"),
        ("get", "/alerts"),
        ("get", "/alerts/45.33.22.11"),
        ("get", "/dashboard"),
        ("post", "/simulate"),
    ])
    def test_operator_routes_need_token(self, client, method, path):
        resp = getattr(client, method)(path)
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Unauthorized: Please Login"

    def test_wrong_token_rejected(self, client):
        resp = client.get("/dashboard", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401

    def test_login_success(self, client):
        resp = client.post("/login", json={"username": "soc", "password": "hunter2"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["token"] == TOKEN
        assert body["message"] == "Login Successful"

        follow = client.get("/dashboard", headers={"Authorization": f"Bearer {body['token']}"})
        assert follow.status_code == 200

    def test_login_failure(self, client):
        resp = client.post("/login", json={"username": "soc", "password": "wrong"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid Credentials"


# ---------------------------------------------------------------------------
# GET /logs
# ---------------------------------------------------------------------------

class TestLogs:

    def test_newest_first(self, client):
        submit(client, ip="1.1.1.1")
        submit(client, ip="2.2.2.2")
        rows = client.get("/logs", headers=ADMIN).json()
        assert [r["source_ip"] for r in rows] == ["2.2.2.2", "1.1.1.1"]

    def test_limit(self, client):
        for _ in range(5):
            submit(client)
        rows = client.get("/logs", params={"limit": 2}, headers=ADMIN).json()
        assert len(rows) == 2

    def test_limit_out_of_range(self, client):
        resp = client.get("/logs", params={"limit": 0}, headers=ADMIN)
        assert resp.status_code == 422

    def test_anonymize(self, client):
        submit(client, username="alice", ip="10.0.0.5")
        submit(client, username="alice", ip="10.0.0.5")
        rows = client.get("/logs", params={"anonymize": "true"}, headers=ADMIN).json()
        assert all(r["source_ip"] == "192.168.X.X" for r in rows)
        assert all(r["geo_tag"] == "Hidden" for r in rows)
        assert rows[0]["username"].startswith("User_")
        assert rows[0]["username"] == rows[1]["username"]

    def test_anonymize_does_not_touch_store(self, client, pipeline):
        submit(client, username="alice", ip="10.0.0.5")
        client.get("/logs", params={"anonymize": "true"}, headers=ADMIN)
        assert pipeline.recent_events()[0].username == "alice"


# ---------------------------------------------------------------------------
# POST /simulate, GET /alerts, GET /dashboard
# ---------------------------------------------------------------------------

class TestAlerts:

    def test_simulate(self, client):
        resp = client.post("/simulate", headers=ADMIN)
        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "Simulated attack logs generated"
        assert body["events_submitted"] == 6
        assert body["severity"] == "Critical"
        assert body["risk_score"] == 100

    def test_list_alerts_with_timeline(self, client):
        client.post("/simulate", headers=ADMIN)
        alerts = client.get("/alerts", headers=ADMIN).json()
        assert len(alerts) == 1
        a = alerts[0]
        assert a["source_ip"] == "45.33.22.11"
        assert a["severity"] == "Critical"
        assert a["rule"] == "Brute Force Detection Rule"
        assert a["investigation"]["blacklisted"] is True
        assert [e["status"] for e in a["timeline"]] == ["failed"] * 5 + ["success"]

    def test_get_alert(self, client):
        for _ in range(4):
            submit(client, ip="10.0.0.5")
        resp = client.get("/alerts/10.0.0.5", headers=ADMIN)
        assert resp.status_code == 200
        body = resp.json()
        assert body["severity"] == "Medium"
        assert body["risk_score"] == 60
        assert body["investigation"]["geo"] == "Internal"
        assert len(body["timeline"]) == 4

    def test_get_alert_missing(self, client):
        resp = client.get("/alerts/8.8.8.8", headers=ADMIN)
        assert resp.status_code == 404

    def test_dashboard(self, client):
        client.post("/simulate", headers=ADMIN)
        for _ in range(3):
            submit(client, ip="10.0.0.5")
        submit(client, ip="8.8.8.8", status="success")
        body = client.get("/dashboard", headers=ADMIN).json()
        assert body == {"total_events": 10, "total_alerts": 2, "critical_alerts": 1}
