"""
Tests for the operator ban-management API and application wiring.

Run with: pytest tests/test_admin.py -v
"""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from sema.config import Settings
from sema.main import app, create_app

ADMIN = {"X-Admin-Key": "test-admin-key"}


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def guard():
    return app.state.rate_guard


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

def test_admin_requires_key(client):
    assert client.get("/api/admin/bans").status_code == 401


def test_admin_rejects_wrong_key(client):
    resp = client.get("/api/admin/bans", headers={"X-Admin-Key": "nope"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid or missing admin key."


def test_admin_disabled_without_configured_key():
    disabled = TestClient(create_app(Settings(admin_api_key="")))
    resp = disabled.get("/api/admin/bans", headers=ADMIN)
    assert resp.status_code == 503


# ---------------------------------------------------------------------------
# Ban management
# ---------------------------------------------------------------------------

def test_list_bans_empty(client):
    resp = client.get("/api/admin/bans", headers=ADMIN)
    assert resp.status_code == 200
    assert resp.json() == {"total": 0, "bans": []}


def test_manual_ban_then_list(client, guard):
    resp = client.post("/api/admin/bans", json={"client_id": "1.2.3.4", "duration_seconds": 7200},
                       headers=ADMIN)
    assert resp.status_code == 201
    assert resp.json()["client_id"] == "1.2.3.4"
    assert resp.json()["remaining_minutes"] == 120
    assert guard.bans.is_banned("1.2.3.4")

    listing = client.get("/api/admin/bans", headers=ADMIN).json()
    assert listing["total"] == 1
    assert listing["bans"][0]["client_id"] == "1.2.3.4"


def test_manual_ban_validates_body(client):
    resp = client.post("/api/admin/bans", json={"client_id": "", "duration_seconds": 0},
                       headers=ADMIN)
    assert resp.status_code == 422


def test_unban(client, guard):
    guard.ban_client("1.2.3.4", 3600)
    resp = client.delete("/api/admin/bans/1.2.3.4", headers=ADMIN)
    assert resp.status_code == 200
    assert resp.json() == {"client_id": "1.2.3.4", "removed": True}
    assert not guard.bans.is_banned("1.2.3.4")


def test_operator_unban_lets_escalated_client_back_in(client, guard):
    for _ in range(100):
        client.get("/api/documents/list")
    assert client.get("/api/documents/list").status_code == 429

    # The operator unbans on the client's behalf
    guard.unban_client("testclient")
    assert client.get("/api/health").status_code == 200
    assert not guard.bans.is_banned("testclient")


def test_unban_unknown_client_is_noop(client):
    resp = client.delete("/api/admin/bans/5.6.7.8", headers=ADMIN)
    assert resp.status_code == 200
    assert resp.json() == {"client_id": "5.6.7.8", "removed": False}


def test_clear_all_bans(client, guard):
    for ip in ("1.1.1.1", "2.2.2.2", "3.3.3.3"):
        guard.ban_client(ip, 3600)
    resp = client.delete("/api/admin/bans", headers=ADMIN)
    assert resp.json() == {"cleared": 3}
    assert guard.list_active_bans() == []


def test_banned_operator_is_blocked_too(client, guard):
    # Admin routes sit behind the guard like every other API route
    guard.ban_client("testclient", 3600)
    assert client.get("/api/admin/bans", headers=ADMIN).status_code == 403


# ---------------------------------------------------------------------------
# Application wiring
# ---------------------------------------------------------------------------

def test_lifespan_starts_and_stops_sweeper():
    with TestClient(create_app(Settings(ban_sweep_interval_seconds=1))) as client:
        assert client.get("/api/health").status_code == 200


def test_custom_prefix():
    custom = TestClient(create_app(Settings(api_prefix="/v2")))
    assert custom.get("/v2/health").status_code == 200
    assert custom.get("/api/health").status_code == 404


def test_cors_headers_on_rejections(client, guard):
    guard.ban_client("testclient", 3600)
    resp = client.get("/api/health", headers={"Origin": "http://localhost:3000"})
    assert resp.status_code == 403
    assert resp.headers["access-control-allow-origin"] == "http://localhost:3000"
