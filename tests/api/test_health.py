from __future__ import annotations

from fastapi.testclient import TestClient

from app.main import app


def test_health_reports_mounted_console(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "console": "mounted", "users": 2}


def test_ready_once_mounted(client: TestClient) -> None:
    resp = client.get("/ready")
    assert resp.status_code == 200


def test_ready_is_503_without_console() -> None:
    # No `with` block: lifespan never runs, so nothing is mounted
    bare = TestClient(app)
    assert bare.get("/ready").status_code == 503
    assert bare.get("/health").json() == {"status": "ok", "console": "not_mounted"}


def test_console_routes_503_without_console() -> None:
    bare = TestClient(app)
    resp = bare.get("/state")
    assert resp.status_code == 503
    assert resp.json() == {"detail": "console not mounted"}
