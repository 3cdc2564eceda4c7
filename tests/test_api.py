import pytest
from fastapi.testclient import TestClient

from api import server
from core.config import Settings
from pipeline.orchestrator import Orchestrator
from probers import banner, http_probe


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(server, "orch", Orchestrator(Settings(), dialer=lambda h, p, t: p == 8080))
    monkeypatch.setattr(banner, "grab_banner", lambda h, p, t: None)
    monkeypatch.setattr(http_probe, "http_get", lambda *a, **kw: ({"status": 404, "headers": {}}, b""))
    return TestClient(server.app)


def test_health(client):
    body = client.get("/api/health").json()
    assert body["status"] == "ok"
    assert body["local_checks"] is False


def test_scan(client):
    res = client.post("/api/scan", json={"target": "198.51.100.7", "ports": "8079-8081"})
    assert res.status_code == 200
    assert res.json()["open_ports"] == [8080]


def test_scan_accepts_port_list(client):
    res = client.post("/api/scan", json={"target": "198.51.100.7", "ports": [22, 8080]})
    assert res.json()["open_ports"] == [8080]


def test_bad_port_spec_is_400(client):
    res = client.post("/api/scan", json={"target": "198.51.100.7", "ports": "abc"})
    assert res.status_code == 400


def test_audit(client):
    res = client.post("/api/audit", json={"target": "198.51.100.7", "ports": "8080", "skip_recon": True})
    assert res.status_code == 200
    body = res.json()
    assert body["audit"]["services"][0]["label"] == "HTTP-Alt"
    assert body["audit"]["web_results"][0]["accessible"] is True
    assert body["summary"]["risk_level"] == "Medium"


def test_unexpected_failure_is_500(client, monkeypatch):
    def boom(*a, **kw):
        raise RuntimeError("x")

    monkeypatch.setattr(server.orch, "run", boom)
    res = client.post("/api/audit", json={"target": "198.51.100.7"})
    assert res.status_code == 500
