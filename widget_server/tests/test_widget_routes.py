"""Tests for widget_server health, landing page, static content and framing headers."""
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from widget_server.main import app


@pytest.fixture
def client():
    return TestClient(app)


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "ok"
    assert body["service"] == "uef_widget"
    assert datetime.fromisoformat(body["time"]).tzinfo is not None


def test_home_lists_endpoints(client):
    r = client.get("/")
    assert r.status_code == 200
    assert "/health" in r.text
    assert "/widget.html" in r.text


def test_widget_is_served_statically(client):
    r = client.get("/widget.html")
    assert r.status_code == 200
    assert "NF Widget" in r.text


def test_unknown_static_file_is_404(client):
    r = client.get("/does-not-exist.js")
    assert r.status_code == 404


def test_frame_ancestors_header_on_every_response(client):
    for path in ("/health", "/", "/widget.html"):
        csp = client.get(path).headers["content-security-policy"]
        assert csp.startswith("frame-ancestors ")
        assert "https://*.blackboard.com" in csp
        assert csp.endswith(";")
