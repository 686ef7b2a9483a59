"""Tests for /oauth/callback (3LO code exchange) and /oauth/refresh (Token Provider)."""
from unittest.mock import patch
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest
from fastapi.testclient import TestClient

from widget_server import oauth as oauth_module
from widget_server.main import app
from widget_server.state_store import store_state


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def rest_credentials(monkeypatch):
    monkeypatch.setattr(oauth_module, "REST_KEY", "rest-key")
    monkeypatch.setattr(oauth_module, "REST_SECRET", "rest-secret")
    monkeypatch.setattr(oauth_module, "LEARN_HOST", "https://learn.example.edu")


class MockResponse:
    def __init__(self, status_code=200, body=None, text=""):
        self.status_code = status_code
        self._body = body or {}
        self.text = text
        self.headers = {"content-type": "application/json"}

    def json(self):
        return self._body


class HtmlResponse(MockResponse):
    """A 200 whose body is not JSON, e.g. a proxy or maintenance page."""

    def __init__(self):
        super().__init__(text="<html>Service Unavailable</html>")
        self.headers = {"content-type": "text/html"}

    def json(self):
        raise ValueError("Expecting value: line 1 column 1 (char 0)")


def test_callback_missing_code(client, rest_credentials):
    r = client.get("/oauth/callback", params={"state": "s"})
    assert r.status_code == 400
    assert "Missing code" in r.text


def test_callback_unknown_state(client, rest_credentials):
    r = client.get("/oauth/callback", params={"code": "c", "state": "never-issued"})
    assert r.status_code == 400
    assert "Invalid or expired state" in r.text


def test_callback_error_from_learn(client, rest_credentials):
    r = client.get("/oauth/callback", params={"error": "access_denied"})
    assert r.status_code == 400
    assert "access_denied" in r.text


def test_callback_missing_rest_credentials(client, monkeypatch):
    monkeypatch.setattr(oauth_module, "REST_SECRET", "")
    store_state("state-no-creds")
    r = client.get("/oauth/callback", params={"code": "c", "state": "state-no-creds"})
    assert r.status_code == 500
    assert "REST_KEY/REST_SECRET" in r.text


def test_callback_exchanges_code_and_redirects_to_boot(client, rest_credentials):
    store_state("state-ok")
    body = {"access_token": "learn-at", "refresh_token": "learn-rt", "expires_in": 3599}
    with patch("widget_server.oauth.httpx.post", return_value=MockResponse(body=body)) as post:
        r = client.get(
            "/oauth/callback",
            params={"code": "auth-code", "state": "state-ok"},
            follow_redirects=False,
        )
    assert r.status_code == 302
    location = urlsplit(r.headers["location"])
    assert location.path == "/uef-boot.html"
    assert parse_qs(location.query) == {
        "token": ["learn-at"],
        "refresh_token": ["learn-rt"],
        "expires_in": ["3599"],
    }
    args, kwargs = post.call_args
    assert args[0] == "https://learn.example.edu/learn/api/public/v1/oauth2/token"
    assert kwargs["params"]["code"] == "auth-code"
    assert kwargs["params"]["redirect_uri"].endswith("/oauth/callback")
    assert kwargs["data"] == {"grant_type": "authorization_code"}
    assert kwargs["auth"] == ("rest-key", "rest-secret")


def test_callback_state_is_single_use(client, rest_credentials):
    store_state("state-once")
    with patch("widget_server.oauth.httpx.post", return_value=MockResponse(body={"access_token": "at"})):
        first = client.get("/oauth/callback", params={"code": "c", "state": "state-once"}, follow_redirects=False)
        second = client.get("/oauth/callback", params={"code": "c", "state": "state-once"}, follow_redirects=False)
    assert first.status_code == 302
    assert second.status_code == 400


def test_callback_learn_rejects_code(client, rest_credentials):
    store_state("state-rejected")
    with patch("widget_server.oauth.httpx.post", return_value=MockResponse(status_code=400, text="bad code")):
        r = client.get("/oauth/callback", params={"code": "c", "state": "state-rejected"})
    assert r.status_code == 500
    assert "Token exchange failed" in r.text


def test_callback_missing_access_token(client, rest_credentials):
    store_state("state-empty")
    with patch("widget_server.oauth.httpx.post", return_value=MockResponse(body={"token_type": "bearer"})):
        r = client.get("/oauth/callback", params={"code": "c", "state": "state-empty"})
    assert r.status_code == 500
    assert "access_token" in r.text


def test_callback_learn_unreachable(client, rest_credentials):
    store_state("state-down")
    with patch("widget_server.oauth.httpx.post", side_effect=httpx.ConnectError("down")):
        r = client.get("/oauth/callback", params={"code": "c", "state": "state-down"})
    assert r.status_code == 502


def test_refresh_requires_token(client, rest_credentials):
    r = client.post("/oauth/refresh", data={})
    assert r.status_code == 400
    assert r.json()["detail"]["error"] == "invalid_request"


def test_refresh_success_passes_rotation_through(client, rest_credentials):
    body = {"access_token": "new-at", "refresh_token": "new-rt", "expires_in": 3599, "token_type": "bearer"}
    with patch("widget_server.oauth.httpx.post", return_value=MockResponse(body=body)) as post:
        r = client.post("/oauth/refresh", data={"refresh_token": "old-rt"})
    assert r.status_code == 200
    assert r.json() == {
        "access_token": "new-at",
        "token_type": "bearer",
        "refresh_token": "new-rt",
        "expires_in": 3599,
    }
    kwargs = post.call_args.kwargs
    assert kwargs["data"] == {"grant_type": "refresh_token", "refresh_token": "old-rt"}
    assert kwargs["auth"] == ("rest-key", "rest-secret")


def test_refresh_without_rotation(client, rest_credentials):
    with patch("widget_server.oauth.httpx.post", return_value=MockResponse(body={"access_token": "new-at"})):
        r = client.post("/oauth/refresh", data={"refresh_token": "rt"})
    assert r.status_code == 200
    assert "refresh_token" not in r.json()


def test_refresh_rejected_by_learn(client, rest_credentials):
    with patch("widget_server.oauth.httpx.post", return_value=MockResponse(status_code=400)):
        r = client.post("/oauth/refresh", data={"refresh_token": "rt"})
    assert r.status_code == 401
    assert r.json()["detail"]["error"] == "invalid_grant"


def test_refresh_learn_unreachable(client, rest_credentials):
    with patch("widget_server.oauth.httpx.post", side_effect=httpx.ReadTimeout("slow")):
        r = client.post("/oauth/refresh", data={"refresh_token": "rt"})
    assert r.status_code == 502


def test_callback_non_json_body_is_an_error_page(client, rest_credentials):
    store_state("state-html")
    with patch("widget_server.oauth.httpx.post", return_value=HtmlResponse()):
        r = client.get("/oauth/callback", params={"code": "c", "state": "state-html"}, follow_redirects=False)
    assert r.status_code == 502
    assert "unreadable response" in r.text


def test_refresh_non_json_body_is_502(client, rest_credentials):
    with patch("widget_server.oauth.httpx.post", return_value=HtmlResponse()):
        r = client.post("/oauth/refresh", data={"refresh_token": "rt"})
    assert r.status_code == 502
    assert r.json()["detail"]["error"] == "server_error"


def test_refresh_json_that_is_not_an_object_is_502(client, rest_credentials):
    with patch("widget_server.oauth.httpx.post", return_value=MockResponse(body=["at"])):
        r = client.post("/oauth/refresh", data={"refresh_token": "rt"})
    assert r.status_code == 502
