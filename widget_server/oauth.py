"""
Learn 3LO endpoints: authorization code callback and the credential refresh used by the UEF client.
Token requests authenticate with HTTP Basic REST_KEY:REST_SECRET.
"""
import html
import logging
from urllib.parse import urlencode

import httpx
from fastapi import APIRouter, Form, HTTPException
from fastapi.responses import HTMLResponse, RedirectResponse

from widget_server.config import BOOT_PATH, LEARN_HOST, REDIRECT_URI, REST_KEY, REST_SECRET, TOKEN_PATH
from widget_server.state_store import pop_state

logger = logging.getLogger(__name__)
router = APIRouter()


def _error_page(title: str, message: str, status_code: int) -> HTMLResponse:
    return HTMLResponse(
        f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{html.escape(title)}</title></head>
<body>
  <h1>{html.escape(title)}</h1>
  <p>{html.escape(message)}</p>
  <p>Re-launch the tool from Learn to try again.</p>
</body>
</html>""",
        status_code=status_code,
    )


def _token_request(params: dict | None, data: dict) -> httpx.Response:
    return httpx.post(
        f"{LEARN_HOST}{TOKEN_PATH}",
        params=params,
        data=data,
        auth=(REST_KEY, REST_SECRET),
        headers={"Accept": "application/json"},
        timeout=10.0,
    )


@router.get("/oauth/callback", response_class=HTMLResponse)
def oauth_callback(code: str | None = None, state: str | None = None, error: str | None = None):
    """
    Learn redirects here with ?code=...&state=... Exchange the code, then hand the token to the
    boot page, which stores it and starts the UEF session.
    """
    if error:
        return _error_page("Authorization failed", error, 400)
    if not code:
        return _error_page("Error", "Missing code", 400)
    if not state or not pop_state(state):
        return _error_page("Error", "Invalid or expired state", 400)
    if not REST_KEY or not REST_SECRET:
        return _error_page("Error", "Missing REST_KEY/REST_SECRET env vars", 500)

    try:
        r = _token_request(
            {"code": code, "redirect_uri": REDIRECT_URI},
            {"grant_type": "authorization_code"},
        )
    except httpx.HTTPError as e:
        logger.error("3LO token exchange request failed: %s", e)
        return _error_page("Token exchange failed", "Learn did not respond", 502)

    if r.status_code != 200:
        logger.error("3LO token exchange failed: %s %s", r.status_code, r.text[:500])
        return _error_page("Token exchange failed", f"Learn returned HTTP {r.status_code}", 500)

    try:
        data = r.json()
    except ValueError:
        data = None
    if not isinstance(data, dict):
        logger.error("3LO token exchange returned an unreadable body: %s", r.text[:500])
        return _error_page("Token exchange failed", "Learn returned an unreadable response", 502)
    access_token = data.get("access_token")
    if not access_token:
        return _error_page("Token exchange failed", "Missing access_token from Learn", 500)

    query = {"token": access_token}
    if data.get("refresh_token"):
        query["refresh_token"] = data["refresh_token"]
    if data.get("expires_in"):
        query["expires_in"] = str(data["expires_in"])
    return RedirectResponse(url=f"{BOOT_PATH}?{urlencode(query)}", status_code=302)


@router.post("/oauth/refresh")
def oauth_refresh(refresh_token: str | None = Form(None)):
    """Exchange a refresh token for a new access token (and possibly a rotated refresh token)."""
    if not refresh_token:
        raise HTTPException(
            status_code=400,
            detail={"error": "invalid_request", "error_description": "refresh_token is required"},
        )
    if not REST_KEY or not REST_SECRET:
        raise HTTPException(
            status_code=500,
            detail={"error": "server_error", "error_description": "Missing REST_KEY/REST_SECRET env vars"},
        )
    try:
        r = _token_request(None, {"grant_type": "refresh_token", "refresh_token": refresh_token})
    except httpx.HTTPError as e:
        logger.error("Refresh request to Learn failed: %s", e)
        raise HTTPException(
            status_code=502,
            detail={"error": "temporarily_unavailable", "error_description": "Learn did not respond"},
        )
    if r.status_code != 200:
        logger.warning("Learn rejected refresh: HTTP %s", r.status_code)
        raise HTTPException(
            status_code=401,
            detail={"error": "invalid_grant", "error_description": "Refresh token rejected"},
        )
    try:
        data = r.json()
    except ValueError:
        data = None
    if not isinstance(data, dict):
        logger.error("Learn refresh returned an unreadable body: %s", r.text[:500])
        raise HTTPException(
            status_code=502,
            detail={"error": "server_error", "error_description": "Unreadable response from Learn"},
        )
    if not data.get("access_token"):
        raise HTTPException(
            status_code=502,
            detail={"error": "server_error", "error_description": "Missing access_token from Learn"},
        )
    body = {"access_token": data["access_token"], "token_type": data.get("token_type", "bearer")}
    if data.get("refresh_token"):
        body["refresh_token"] = data["refresh_token"]
    if data.get("expires_in"):
        body["expires_in"] = data["expires_in"]
    return body
