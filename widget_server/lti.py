"""
LTI 1.3 launch (POST /lti/launch).
Verifies the platform id_token via its JWKS, then starts the Learn 3LO authorization code flow
with the iframe-safe one_time_session_token.
"""
import logging
from urllib.parse import urlencode

import jwt
from fastapi import APIRouter, Form
from fastapi.responses import PlainTextResponse, RedirectResponse
from jwt import PyJWKClient

from widget_server.config import (
    AUTHORIZATION_CODE_PATH,
    LEARN_HOST,
    LTI_CLIENT_ID,
    OAUTH_SCOPE,
    ONE_TIME_SESSION_TOKEN_CLAIM,
    PLATFORM_ISSUER,
    PLATFORM_JWKS_URL,
    REDIRECT_URI,
    REST_KEY,
)
from widget_server.state_store import generate_state, store_state

logger = logging.getLogger(__name__)
router = APIRouter()

# PyJWKClient caches the JWK set and keys; one per JWKS URL
_jwks_clients: dict[str, PyJWKClient] = {}


def get_jwks_client(jwks_url: str) -> PyJWKClient:
    client = _jwks_clients.get(jwks_url)
    if client is None:
        client = PyJWKClient(uri=jwks_url, cache_jwk_set=True, lifespan=300)
        _jwks_clients[jwks_url] = client
    return client


def verify_launch_token(id_token: str, *, jwks_url: str, issuer: str, audience: str) -> dict:
    """Verify platform signature, issuer, audience and expiry. Raises jwt.PyJWTError when invalid."""
    signing_key = get_jwks_client(jwks_url).get_signing_key_from_jwt(id_token)
    return jwt.decode(
        id_token,
        signing_key.key,
        algorithms=["RS256"],
        audience=audience,
        issuer=issuer,
        options={"verify_exp": True, "verify_aud": True, "verify_iss": True},
    )


def build_authorization_code_url(*, learn_host: str, client_id: str, scope: str, state: str, one_time_token: str) -> str:
    params = {
        "redirect_uri": REDIRECT_URI,
        "response_type": "code",
        "client_id": client_id,
        "scope": scope,
        "state": state,
        "one_time_session_token": one_time_token,
    }
    return f"{learn_host}{AUTHORIZATION_CODE_PATH}?{urlencode(params)}"


@router.post("/lti/launch")
def lti_launch(id_token: str | None = Form(None)):
    if not id_token:
        return PlainTextResponse("Missing id_token", status_code=400)

    # Guardrails so missing registration values show up immediately
    if not PLATFORM_JWKS_URL or not PLATFORM_ISSUER or not LTI_CLIENT_ID:
        return PlainTextResponse(
            "Missing PLATFORM_JWKS_URL / PLATFORM_ISSUER / LTI_CLIENT_ID (set env vars after registration)",
            status_code=500,
        )
    if not REST_KEY:
        return PlainTextResponse(
            "Missing REST_KEY (set after Dev Portal + Learn REST integration)",
            status_code=500,
        )

    try:
        payload = verify_launch_token(
            id_token,
            jwks_url=PLATFORM_JWKS_URL,
            issuer=PLATFORM_ISSUER,
            audience=LTI_CLIENT_ID,
        )
    except jwt.PyJWTError as e:
        logger.warning("LTI launch validation failed: %s", e)
        return PlainTextResponse("LTI validation failed", status_code=401)

    one_time = payload.get(ONE_TIME_SESSION_TOKEN_CLAIM)
    if not one_time:
        return PlainTextResponse("Missing one_time_session_token LTI claim", status_code=400)

    state = generate_state()
    store_state(state)
    url = build_authorization_code_url(
        learn_host=LEARN_HOST,
        client_id=REST_KEY,
        scope=OAUTH_SCOPE,
        state=state,
        one_time_token=str(one_time),
    )
    logger.info("LTI launch verified; redirecting to Learn 3LO (sub=%s)", payload.get("sub"))
    return RedirectResponse(url=url, status_code=302)
