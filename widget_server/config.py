"""
Widget server configuration. Values from env; secrets (REST_SECRET, keys) never live in this file.
"""
import os
from pathlib import Path

SERVICE_NAME = "uef_widget"

# Public base URL of this service (redirect_uri and boot page live here)
TOOL_BASE_URL = os.environ.get("TOOL_BASE_URL", "https://widget-integ.onrender.com").strip().rstrip("/")

# Learn (Ultra) host: OAuth endpoints and the allowed frame ancestor
LEARN_HOST = os.environ.get("LEARN_HOST", "https://mapua-test.blackboard.com").strip().rstrip("/")

# LTI 1.3 platform registration (filled in after tool registration)
LTI_CLIENT_ID = os.environ.get("LTI_CLIENT_ID", "").strip()
PLATFORM_ISSUER = os.environ.get("PLATFORM_ISSUER", "").strip()
PLATFORM_JWKS_URL = os.environ.get("PLATFORM_JWKS_URL", "").strip()

# Learn REST application credentials (3LO client)
REST_KEY = os.environ.get("REST_KEY", "").strip()
REST_SECRET = os.environ.get("REST_SECRET", "").strip()

# Tool JWKS: literal JSON, or derived from a PEM key file
TOOL_PUBLIC_JWKS_JSON = os.environ.get("TOOL_PUBLIC_JWKS_JSON", "").strip()
TOOL_SIGNING_KEY_PATH = os.environ.get("TOOL_SIGNING_KEY_PATH", "").strip() or None
TOOL_KEY_ID = os.environ.get("TOOL_KEY_ID", "uef-widget-key")

OAUTH_SCOPE = os.environ.get("OAUTH_SCOPE", "read").strip()

AUTHORIZATION_CODE_PATH = "/learn/api/public/v1/oauth2/authorizationcode"
TOKEN_PATH = "/learn/api/public/v1/oauth2/token"

REDIRECT_URI = f"{TOOL_BASE_URL}/oauth/callback"

# Boot page loaded inside the UEF iframe after the code exchange
BOOT_PATH = os.environ.get("UEF_BOOT_PATH", "/uef-boot.html")

# Claim carrying the iframe-safe one-time session token
ONE_TIME_SESSION_TOKEN_CLAIM = "https://blackboard.com/lti/claim/one_time_session_token"

# Ultra is framed from the Learn host and Blackboard-hosted shells
FRAME_ANCESTORS = f"{LEARN_HOST} https://*.blackboard.com"

STATIC_DIR = Path(os.environ.get("UEF_STATIC_DIR", str(Path(__file__).parent / "static")))

HOST = os.environ.get("HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT", "10000"))
