"""
Well-known endpoints: tool JWKS.
"""
from fastapi import APIRouter
from fastapi.responses import JSONResponse

from widget_server.config import TOOL_KEY_ID, TOOL_PUBLIC_JWKS_JSON, TOOL_SIGNING_KEY_PATH
from widget_server.keys import JwksUnavailable, build_tool_jwks

router = APIRouter()


@router.get("/.well-known/jwks.json")
def jwks_json():
    """JSON Web Key Set the platform uses to verify messages signed by this tool."""
    try:
        return build_tool_jwks(TOOL_PUBLIC_JWKS_JSON, TOOL_SIGNING_KEY_PATH, TOOL_KEY_ID)
    except JwksUnavailable as e:
        return JSONResponse({"error": str(e)}, status_code=500)
