"""
UEF widget server.
Serves the embedded widget, the tool JWKS, the LTI launch and the Learn 3LO token endpoints the
UEF client relies on. Port 10000 unless PORT is set.
"""
import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles

from widget_server.config import FRAME_ANCESTORS, HOST, PORT, SERVICE_NAME, STATIC_DIR
from widget_server.lti import router as lti_router
from widget_server.oauth import router as oauth_router
from widget_server.well_known import router as well_known_router

logger = logging.getLogger(__name__)

app = FastAPI(title="UEF Widget Server", version="0.1.0")
app.include_router(well_known_router, tags=["well-known"])
app.include_router(lti_router, tags=["lti"])
app.include_router(oauth_router, tags=["oauth"])


@app.middleware("http")
async def frame_ancestors(request: Request, call_next):
    """UEF runs the tool in an iframe; only Learn may frame it."""
    response = await call_next(request)
    response.headers["Content-Security-Policy"] = f"frame-ancestors {FRAME_ANCESTORS};"
    return response


@app.get("/health")
def health():
    """Health check endpoint."""
    return {
        "status": "ok",
        "service": SERVICE_NAME,
        "time": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/", response_class=HTMLResponse)
def home():
    """Landing page for a quick deployment check."""
    return HTMLResponse(
        """<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>UEF Widget Service</title></head>
<body>
  <h1>UEF Widget Service</h1>
  <ul>
    <li><a href="/health">/health</a></li>
    <li><a href="/widget.html">/widget.html</a> (embedded widget)</li>
    <li><a href="/.well-known/jwks.json">/.well-known/jwks.json</a> (tool JWKS)</li>
  </ul>
</body>
</html>"""
    )


# Last: everything not routed above is a static file
app.mount("/", StaticFiles(directory=STATIC_DIR, check_dir=False), name="static")


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    logger.info("Listening on http://%s:%s", HOST, PORT)
    uvicorn.run(
        "widget_server.main:app",
        host=HOST,
        port=PORT,
    )
