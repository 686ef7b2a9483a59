"""
UEF client configuration. Values come from env; ClientConfig takes its defaults from them.
The host origin is configured, never discovered: it is the trust boundary for the handshake.
"""
import os
from dataclasses import dataclass
from urllib.parse import urlsplit

# Learn (Ultra) host, e.g. https://mapua-test.blackboard.com. Set by the boot page in the browser.
LEARN_HOST = os.environ.get("UEF_LEARN_HOST", "").strip()

# Where widget_server runs; embedded content and the refresh endpoint live here
TOOL_BASE_URL = os.environ.get("UEF_TOOL_BASE_URL", "http://127.0.0.1:10000").strip().rstrip("/")

WIDGET_URL = os.environ.get("UEF_WIDGET_URL", f"{TOOL_BASE_URL}/widget.html")

REFRESH_URL = os.environ.get("UEF_REFRESH_URL", f"{TOOL_BASE_URL}/oauth/refresh")

# Persistent storage keys. The legacy key is read only, for tokens stored by older boot pages.
TOKEN_STORAGE_KEY = "UEF_USER_TOKEN"
LEGACY_TOKEN_STORAGE_KEY = "UEF_TOKEN"
REFRESH_TOKEN_STORAGE_KEY = "UEF_REFRESH_TOKEN"
EXPIRES_IN_STORAGE_KEY = "UEF_TOKEN_EXPIRES_IN"
ISSUED_AT_STORAGE_KEY = "UEF_TOKEN_ISSUED_AT"

# Registration ids are keys at the host (update vs duplicate); keep them stable across reloads
HELP_ENTRY_ID = os.environ.get("UEF_HELP_ENTRY_ID", "nf-widget-help")
HELP_DISPLAY_NAME = os.environ.get("UEF_HELP_DISPLAY_NAME", "NF Widget")
HELP_PROVIDER_TYPE = os.environ.get("UEF_HELP_PROVIDER_TYPE", "auxiliary")  # "primary" or "auxiliary"
HELP_ICON_URL = os.environ.get("UEF_HELP_ICON_URL", "").strip() or None

NAV_ROUTE_NAME = os.environ.get("UEF_NAV_ROUTE_NAME", "nf-widget")
NAV_DISPLAY_NAME = os.environ.get("UEF_NAV_DISPLAY_NAME", "NF Widget")
NAV_PLACEHOLDER_TEXT = "Opening NF Widget..."

PANEL_TYPE = "small"
PANEL_TITLE = "NF Widget"

# Bounded wait for any correlated host reply (seconds)
REPLY_TIMEOUT_SECONDS = float(os.environ.get("UEF_REPLY_TIMEOUT_SECONDS", "5"))


DEFAULT_PORTS = {"http": 80, "https": 443}


def origin_of(url: str) -> str:
    """
    scheme://host[:port] of an http(s) URL, serialized the way a browser reports event.origin
    (lowercase, no credentials, default port omitted), or "" when the URL has no usable origin.
    """
    try:
        parts = urlsplit(url.strip())
        port = parts.port
    except ValueError:
        return ""
    scheme = parts.scheme.lower()
    host = parts.hostname
    if scheme not in DEFAULT_PORTS or not host:
        return ""
    if ":" in host:
        host = f"[{host}]"
    if port is None or port == DEFAULT_PORTS[scheme]:
        return f"{scheme}://{host}"
    return f"{scheme}://{host}:{port}"


@dataclass
class ClientConfig:
    learn_host: str = LEARN_HOST
    widget_url: str = WIDGET_URL
    refresh_url: str = REFRESH_URL
    register_help: bool = True
    register_navigation: bool = True
    help_entry_id: str = HELP_ENTRY_ID
    help_display_name: str = HELP_DISPLAY_NAME
    help_provider_type: str = HELP_PROVIDER_TYPE
    help_icon_url: str | None = HELP_ICON_URL
    nav_route_name: str = NAV_ROUTE_NAME
    nav_display_name: str = NAV_DISPLAY_NAME
    nav_placeholder_text: str = NAV_PLACEHOLDER_TEXT
    panel_type: str = PANEL_TYPE
    panel_title: str = PANEL_TITLE
    reply_timeout: float = REPLY_TIMEOUT_SECONDS

    @property
    def host_origin(self) -> str:
        return origin_of(self.learn_host) if self.learn_host else ""
