"""
UEF message vocabulary. Discriminator strings and field names are fixed by the Ultra host shell
and must go over the wire exactly as written here.
"""

HELLO = "integration:hello"

AUTHORIZE = "authorization:authorize"
UNAUTHORIZE = "authorization:unauthorize"

EVENT_SUBSCRIBE = "event:subscribe"
EVENT = "event:event"

HELP_REGISTER = "help:register"
HELP_REGISTER_RESPONSE = "help:register:response"
HELP_REQUEST = "help:request"
HELP_REQUEST_RESPONSE = "help:request:response"

NAV_REGISTER = "basenavigation:register"
NAV_REGISTER_RESPONSE = "basenavigation:register:response"
ROUTE = "route"

PORTAL_NEW = "portal:new"
PORTAL_REMOVE = "portal:remove"
PORTAL_PANEL = "portal:panel"
PORTAL_PANEL_RESPONSE = "portal:panel:response"
PORTAL_RENDER = "portal:render"
PORTAL_RENDER_RESPONSE = "portal:render:response"
PORTAL_CALLBACK = "portal:callback"

STATUS_SUCCESS = "success"

# Host event categories the client reacts to (help:request is delivered without a subscription)
DEFAULT_SUBSCRIPTIONS = (PORTAL_NEW, PORTAL_REMOVE, ROUTE)


def hello() -> dict:
    return {"type": HELLO}


def authorize(token: str) -> dict:
    return {"type": AUTHORIZE, "token": token}


def subscribe(subscriptions) -> dict:
    return {"type": EVENT_SUBSCRIBE, "subscriptions": list(subscriptions)}


def help_register(
    *,
    entry_id: str,
    display_name: str,
    provider_type: str,
    icon_url: str | None = None,
) -> dict:
    """Help-menu provider registration. Request fields are top-level, not nested."""
    msg = {
        "type": HELP_REGISTER,
        "id": entry_id,
        "displayName": display_name,
        "providerType": provider_type,
    }
    if icon_url:
        msg["iconUrl"] = icon_url
    return msg


def navigation_register(*, route_name: str, display_name: str, initial_contents: dict) -> dict:
    return {
        "type": NAV_REGISTER,
        "routeName": route_name,
        "displayName": display_name,
        "initialContents": initial_contents,
    }


def help_request_response(correlation_id: str) -> dict:
    return {"type": HELP_REQUEST_RESPONSE, "correlationId": correlation_id}


def portal_panel(
    *,
    correlation_id: str,
    close_callback_id: str,
    panel_type: str,
    panel_title: str,
) -> dict:
    return {
        "type": PORTAL_PANEL,
        "correlationId": correlation_id,
        "panelType": panel_type,
        "panelTitle": panel_title,
        "attributes": {"onClose": {"callbackId": close_callback_id}},
    }


def portal_render(portal_id: str, contents: dict) -> dict:
    return {"type": PORTAL_RENDER, "portalId": portal_id, "contents": contents}


def iframe_contents(src: str, title: str) -> dict:
    """Full-size borderless iframe pointed at the embedded content."""
    return {
        "tag": "iframe",
        "props": {
            "src": src,
            "title": title,
            "style": {
                "width": "100%",
                "height": "100%",
                "border": "0",
            },
        },
    }


def placeholder_contents(text: str) -> dict:
    """Lightweight route placeholder; never carries the iframe."""
    return {"tag": "span", "children": text}


def is_success(message: dict) -> bool:
    return message.get("status") == STATUS_SUCCESS
