"""
Panel lifecycle: CLOSED -> OPENING -> OPEN -> CLOSED, with OPEN -> OPEN re-render.
At most one panel is tracked; content is rendered only once the host has assigned a portal id.
"""
import logging
import uuid
from enum import Enum
from typing import Callable

from uef_client import messages
from uef_client.pending import PendingReplies

logger = logging.getLogger(__name__)


class PanelState(str, Enum):
    CLOSED = "closed"
    OPENING = "opening"
    OPEN = "open"


RENDER_WAIT_KEY = (messages.PORTAL_RENDER_RESPONSE,)


def open_wait_key(correlation_id: str) -> tuple[str, str]:
    return (messages.PORTAL_PANEL_RESPONSE, correlation_id)


class PanelController:
    def __init__(
        self,
        post: Callable[[dict], None],
        pending: PendingReplies,
        *,
        content_url: str,
        title: str,
        panel_type: str,
    ):
        self._post = post
        self._pending = pending
        self.content_url = content_url
        self.title = title
        self.panel_type = panel_type
        self.state = PanelState.CLOSED
        self.correlation_id: str | None = None
        self.portal_id: str | None = None
        self.close_callback_id: str | None = None

    def show(self) -> None:
        """Open the panel, or re-render into it when it is already open."""
        if self.state == PanelState.OPEN:
            logger.info("Panel already open (portalId=%s); re-rendering", self.portal_id)
            self._render()
            return
        if self.state == PanelState.OPENING:
            logger.info("Panel open already in flight; ignoring invocation")
            return

        self.correlation_id = uuid.uuid4().hex
        self.close_callback_id = uuid.uuid4().hex
        self.state = PanelState.OPENING
        correlation_id = self.correlation_id
        self._pending.expect(
            open_wait_key(correlation_id),
            self._on_open_response,
            on_timeout=lambda: self._on_open_timeout(correlation_id),
        )
        self._post(
            messages.portal_panel(
                correlation_id=correlation_id,
                close_callback_id=self.close_callback_id,
                panel_type=self.panel_type,
                panel_title=self.title,
            )
        )
        logger.info("Requested portal:panel")

    def handle_open_response(self, message: dict) -> bool:
        """Route a portal:panel:response; replies for other correlation ids are ignored."""
        return self._pending.resolve(open_wait_key(message.get("correlationId")), message)

    def handle_render_response(self, message: dict) -> bool:
        return self._pending.resolve(RENDER_WAIT_KEY, message)

    def handle_close_callback(self, callback_id: str | None) -> bool:
        if self.close_callback_id is None or callback_id != self.close_callback_id:
            logger.debug("Ignoring close callback %s (not the tracked panel)", callback_id)
            return False
        logger.info("Panel closed by host")
        self._reset()
        return True

    def handle_portal_removed(self, portal_id: str | None) -> bool:
        if self.portal_id is None or portal_id != self.portal_id:
            logger.debug("Ignoring portal:remove for %s (not the tracked panel)", portal_id)
            return False
        logger.info("Panel portal %s removed", portal_id)
        self._reset()
        return True

    def _on_open_response(self, message: dict) -> None:
        portal_id = message.get("portalId")
        if not messages.is_success(message) or not portal_id:
            logger.error("portal:panel failed: status=%s", message.get("status"))
            self._reset()
            return
        self.portal_id = portal_id
        self.state = PanelState.OPEN
        logger.info("portal:panel success, portalId=%s", portal_id)
        self._render()

    def _on_open_timeout(self, correlation_id: str) -> None:
        if self.correlation_id != correlation_id:
            return
        logger.error("portal:panel got no reply; user must invoke again")
        self._reset()

    def _render(self) -> None:
        self._pending.expect(RENDER_WAIT_KEY, self._on_render_response)
        self._post(
            messages.portal_render(self.portal_id, messages.iframe_contents(self.content_url, self.title))
        )
        logger.info("Posted portal:render iframe -> %s", self.content_url)

    def _on_render_response(self, message: dict) -> None:
        if messages.is_success(message):
            logger.info("portal:render success")
        else:
            logger.error("portal:render failed: status=%s", message.get("status"))

    def _reset(self) -> None:
        if self.correlation_id is not None:
            self._pending.discard(open_wait_key(self.correlation_id))
        self.state = PanelState.CLOSED
        self.correlation_id = None
        self.portal_id = None
        self.close_callback_id = None
