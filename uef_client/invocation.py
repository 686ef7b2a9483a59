"""
Invocation sources: the user-facing entry points that open the panel.
Both share one registration discipline (sent once, type-keyed reply, never retried) and feed the
same PanelController.
"""
import logging
from typing import Callable

from uef_client import messages
from uef_client.panel import PanelController
from uef_client.pending import PendingReplies

logger = logging.getLogger(__name__)


class InvocationSource:
    kind = ""
    # Host reply types for the registration; the host contract varies between versions
    response_types: tuple[str, ...] = ()
    event_type = ""

    def __init__(self):
        self.acknowledged = False

    @property
    def wait_key(self) -> tuple[str]:
        return (self.kind,)

    def registration_message(self) -> dict:
        raise NotImplementedError

    def register(self, post: Callable[[dict], None], pending: PendingReplies) -> bool:
        """Send the registration unless it is acknowledged or already in flight."""
        if self.acknowledged:
            logger.debug("%s already registered; not re-sending", self.kind)
            return False
        if not pending.expect(self.wait_key, self._on_registration_reply, on_timeout=self._on_registration_timeout):
            logger.debug("%s registration already in flight", self.kind)
            return False
        post(self.registration_message())
        logger.info("Posted %s", self.kind)
        return True

    def handle_registration_response(self, message: dict, pending: PendingReplies) -> bool:
        return pending.resolve(self.wait_key, message)

    def _on_registration_reply(self, message: dict) -> None:
        if messages.is_success(message):
            self.acknowledged = True
            logger.info("%s acknowledged", self.kind)
        else:
            # Left unacknowledged for the rest of the session
            logger.error("%s failed: status=%s", self.kind, message.get("status"))

    def _on_registration_timeout(self) -> None:
        logger.error("%s got no reply; entry stays unregistered this session", self.kind)

    def invoke(self, event: dict, panel: PanelController, post: Callable[[dict], None]) -> None:
        raise NotImplementedError

    def acknowledge(self, event: dict, post: Callable[[dict], None]) -> None:
        """Reply the host expects even when the invocation is not acted on; none by default."""


class HelpMenuEntry(InvocationSource):
    kind = messages.HELP_REGISTER
    response_types = (messages.HELP_REGISTER_RESPONSE, messages.HELP_REGISTER)
    event_type = messages.HELP_REQUEST

    def __init__(
        self,
        entry_id: str,
        display_name: str,
        provider_type: str = "auxiliary",
        icon_url: str | None = None,
    ):
        super().__init__()
        self.entry_id = entry_id
        self.display_name = display_name
        self.provider_type = provider_type
        self.icon_url = icon_url

    def registration_message(self) -> dict:
        return messages.help_register(
            entry_id=self.entry_id,
            display_name=self.display_name,
            provider_type=self.provider_type,
            icon_url=self.icon_url,
        )

    def invoke(self, event: dict, panel: PanelController, post: Callable[[dict], None]) -> None:
        logger.info("help:request received; opening panel")
        try:
            panel.show()
        finally:
            # The host times out help requests; acknowledge whatever happened to the panel
            self.acknowledge(event, post)

    def acknowledge(self, event: dict, post: Callable[[dict], None]) -> None:
        correlation_id = event.get("correlationId")
        if correlation_id:
            post(messages.help_request_response(correlation_id))
            logger.info("Posted help:request:response")
        else:
            logger.warning("help:request without correlationId; cannot acknowledge")


class NavigationRoute(InvocationSource):
    kind = messages.NAV_REGISTER
    response_types = (messages.NAV_REGISTER_RESPONSE, messages.NAV_REGISTER)
    event_type = messages.ROUTE

    def __init__(self, route_name: str, display_name: str, placeholder_text: str):
        super().__init__()
        self.route_name = route_name
        self.display_name = display_name
        self.placeholder_text = placeholder_text
        self.opened = False

    def registration_message(self) -> dict:
        return messages.navigation_register(
            route_name=self.route_name,
            display_name=self.display_name,
            initial_contents=messages.placeholder_contents(self.placeholder_text),
        )

    def invoke(self, event: dict, panel: PanelController, post: Callable[[dict], None]) -> None:
        route_name = event.get("routeName")
        if route_name != self.route_name:
            if self.opened:
                logger.debug("Left route %s", self.route_name)
            self.opened = False
            return
        if self.opened:
            logger.debug("Repeated route notification for %s; panel already requested", route_name)
            return
        self.opened = True
        logger.info("Route %s entered; opening panel", route_name)
        panel.show()
