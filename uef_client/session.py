"""
UEF session: one per page load.
Handshake with the Ultra shell over window messages, then everything goes through the private
MessagePort: authorize, subscribe, register the entry points, react to invocations and drive the
panel. All state is mutated only by the dispatch handlers and Token Provider callbacks, each of which
runs to completion on the event loop.
"""
import logging
from enum import Enum

from uef_client import messages
from uef_client.config import ClientConfig
from uef_client.errors import ConfigurationError
from uef_client.invocation import HelpMenuEntry, InvocationSource, NavigationRoute
from uef_client.panel import PanelController
from uef_client.pending import LoopScheduler, PendingReplies, Scheduler
from uef_client.token_provider import RefreshedCredential, TokenProvider
from uef_client.token_store import CredentialStore, StoredCredential
from uef_client.transport import HostWindow, MessagePort, WindowMessage

logger = logging.getLogger(__name__)

AUTHORIZE_WAIT_KEY = (messages.AUTHORIZE,)


class AuthState(str, Enum):
    UNAUTHORIZED = "unauthorized"
    AUTHORIZING = "authorizing"
    AUTHORIZED = "authorized"


class UefSession:
    def __init__(
        self,
        config: ClientConfig,
        window: HostWindow,
        credentials: CredentialStore,
        *,
        token_provider: TokenProvider | None = None,
        scheduler: Scheduler | None = None,
        injected_token: str | None = None,
    ):
        self.host_origin = config.host_origin
        if not self.host_origin:
            raise ConfigurationError(
                "Missing or invalid Learn host origin; set UEF_LEARN_HOST (e.g. https://learn.example.edu)"
            )
        self.config = config
        self.window = window
        self.credentials = credentials
        self.token_provider = token_provider
        self.injected_token = injected_token
        self.pending = PendingReplies(scheduler or LoopScheduler(), config.reply_timeout)

        self.port: MessagePort | None = None
        self.auth_state = AuthState.UNAUTHORIZED
        self.credential: StoredCredential | None = None
        self.refresh_attempted = False
        self.closed = False

        self.panel = PanelController(
            self.post,
            self.pending,
            content_url=config.widget_url,
            title=config.panel_title,
            panel_type=config.panel_type,
        )
        self.sources: list[InvocationSource] = []
        if config.register_help:
            self.sources.append(
                HelpMenuEntry(
                    config.help_entry_id,
                    config.help_display_name,
                    provider_type=config.help_provider_type,
                    icon_url=config.help_icon_url,
                )
            )
        if config.register_navigation:
            self.sources.append(
                NavigationRoute(config.nav_route_name, config.nav_display_name, config.nav_placeholder_text)
            )

    @property
    def has_channel(self) -> bool:
        return self.port is not None

    def start(self) -> None:
        """Listen for the host's reply and say hello to the configured origin."""
        self.window.add_message_listener(self.handle_window_message)
        target = f"{self.host_origin}/*"
        self.window.post_to_parent(messages.hello(), target)
        logger.info("Sent integration:hello to %s", target)

    def close(self) -> None:
        """Page unload: abandon pending waits and drop the channel."""
        self.closed = True
        self.pending.clear()
        self.window.remove_message_listener(self.handle_window_message)
        if self.port is not None:
            self.port.close()
            self.port = None

    def post(self, message: dict) -> bool:
        if self.port is None:
            logger.warning("No MessagePort yet; cannot post %s", message.get("type"))
            return False
        self.port.post_message(message)
        return True

    # -- handshake --

    def handle_window_message(self, event: WindowMessage) -> None:
        if event.origin != self.host_origin:
            return
        msg = event.data
        if not isinstance(msg, dict) or msg.get("type") != messages.HELLO:
            return
        if self.port is not None:
            logger.info("Duplicate integration:hello ignored; channel already established")
            return
        port = event.ports[0] if event.ports else None
        if port is None:
            logger.warning("integration:hello received without a MessagePort")
            return
        self.port = port
        port.set_message_handler(self.handle_channel_message)
        port.start()
        logger.info("Handshake complete; MessagePort stored")
        self.authorize()

    # -- authorization --

    def authorize(self) -> bool:
        if self.auth_state != AuthState.UNAUTHORIZED:
            return False
        if self.credential is None:
            self.credential = self.credentials.load(self.injected_token)
        if self.credential is None:
            logger.warning("No UEF token available; not authorizing")
            return False
        if (
            self.credential.access_token_expired_or_soon()
            and self.credential.refresh_token
            and self.token_provider is not None
        ):
            logger.info("Stored token expired; refreshing before authorize")
            self.auth_state = AuthState.AUTHORIZING
            self.token_provider.start_refresh(self.credential.refresh_token, self._on_expired_token_refreshed)
            return True
        return self._send_authorize()

    def _send_authorize(self) -> bool:
        if not self.pending.expect(AUTHORIZE_WAIT_KEY, self._on_authorize_reply, on_timeout=self._on_authorize_timeout):
            return False
        if not self.post(messages.authorize(self.credential.access_token)):
            self.pending.discard(AUTHORIZE_WAIT_KEY)
            self.auth_state = AuthState.UNAUTHORIZED
            return False
        self.auth_state = AuthState.AUTHORIZING
        logger.info("Posted authorization:authorize")
        return True

    def _store_refreshed(self, refreshed: RefreshedCredential) -> None:
        self.credential = self.credentials.save(
            refreshed.access_token,
            refresh_token=refreshed.refresh_token,
            expires_in=refreshed.expires_in,
        )

    def _on_expired_token_refreshed(self, refreshed: RefreshedCredential | None) -> None:
        if self.closed:
            return
        if refreshed is None:
            logger.warning("Token refresh failed; trying the stored token as is")
        else:
            self._store_refreshed(refreshed)
        self._send_authorize()

    def _on_authorize_reply(self, message: dict) -> None:
        if message.get("type") == messages.AUTHORIZE:
            self.auth_state = AuthState.AUTHORIZED
            logger.info("Authorize OK")
            self._after_authorized()
            return

        self.auth_state = AuthState.UNAUTHORIZED
        logger.error("Authorize FAILED")
        if self.refresh_attempted or not self.credential.refresh_token or self.token_provider is None:
            logger.warning("Token rejected and cannot be refreshed; re-launch the tool to sign in again")
            return
        self.refresh_attempted = True
        # Held in AUTHORIZING until the refresh settles so nothing else starts an authorize
        self.auth_state = AuthState.AUTHORIZING
        logger.info("Refreshing token for one more authorize")
        self.token_provider.start_refresh(self.credential.refresh_token, self._on_rejected_token_refreshed)

    def _on_rejected_token_refreshed(self, refreshed: RefreshedCredential | None) -> None:
        if self.closed:
            return
        if refreshed is None:
            self.auth_state = AuthState.UNAUTHORIZED
            logger.warning("Token refresh failed; session stays unauthorized")
            return
        self._store_refreshed(refreshed)
        logger.info("Token refreshed; retrying authorize once")
        self._send_authorize()

    def _on_authorize_timeout(self) -> None:
        self.auth_state = AuthState.UNAUTHORIZED
        logger.error("authorization:authorize got no reply")

    def _after_authorized(self) -> None:
        self.post(messages.subscribe(messages.DEFAULT_SUBSCRIPTIONS))
        logger.info("Subscribed to %s", ", ".join(messages.DEFAULT_SUBSCRIPTIONS))
        for source in self.sources:
            source.register(self.post, self.pending)

    # -- dispatch --

    def handle_channel_message(self, message) -> None:
        if self.closed or not isinstance(message, dict):
            return
        msg_type = message.get("type")

        if msg_type in (messages.AUTHORIZE, messages.UNAUTHORIZE):
            if not self.pending.resolve(AUTHORIZE_WAIT_KEY, message):
                logger.debug("Unexpected %s ignored", msg_type)
            return

        if msg_type == messages.EVENT:
            self._handle_event(message)
            return

        if msg_type == messages.PORTAL_PANEL_RESPONSE:
            if not self.panel.handle_open_response(message):
                logger.debug("portal:panel:response for unknown correlationId ignored")
            return

        if msg_type == messages.PORTAL_RENDER_RESPONSE:
            self.panel.handle_render_response(message)
            return

        if msg_type == messages.PORTAL_CALLBACK:
            self.panel.handle_close_callback(message.get("callbackId"))
            return

        for source in self.sources:
            if msg_type in source.response_types:
                source.handle_registration_response(message, self.pending)
                return

    def _handle_event(self, message: dict) -> None:
        event_type = message.get("eventType")
        if event_type == messages.PORTAL_REMOVE:
            self.panel.handle_portal_removed(message.get("portalId"))
            return
        if event_type == messages.PORTAL_NEW:
            logger.debug("portal:new %s", message.get("portalId"))
            return
        for source in self.sources:
            if event_type == source.event_type:
                if self.auth_state != AuthState.AUTHORIZED:
                    logger.warning("%s before authorization ignored", event_type)
                    source.acknowledge(message, self.post)
                    return
                source.invoke(message, self.panel, self.post)
                return
