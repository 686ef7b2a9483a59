"""
Pytest fixtures for uef_client: fake host window and MessagePort, manual timers.
The fakes stand in for the browser; the host's side is driven by the tests.
"""
import pytest

from uef_client import messages
from uef_client.config import ClientConfig
from uef_client.session import UefSession
from uef_client.token_store import CredentialStore, MemoryStorage
from uef_client.transport import WindowMessage

LEARN_ORIGIN = "https://learn.example.edu"


class FakePort:
    def __init__(self):
        self.sent: list[dict] = []
        self.handler = None
        self.started = False
        self.closed = False

    def post_message(self, message):
        self.sent.append(message)

    def set_message_handler(self, handler):
        self.handler = handler

    def start(self):
        self.started = True

    def close(self):
        self.closed = True

    def deliver(self, message):
        self.handler(message)

    def sent_of(self, msg_type: str) -> list[dict]:
        return [m for m in self.sent if m.get("type") == msg_type]


class FakeWindow:
    def __init__(self):
        self.posted: list[tuple[dict, str]] = []
        self.listeners = []

    def post_to_parent(self, message, target_origin):
        self.posted.append((message, target_origin))

    def add_message_listener(self, listener):
        self.listeners.append(listener)

    def remove_message_listener(self, listener):
        if listener in self.listeners:
            self.listeners.remove(listener)

    def deliver(self, origin, data, ports=()):
        for listener in list(self.listeners):
            listener(WindowMessage(origin=origin, data=data, ports=list(ports)))


class _Timer:
    def __init__(self, when, callback):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Timers fire only when the test advances the clock."""

    def __init__(self):
        self.now = 0.0
        self.timers: list[_Timer] = []

    def call_later(self, delay, callback):
        timer = _Timer(self.now + delay, callback)
        self.timers.append(timer)
        return timer

    def advance(self, seconds):
        self.now += seconds
        due = sorted(
            (t for t in self.timers if not t.cancelled and t.when <= self.now),
            key=lambda t: t.when,
        )
        for t in due:
            self.timers.remove(t)
            if not t.cancelled:
                t.callback()

    @property
    def active(self) -> int:
        return sum(1 for t in self.timers if not t.cancelled)


class FakeTokenProvider:
    """Refreshes stay in flight until the test completes them, oldest first."""

    def __init__(self):
        self.calls: list[str] = []
        self.in_flight = []

    def start_refresh(self, refresh_token, on_done):
        self.calls.append(refresh_token)
        self.in_flight.append(on_done)

    def complete(self, result):
        self.in_flight.pop(0)(result)


@pytest.fixture
def window():
    return FakeWindow()


@pytest.fixture
def port():
    return FakePort()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def storage():
    return MemoryStorage({"UEF_USER_TOKEN": "stored-token"})


@pytest.fixture
def make_port():
    return FakePort


@pytest.fixture
def make_provider():
    return FakeTokenProvider


@pytest.fixture
def make_session(window, scheduler, storage):
    def _make(token_provider=None, injected_token=None, **overrides):
        config = ClientConfig(
            learn_host=overrides.pop("learn_host", LEARN_ORIGIN),
            widget_url=overrides.pop("widget_url", "https://tool.example.com/widget.html"),
            reply_timeout=overrides.pop("reply_timeout", 5.0),
            **overrides,
        )
        session = UefSession(
            config,
            window,
            CredentialStore(storage),
            token_provider=token_provider,
            scheduler=scheduler,
            injected_token=injected_token,
        )
        session.start()
        return session

    return _make


@pytest.fixture
def handshake(window, port):
    """Deliver the host's hello with the private port."""

    def _handshake(p=None):
        window.deliver(LEARN_ORIGIN, {"type": messages.HELLO}, [p or port])

    return _handshake


@pytest.fixture
def authorized_session(make_session, handshake, port):
    """Session past handshake and authorization, with registrations acknowledged."""
    session = make_session()
    handshake()
    port.deliver({"type": messages.AUTHORIZE})
    port.deliver({"type": messages.HELP_REGISTER_RESPONSE, "status": "success"})
    port.deliver({"type": messages.NAV_REGISTER_RESPONSE, "status": "success"})
    port.sent.clear()
    return session


@pytest.fixture
def open_panel(authorized_session, port):
    """Drive a help invocation until the panel is OPEN; returns the session."""
    port.deliver({"type": messages.EVENT, "eventType": messages.HELP_REQUEST, "correlationId": "help-1"})
    request = port.sent_of(messages.PORTAL_PANEL)[-1]
    port.deliver(
        {
            "type": messages.PORTAL_PANEL_RESPONSE,
            "correlationId": request["correlationId"],
            "status": "success",
            "portalId": "portal-1",
        }
    )
    port.sent.clear()
    return authorized_session
