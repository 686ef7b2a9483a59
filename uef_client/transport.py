"""
Transport seams between the session and the page it runs in.
The embedder delivers window messages and port messages; the session never reads them itself.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol


class MessagePort(Protocol):
    """Private two-way channel handed over by the host during the handshake."""

    def post_message(self, message: dict) -> None: ...

    def set_message_handler(self, handler: Callable[[Any], None]) -> None: ...

    def start(self) -> None: ...

    def close(self) -> None: ...


@dataclass
class WindowMessage:
    """One frame from the page-wide message surface."""

    origin: str
    data: Any
    ports: list[MessagePort] = field(default_factory=list)


class HostWindow(Protocol):
    """The page hosting the client: posts to the parent frame and fans out inbound frames."""

    def post_to_parent(self, message: dict, target_origin: str) -> None: ...

    def add_message_listener(self, listener: Callable[[WindowMessage], None]) -> None: ...

    def remove_message_listener(self, listener: Callable[[WindowMessage], None]) -> None: ...
