"""
Bounded waits for correlated host replies.
A wait is a registered callback plus a timer; nothing blocks. A reply that matches no open wait is
ignored, and an expired wait is logged and dropped (never retried here).
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Hashable, Protocol

from uef_client.errors import ConfigurationError

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class LoopScheduler:
    """Timers on an asyncio event loop: the given one, else the loop running at construction."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                raise ConfigurationError("No running event loop; pass a loop or a scheduler") from None
        self.loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return self.loop.call_later(delay, callback)


@dataclass
class _Wait:
    on_reply: Callable[[dict], None]
    on_timeout: Callable[[], None] | None
    timer: Any = None


class PendingReplies:
    def __init__(self, scheduler: Scheduler, timeout: float):
        self._scheduler = scheduler
        self._timeout = timeout
        self._waits: dict[Hashable, _Wait] = {}

    def expect(
        self,
        key: Hashable,
        on_reply: Callable[[dict], None],
        on_timeout: Callable[[], None] | None = None,
        timeout: float | None = None,
    ) -> bool:
        """
        Start waiting for the reply identified by key. Returns False, registering nothing,
        when a wait for the same key is already open (one request of a kind in flight).
        """
        if key in self._waits:
            return False
        wait = _Wait(on_reply=on_reply, on_timeout=on_timeout)
        delay = self._timeout if timeout is None else timeout
        # Registered only once the timer exists, so a failing scheduler leaves no orphaned wait
        wait.timer = self._scheduler.call_later(delay, lambda: self._expire(key, wait))
        self._waits[key] = wait
        return True

    def resolve(self, key: Hashable, message: dict) -> bool:
        """Hand message to the wait for key. False (and no effect) if nothing is waiting for it."""
        wait = self._waits.pop(key, None)
        if wait is None:
            return False
        if wait.timer is not None:
            wait.timer.cancel()
        wait.on_reply(message)
        return True

    def is_pending(self, key: Hashable) -> bool:
        return key in self._waits

    def discard(self, key: Hashable) -> None:
        wait = self._waits.pop(key, None)
        if wait is not None and wait.timer is not None:
            wait.timer.cancel()

    def clear(self) -> None:
        """Abandon every open wait without running callbacks (page unload)."""
        for wait in self._waits.values():
            if wait.timer is not None:
                wait.timer.cancel()
        self._waits.clear()

    def _expire(self, key: Hashable, wait: _Wait) -> None:
        # A resolved or replaced wait may still have its timer fire once
        if self._waits.get(key) is not wait:
            return
        del self._waits[key]
        logger.warning("No reply for %s within timeout; giving up on this step", key)
        if wait.on_timeout is not None:
            wait.on_timeout()
