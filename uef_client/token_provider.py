"""
Token Provider client: exchanges a refresh credential for a new bearer credential at the
widget server's refresh endpoint.
The request runs as a task on the event loop; the session hears about the outcome through a
callback, so dispatch of other host frames carries on while the refresh is in flight.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Protocol

import httpx

logger = logging.getLogger(__name__)


@dataclass
class RefreshedCredential:
    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None


RefreshDone = Callable[[RefreshedCredential | None], None]


class TokenProvider(Protocol):
    def start_refresh(self, refresh_token: str, on_done: RefreshDone) -> object: ...


class HttpTokenProvider:
    def __init__(
        self,
        refresh_url: str,
        *,
        timeout: float = 10.0,
        loop: asyncio.AbstractEventLoop | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.refresh_url = refresh_url
        self.timeout = timeout
        self.loop = loop
        self._transport = transport

    async def refresh(self, refresh_token: str) -> RefreshedCredential | None:
        """POST the refresh token; returns the new credential or None on any failure."""
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                r = await client.post(
                    self.refresh_url,
                    data={"refresh_token": refresh_token},
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as e:
            logger.warning("Token refresh request failed: %s", e)
            return None
        if r.status_code != 200:
            logger.warning("Token refresh rejected: HTTP %s", r.status_code)
            return None
        try:
            data = r.json()
        except ValueError:
            logger.warning("Token refresh returned a non-JSON body")
            return None
        access_token = data.get("access_token") if isinstance(data, dict) else None
        if not access_token:
            logger.warning("Token refresh response has no access_token")
            return None
        expires_in = data.get("expires_in")
        return RefreshedCredential(
            access_token=access_token,
            refresh_token=data.get("refresh_token") or None,
            expires_in=int(expires_in) if expires_in else None,
        )

    def start_refresh(self, refresh_token: str, on_done: RefreshDone) -> asyncio.Task:
        """Schedule refresh() on the loop and call on_done with its result (None if it did not finish)."""
        loop = self.loop or asyncio.get_running_loop()
        task = loop.create_task(self.refresh(refresh_token))

        def _finished(t: asyncio.Task) -> None:
            if t.cancelled():
                logger.warning("Token refresh cancelled")
                on_done(None)
                return
            exc = t.exception()
            if exc is not None:
                logger.error("Token refresh crashed: %r", exc)
                on_done(None)
                return
            on_done(t.result())

        task.add_done_callback(_finished)
        return task
