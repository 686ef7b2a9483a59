"""
In-memory store for pending 3LO flows (state issued at /lti/launch, consumed at /oauth/callback).
TTL to avoid unbounded growth.
"""
import secrets
import time
from dataclasses import dataclass

# Learn keeps the user on its consent page; allow 10 min
STATE_TTL = 600


@dataclass
class PendingLaunch:
    created_at: float

    def expired(self) -> bool:
        return (time.monotonic() - self.created_at) > STATE_TTL


_pending: dict[str, PendingLaunch] = {}


def generate_state() -> str:
    """Opaque value for CSRF protection; returned in callback."""
    return f"st_{secrets.token_urlsafe(24)}"


def store_state(state: str) -> None:
    _clean_expired()
    _pending[state] = PendingLaunch(created_at=time.monotonic())


def pop_state(state: str) -> bool:
    """Consume state; True only the first time and only while fresh."""
    launch = _pending.pop(state, None)
    return launch is not None and not launch.expired()


def _clean_expired() -> None:
    now = time.monotonic()
    expired = [s for s, f in _pending.items() if (now - f.created_at) > STATE_TTL]
    for s in expired:
        del _pending[s]
