"""
Boot entry point: what the boot page does on load.
Wires the credential store and Token Provider into a session and starts the handshake.
"""
from uef_client.config import ClientConfig
from uef_client.pending import LoopScheduler, Scheduler
from uef_client.session import UefSession
from uef_client.token_provider import HttpTokenProvider
from uef_client.token_store import CredentialStore, Storage


def start_session(
    window,
    storage: Storage,
    *,
    config: ClientConfig | None = None,
    token: str | None = None,
    scheduler: Scheduler | None = None,
) -> UefSession:
    """
    Create and start the page's session. `token` is the value the boot page was launched with
    (?token=...). Raises ConfigurationError before anything is sent if the host origin is missing,
    or if no scheduler is given and no event loop is running.
    """
    config = config or ClientConfig()
    scheduler = scheduler or LoopScheduler()
    provider = None
    if config.refresh_url:
        provider = HttpTokenProvider(config.refresh_url, loop=getattr(scheduler, "loop", None))
    session = UefSession(
        config,
        window,
        CredentialStore(storage),
        token_provider=provider,
        scheduler=scheduler,
        injected_token=token,
    )
    session.start()
    return session
