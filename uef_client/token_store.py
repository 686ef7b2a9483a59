"""
Credential persistence for the UEF client.
One bearer token (plus optional refresh token and expiry) in a key-value store, the local-storage
equivalent of the browser boot page. Lookup order: injected value, primary key, legacy key.
"""
import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from uef_client.config import (
    EXPIRES_IN_STORAGE_KEY,
    ISSUED_AT_STORAGE_KEY,
    LEGACY_TOKEN_STORAGE_KEY,
    REFRESH_TOKEN_STORAGE_KEY,
    TOKEN_STORAGE_KEY,
)

logger = logging.getLogger(__name__)

SOURCE_INJECTED = "injected"
SOURCE_STORAGE = "storage"
SOURCE_LEGACY = "legacy"


class Storage(Protocol):
    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    def __init__(self, initial: dict[str, str] | None = None):
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class JsonFileStorage:
    """Key-value storage kept as one JSON object on disk; rewritten on every change."""

    def __init__(self, path: str | Path):
        self._path = Path(path)

    def _read(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Could not read credential storage %s: %s", self._path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, str]) -> None:
        self._path.write_text(json.dumps(data), encoding="utf-8")

    def get_item(self, key: str) -> str | None:
        value = self._read().get(key)
        return None if value is None else str(value)

    def set_item(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove_item(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


@dataclass
class StoredCredential:
    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None
    issued_at: float | None = None
    source: str = SOURCE_STORAGE

    def access_token_expired_or_soon(self, buffer_seconds: int = 60) -> bool:
        """
        True if the access token is expired or within buffer_seconds of expiry.
        Unknown expiry counts as valid. When the lifetime is shorter than buffer_seconds, only
        return True when actually expired.
        """
        if self.expires_in is None or self.issued_at is None:
            return False
        elapsed = time.time() - self.issued_at
        if elapsed >= self.expires_in:
            return True
        if self.expires_in > buffer_seconds and elapsed >= (self.expires_in - buffer_seconds):
            return True
        return False


def _clean(value: str | None) -> str:
    return (value or "").strip()


def _to_int(value: str | None) -> int | None:
    try:
        return int(value) if value else None
    except ValueError:
        return None


def _to_float(value: str | None) -> float | None:
    try:
        return float(value) if value else None
    except ValueError:
        return None


class CredentialStore:
    def __init__(
        self,
        storage: Storage,
        *,
        key: str = TOKEN_STORAGE_KEY,
        legacy_key: str = LEGACY_TOKEN_STORAGE_KEY,
    ):
        self._storage = storage
        self._key = key
        self._legacy_key = legacy_key

    def load(self, injected: str | None = None) -> StoredCredential | None:
        """Resolve the bearer credential. None when no source has one; never prompts for login."""
        token = _clean(injected)
        if token:
            # The boot page persists the injected token so a reload can reuse it
            self._storage.set_item(self._key, token)
            self._storage.remove_item(EXPIRES_IN_STORAGE_KEY)
            self._storage.remove_item(ISSUED_AT_STORAGE_KEY)
            return StoredCredential(
                access_token=token,
                refresh_token=_clean(self._storage.get_item(REFRESH_TOKEN_STORAGE_KEY)) or None,
                source=SOURCE_INJECTED,
            )

        token = _clean(self._storage.get_item(self._key))
        if token:
            return StoredCredential(
                access_token=token,
                refresh_token=_clean(self._storage.get_item(REFRESH_TOKEN_STORAGE_KEY)) or None,
                expires_in=_to_int(self._storage.get_item(EXPIRES_IN_STORAGE_KEY)),
                issued_at=_to_float(self._storage.get_item(ISSUED_AT_STORAGE_KEY)),
                source=SOURCE_STORAGE,
            )

        token = _clean(self._storage.get_item(self._legacy_key))
        if token:
            logger.info("Using token from legacy storage key %s", self._legacy_key)
            return StoredCredential(access_token=token, source=SOURCE_LEGACY)
        return None

    def save(
        self,
        access_token: str,
        refresh_token: str | None = None,
        expires_in: int | None = None,
    ) -> StoredCredential:
        self._storage.set_item(self._key, access_token)
        if refresh_token:
            self._storage.set_item(REFRESH_TOKEN_STORAGE_KEY, refresh_token)
        issued_at = time.time()
        if expires_in:
            self._storage.set_item(EXPIRES_IN_STORAGE_KEY, str(int(expires_in)))
            self._storage.set_item(ISSUED_AT_STORAGE_KEY, str(issued_at))
        else:
            self._storage.remove_item(EXPIRES_IN_STORAGE_KEY)
            self._storage.remove_item(ISSUED_AT_STORAGE_KEY)
        return StoredCredential(
            access_token=access_token,
            refresh_token=refresh_token or _clean(self._storage.get_item(REFRESH_TOKEN_STORAGE_KEY)) or None,
            expires_in=int(expires_in) if expires_in else None,
            issued_at=issued_at if expires_in else None,
            source=SOURCE_STORAGE,
        )

    def clear(self) -> None:
        for key in (
            self._key,
            self._legacy_key,
            REFRESH_TOKEN_STORAGE_KEY,
            EXPIRES_IN_STORAGE_KEY,
            ISSUED_AT_STORAGE_KEY,
        ):
            self._storage.remove_item(key)
