"""API key provider and the key-selection side channel."""

import logging
from typing import Callable, Protocol

from ..config import ApiKeySettings


logger = logging.getLogger(__name__)

KeyProvider = Callable[[], str | None]


def settings_key_provider() -> str | None:
    """Read the key from the environment / .env on every call."""
    return ApiKeySettings().gemini_api_key


class KeySelector(Protocol):
    """What the surrounding application offers for choosing a key."""

    async def has_selected_api_key(self) -> bool: ...

    async def open_select_key(self, api_key: str | None = None) -> None: ...

    def invalidate(self) -> None: ...


class KeyStore:
    """In-memory key selection that also serves as a :data:`KeyProvider`.

    A key chosen through :meth:`open_select_key` wins over the environment.
    After :meth:`invalidate` no key counts as selected until the user picks
    one again.
    """

    def __init__(self, fallback: KeyProvider | None = settings_key_provider):
        self._fallback = fallback
        self._api_key: str | None = None
        self._invalidated = False

    def __call__(self) -> str | None:
        if self._invalidated:
            return None
        if self._api_key:
            return self._api_key
        return self._fallback() if self._fallback else None

    async def has_selected_api_key(self) -> bool:
        return bool(self())

    async def open_select_key(self, api_key: str | None = None) -> None:
        """Record a newly chosen key; with no key, trust the environment again."""
        if api_key:
            self._api_key = api_key.strip()
        self._invalidated = False
        logger.info("API key selected (%s)", "explicit" if api_key else "environment")

    def invalidate(self) -> None:
        """Forget the current key after the backend rejected it."""
        self._api_key = None
        self._invalidated = True
        logger.warning("API key invalidated; re-selection required")
