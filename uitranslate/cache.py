"""
Two-layer read cache in front of the translation store.

1. ``RequestTranslationCache``: private to one inbound request. Created at
   the start of the request and cleared at its end, so a render pass reads
   each (language, key) from the store at most once.
2. ``TranslationCache``: process-wide, time-bounded, shared by all requests
   and background jobs. Entries are evicted as soon as the translation they
   mirror is written.

Neither layer is the source of truth and neither signals errors: a miss is
just ``None``.
"""

from __future__ import annotations

from uitranslate.storage.base import CacheStorage
from uitranslate.storage.memory import InMemoryCacheStorage


class RequestTranslationCache:
    """Per-request map of language -> key -> text."""

    def __init__(self):
        self._cache: dict[str, dict[str, str]] = {}
        self._checked: set[tuple[str, str]] = set()

    def get(self, language_code: str, key: str) -> str | None:
        return self._cache.get(language_code, {}).get(key)

    def set(self, language_code: str, key: str, value: str) -> None:
        self._cache.setdefault(language_code, {})[key] = value

    def mark_checked(self, key: str, default_text: str) -> None:
        """Remember that ``default_text`` was compared with the stored record."""
        self._checked.add((key, default_text))

    def is_checked(self, key: str, default_text: str) -> bool:
        return (key, default_text) in self._checked

    def clear(self) -> None:
        self._cache.clear()
        self._checked.clear()

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._cache.values())


class TranslationCache:
    """
    Process-wide translation cache.

    Usage:
        cache = TranslationCache(ttl_seconds=3600)

        text = await cache.get("fr", "home.title", request_cache)
        if text is None:
            text = ...  # read through to the store
            await cache.set("fr", "home.title", text, request_cache)

        # After writing a translation
        await cache.invalidate("fr", "home.title")
    """

    def __init__(
        self,
        storage: CacheStorage | None = None,
        ttl_seconds: int = 3600,
        enabled: bool = True,
    ):
        self._storage = storage or InMemoryCacheStorage()
        self.ttl_seconds = ttl_seconds
        self.enabled = enabled

    @staticmethod
    def make_key(language_code: str, key: str) -> str:
        return f"trans:{language_code}:{key}"

    async def get(
        self,
        language_code: str,
        key: str,
        request_cache: RequestTranslationCache | None = None,
    ) -> str | None:
        """Look in the request layer, then the process-wide layer."""
        if request_cache is not None:
            cached = request_cache.get(language_code, key)
            if cached is not None:
                return cached

        if not self.enabled:
            return None

        cached = await self._storage.get(self.make_key(language_code, key))
        if cached is not None and request_cache is not None:
            request_cache.set(language_code, key, cached)
        return cached

    async def set(
        self,
        language_code: str,
        key: str,
        text: str,
        request_cache: RequestTranslationCache | None = None,
    ) -> None:
        """Populate both layers after a store read."""
        if self.enabled:
            await self._storage.set(self.make_key(language_code, key), text, ttl=self.ttl_seconds or None)
        if request_cache is not None:
            request_cache.set(language_code, key, text)

    async def invalidate(self, language_code: str, key: str) -> None:
        """Evict the process-wide entry for (language, key)."""
        await self._storage.delete(self.make_key(language_code, key))
