"""
Storage abstractions.

- TranslationStore -> in-memory or JSON file
- CacheStorage -> in-memory TTL cache (process-wide layer)
"""

from __future__ import annotations

from uitranslate.config import Settings
from uitranslate.storage.base import CacheStorage, StoreFactory, TranslationStore
from uitranslate.storage.json_file import JsonFileBackend, JsonFileTranslationStore
from uitranslate.storage.memory import (
    InMemoryCacheStorage,
    InMemoryTranslationStore,
    MemoryBackend,
)


def create_store_factory(settings: Settings) -> StoreFactory:
    """
    Build the shared backend once and return a factory of store handles.

    Every call of the returned factory yields a new handle over the same data.
    """
    if settings.storage_type == "json":
        json_backend = JsonFileBackend(settings.json_file_path, auto_save=settings.json_auto_save)
        return lambda: JsonFileTranslationStore(json_backend, default_language=settings.default_language)

    memory_backend = MemoryBackend()
    return lambda: InMemoryTranslationStore(memory_backend, default_language=settings.default_language)


__all__ = [
    "CacheStorage",
    "StoreFactory",
    "TranslationStore",
    "InMemoryCacheStorage",
    "InMemoryTranslationStore",
    "MemoryBackend",
    "JsonFileBackend",
    "JsonFileTranslationStore",
    "create_store_factory",
]
