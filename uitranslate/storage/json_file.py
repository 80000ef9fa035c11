"""
JSON file storage.

Useful for simple deployments, development, or static site generation.
Records live in memory and are written to a single JSON file after every
change (``auto_save``) or on ``save()``.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from uitranslate.core.models import TranslationString
from uitranslate.storage.memory import InMemoryTranslationStore, MemoryBackend

logger = logging.getLogger(__name__)


class JsonTranslationData(BaseModel):
    """Root document of the JSON file."""

    strings: list[TranslationString] = Field(default_factory=list)


class JsonFileBackend(MemoryBackend):
    """Memory backend loaded from, and saved to, a JSON file."""

    def __init__(self, file_path: str | Path, auto_save: bool = True):
        super().__init__()
        self.file_path = Path(file_path)
        self.auto_save = auto_save
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        self._load()

    def _load(self) -> None:
        if not self.file_path.exists():
            logger.info("Translation file not found at %s, creating new", self.file_path)
            return

        try:
            data = JsonTranslationData.model_validate_json(self.file_path.read_text(encoding="utf-8"))
        except (OSError, ValidationError, ValueError):
            logger.exception("Failed to load translations from %s, starting with empty data", self.file_path)
            return

        self.strings = {record.key: record for record in data.strings}
        self.next_id = max((record.id for record in data.strings), default=0) + 1
        logger.info("Loaded %d translation strings from %s", len(self.strings), self.file_path)

    def save(self) -> None:
        """Write all records to disk (atomically, via a temp file)."""
        data = JsonTranslationData(strings=list(self.strings.values()))
        tmp_path = self.file_path.with_suffix(self.file_path.suffix + ".tmp")
        tmp_path.write_text(data.model_dump_json(indent=2), encoding="utf-8")
        os.replace(tmp_path, self.file_path)
        logger.debug("Saved %d translation strings to %s", len(self.strings), self.file_path)


class JsonFileTranslationStore(InMemoryTranslationStore):
    """Store handle over a ``JsonFileBackend``."""

    backend: JsonFileBackend

    def __init__(self, backend: JsonFileBackend, default_language: str = "en"):
        super().__init__(backend=backend, default_language=default_language)

    def _persist(self) -> None:
        if self.backend.auto_save:
            self.backend.save()

    async def save(self) -> None:
        """Flush to disk (needed when ``auto_save`` is off)."""
        async with self.backend.lock:
            self.backend.save()
