"""
Shared utility functions.
"""

from __future__ import annotations

import hashlib
import uuid
from datetime import datetime, timezone


def generate_id(prefix: str = "") -> str:
    """
    Generate a unique ID with optional prefix.

    Args:
        prefix: Optional prefix (e.g., "job")

    Returns:
        A unique ID like "job_a1b2c3d4e5f6"
    """
    uid = uuid.uuid4().hex[:12]
    return f"{prefix}_{uid}" if prefix else uid


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def content_hash(content: str | None, length: int = 16) -> str:
    """
    Short lowercase hex digest of ``content``.

    Used for DOM element ids (``t-<hash>``) and cache keys. ``None`` hashes
    like the empty string.
    """
    if length <= 0 or length > 64:
        raise ValueError("length must be between 1 and 64")
    return hashlib.sha256((content or "").encode("utf-8")).hexdigest()[:length]


def element_id(key: str) -> str:
    """DOM element id a client uses to locate the node rendering ``key``."""
    return f"t-{content_hash(key)}"
