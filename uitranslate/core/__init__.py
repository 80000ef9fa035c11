"""
Core types: data models and the event broadcaster.
"""

from uitranslate.core.models import (
    Fragment,
    SwitchResponse,
    Translation,
    TranslationProgress,
    TranslationSource,
    TranslationStats,
    TranslationString,
    TranslationStringView,
)
from uitranslate.core.events import (
    Event,
    EventTypes,
    Subscription,
    TranslationBroadcaster,
    get_broadcaster,
    reset_broadcaster,
)

__all__ = [
    # Models
    "Fragment",
    "SwitchResponse",
    "Translation",
    "TranslationProgress",
    "TranslationSource",
    "TranslationStats",
    "TranslationString",
    "TranslationStringView",
    # Events
    "Event",
    "EventTypes",
    "Subscription",
    "TranslationBroadcaster",
    "get_broadcaster",
    "reset_broadcaster",
]
