"""
Orchestration services.
"""

from uitranslate.services.translation import KeyLocks, TranslationService
from uitranslate.services.jobs import (
    JobDependencies,
    TranslationJobRunner,
    create_dependency_factory,
)
from uitranslate.services.language_switch import LanguageSwitchService, MissingString

__all__ = [
    "KeyLocks",
    "TranslationService",
    "JobDependencies",
    "TranslationJobRunner",
    "create_dependency_factory",
    "LanguageSwitchService",
    "MissingString",
]
