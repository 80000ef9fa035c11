"""
Language codes and utilities.

Codes are ISO 639-1 (plus ``zh-tw``). Any code is accepted by the
translation pipeline; this table only supplies human-readable names for
LLM prompts and normalises common spellings.
"""

# Human-readable names
LANGUAGE_NAMES: dict[str, str] = {
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "pt": "Portuguese",
    "nl": "Dutch",
    "pl": "Polish",
    "ru": "Russian",
    "uk": "Ukrainian",
    "sv": "Swedish",
    "da": "Danish",
    "fi": "Finnish",
    "no": "Norwegian",
    "cs": "Czech",
    "el": "Greek",
    "tr": "Turkish",
    "zh": "Chinese (Simplified)",
    "zh-tw": "Chinese (Traditional)",
    "ja": "Japanese",
    "ko": "Korean",
    "vi": "Vietnamese",
    "th": "Thai",
    "id": "Indonesian",
    "hi": "Hindi",
    "ar": "Arabic",
    "he": "Hebrew",
    "fa": "Persian",
}


def get_language_name(code: str) -> str:
    """Get human-readable language name (falls back to the code)."""
    return LANGUAGE_NAMES.get(code.lower(), code)


def normalize_language_code(code: str) -> str:
    """Normalize a language code or English language name to its code."""
    code = code.lower().strip().replace("_", "-")

    variants = {
        "english": "en",
        "spanish": "es",
        "french": "fr",
        "german": "de",
        "italian": "it",
        "portuguese": "pt",
        "dutch": "nl",
        "polish": "pl",
        "russian": "ru",
        "ukrainian": "uk",
        "chinese": "zh",
        "japanese": "ja",
        "korean": "ko",
        "arabic": "ar",
        "hebrew": "he",
        "persian": "fa",
        "farsi": "fa",
        "hindi": "hi",
        # Common misspellings
        "portugese": "pt",
    }

    return variants.get(code, code)
