"""
uitranslate - on-demand AI translation for server-rendered UI strings.

Stores key -> text records, translates missing strings in the background,
caches results per request and per process, and broadcasts each finished
translation so open pages can update in place.
"""

__version__ = "0.1.0"
