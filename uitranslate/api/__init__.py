"""
HTTP and WebSocket surface.
"""

from uitranslate.api.app import create_app

__all__ = ["create_app"]
