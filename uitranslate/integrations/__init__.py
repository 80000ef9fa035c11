"""
Third-party integrations (error tracking, logging setup).
"""

from uitranslate.integrations.sentry import capture_exception, configure_logging, init_sentry

__all__ = ["capture_exception", "configure_logging", "init_sentry"]
