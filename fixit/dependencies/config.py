"""
Settings dependency for the API routes.
"""

from fixit.core.config import AppSettings, get_settings


def get_app_settings() -> AppSettings:
    """Process-wide settings; ``get_settings`` already caches them."""
    return get_settings()


__all__ = ["get_app_settings"]
