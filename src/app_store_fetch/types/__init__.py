"""
Type definitions for app-store-fetch.
"""

from app_store_fetch.types.app import App, is_free

__all__ = [
    "App",
    "is_free",
]
