"""
Transport layer - HTTP client for upstream communication.

Provides an httpx-based transport primitive with timeout management and
optional outbound proxy configuration.
"""

from app_store_fetch.transport.http import HttpTransport

__all__ = [
    "HttpTransport",
]
