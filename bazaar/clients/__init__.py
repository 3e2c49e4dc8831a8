"""Bazaar API clients"""

from .bazaar_client import BazaarClient
from .exceptions import (
    BazaarAPIError,
    UpstreamTransportError,
    UpstreamStatusError,
    UpstreamPayloadError,
    UpstreamFailureError,
    RefreshAborted,
)

__all__ = [
    "BazaarClient",
    "BazaarAPIError",
    "UpstreamTransportError",
    "UpstreamStatusError",
    "UpstreamPayloadError",
    "UpstreamFailureError",
    "RefreshAborted",
]
