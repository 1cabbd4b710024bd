"""Scraper exports."""

from .ncaa_api import (
    ApiClientConfig,
    FetchError,
    NCAAApiClient,
    NetworkTransientError,
    UpstreamPermanentError,
    UpstreamRateLimitedError,
)

__all__ = [
    "ApiClientConfig",
    "FetchError",
    "NCAAApiClient",
    "NetworkTransientError",
    "UpstreamPermanentError",
    "UpstreamRateLimitedError",
]
