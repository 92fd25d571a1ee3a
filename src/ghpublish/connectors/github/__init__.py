"""GitHub integration package.

Provides a sync API client for the GitHub REST API v3 with basic/token
authentication, proxy routing, and a smoothed rate limit on mutating
requests, plus typed services over the git data and releases endpoints.
"""

from .client import (
    BasicAuth,
    Credentials,
    GitHubClient,
    TokenAuth,
    api_base_url,
    create_client,
    resolve_credentials,
)
from .data import DataService, select_email
from .rate_limiter import FALLBACK_PERMITS_PER_SECOND, SmoothRateLimiter
from .releases import Release, ReleaseAsset, ReleaseService

__all__ = [
    "FALLBACK_PERMITS_PER_SECOND",
    "BasicAuth",
    "Credentials",
    "DataService",
    "GitHubClient",
    "Release",
    "ReleaseAsset",
    "ReleaseService",
    "SmoothRateLimiter",
    "TokenAuth",
    "api_base_url",
    "create_client",
    "resolve_credentials",
    "select_email",
]
