"""GitHub REST API client.

Provides an httpx-based client for the GitHub REST API v3 with basic or
token authentication, optional HTTP proxy routing, and a smoothed rate
limit on mutating requests (POST, PUT, PATCH). GET and DELETE are never
rate limited.

The limiter is created lazily on the first mutating request: a probe of
``/rate_limit`` sizes it to ``remaining / seconds-until-reset``; if the
probe fails the fixed fallback of 20 requests per minute applies.

Reference: https://docs.github.com/en/rest
"""

import base64
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlparse

import httpx

from ghpublish.__version__ import __version__
from ghpublish.config import PublishConfig
from ghpublish.connectors.github.rate_limiter import (
    FALLBACK_PERMITS_PER_SECOND,
    SmoothRateLimiter,
)
from ghpublish.errors import ConfigError, HubError, NoCredentials, PublishError, TransportError
from ghpublish.host_settings import (
    DEFAULT_HOST,
    HostSettings,
    ProxyEntry,
    get_proxy,
    get_server,
    load_host_settings,
)

logger = logging.getLogger("ghpublish.github.client")

__all__ = [
    "API_HOST",
    "BasicAuth",
    "Credentials",
    "GitHubClient",
    "TokenAuth",
    "api_base_url",
    "create_client",
    "resolve_credentials",
]

API_HOST = "api.github.com"
API_PREFIX = "/api/v3"
DEFAULT_SCHEME = "https"


@dataclass(frozen=True)
class BasicAuth:
    user: str
    password: str

    def header(self) -> str:
        encoded = base64.b64encode(f"{self.user}:{self.password}".encode()).decode()
        return f"Basic {encoded}"

    def __repr__(self) -> str:
        return f"BasicAuth(user={self.user!r}, password='***')"


@dataclass(frozen=True)
class TokenAuth:
    token: str

    def header(self) -> str:
        return f"token {self.token}"

    def __repr__(self) -> str:
        return "TokenAuth(token='***')"


Credentials = BasicAuth | TokenAuth


def resolve_credentials(
    user_name: str | None = None,
    password: str | None = None,
    oauth2_token: str | None = None,
    server_id: str | None = None,
    settings: HostSettings | None = None,
) -> Credentials:
    """Pick credentials, first match wins.

    1. Explicit user name and password (basic)
    2. Explicit OAuth2 token
    3. Named server entry from settings: username and password -> basic,
       password only -> token

    Raises:
        ConfigError: If server_id names a server missing from settings
        NoCredentials: If nothing yields credentials
    """
    if user_name and password:
        logger.debug("Using basic authentication with username: %s", user_name)
        return BasicAuth(user_name, password)

    if oauth2_token:
        logger.debug("Using OAuth2 access token authentication")
        return TokenAuth(oauth2_token)

    if server_id:
        server = get_server(settings, server_id)
        if server is None:
            raise ConfigError(f"Server '{server_id}' not found in settings")
        logger.debug("Using '%s' server credentials", server_id)
        if server.username and server.password:
            logger.debug("Using basic authentication with username: %s", server.username)
            return BasicAuth(server.username, server.password)
        # A server password without a username is an OAuth2 token
        if server.password:
            logger.debug("Using OAuth2 access token authentication")
            return TokenAuth(server.password)
        logger.debug("Server '%s' is missing username/password credentials", server_id)

    raise NoCredentials()


def api_base_url(host: str | None = None) -> str:
    """API root URL for a configured host.

    ``None``, ``github.com`` and ``api.github.com`` map to the public API.
    Any other host is treated as GitHub Enterprise and gets ``/api/v3``.
    A host without ``://`` implies https.

    Raises:
        ConfigError: If a URL host cannot be parsed
    """
    if not host:
        return f"{DEFAULT_SCHEME}://{API_HOST}"

    if "://" not in host:
        if host in (DEFAULT_HOST, API_HOST):
            return f"{DEFAULT_SCHEME}://{API_HOST}"
        return f"{DEFAULT_SCHEME}://{host}{API_PREFIX}"

    try:
        parsed = urlparse(host)
        port = parsed.port
    except ValueError as e:
        raise ConfigError(f"Could not parse host URL {host}") from e
    if not parsed.scheme or not parsed.hostname:
        raise ConfigError(f"Could not parse host URL {host}")

    hostname = parsed.hostname
    if hostname in (DEFAULT_HOST, API_HOST):
        hostname = API_HOST
    netloc = hostname if port is None else f"{hostname}:{port}"
    prefix = "" if hostname == API_HOST else API_PREFIX
    return f"{parsed.scheme}://{netloc}{prefix}"


def _target_hostname(host: str | None) -> str | None:
    """Hostname used for nonProxyHosts matching."""
    if not host:
        return None
    if "://" in host:
        try:
            return urlparse(host).hostname or host
        except ValueError:
            return host
    return host


class GitHubClient:
    """GitHub REST API client using a long-lived httpx.Client.

    Attributes:
        base_url: API root URL
        credentials: Active credentials (exactly one form)
        proxy: Proxy requests are routed through, if any

    Example:
        >>> with GitHubClient(TokenAuth("ghp_token")) as client:
        ...     user = client.get("/user")
    """

    # Timeout configuration
    CONNECT_TIMEOUT = 10.0  # seconds
    READ_TIMEOUT = 60.0  # seconds, blob uploads can be large
    WRITE_TIMEOUT = 60.0  # seconds
    POOL_TIMEOUT = 10.0  # seconds

    RATE_LIMIT_URI = "/rate_limit"
    MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH"})

    def __init__(
        self,
        credentials: Credentials | None,
        host: str | None = None,
        proxy: ProxyEntry | None = None,
        rate_limiter: SmoothRateLimiter | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize client.

        Args:
            credentials: BasicAuth or TokenAuth
            host: API host override (bare hostname or URL)
            proxy: HTTP proxy to route all requests through
            rate_limiter: Preconfigured limiter; skips the rate limit probe
            transport: httpx transport override

        Raises:
            NoCredentials: If credentials is None
            ConfigError: If host cannot be parsed
        """
        if credentials is None:
            raise NoCredentials()

        self.credentials = credentials
        self.base_url = api_base_url(host)
        self.proxy = proxy

        self._rate_limiter = rate_limiter
        self._rate_limiter_lock = threading.Lock()

        client_kwargs: dict[str, Any] = {}
        if transport is not None:
            client_kwargs["transport"] = transport
        elif proxy is not None:
            client_kwargs["proxy"] = proxy.url()

        self._client = httpx.Client(
            base_url=self.base_url,
            headers={
                "Authorization": credentials.header(),
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
                "User-Agent": f"ghpublish/{__version__}",
            },
            timeout=httpx.Timeout(
                connect=self.CONNECT_TIMEOUT,
                read=self.READ_TIMEOUT,
                write=self.WRITE_TIMEOUT,
                pool=self.POOL_TIMEOUT,
            ),
            **client_kwargs,
        )

    def __enter__(self) -> "GitHubClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close the httpx client and release connections."""
        self._client.close()

    # --- Rate Limiting ---

    @property
    def rate_limiter(self) -> SmoothRateLimiter:
        """Limiter for mutating requests, created on first use.

        Double-checked so concurrent callers issue exactly one probe and
        share one limiter.
        """
        limiter = self._rate_limiter
        if limiter is None:
            with self._rate_limiter_lock:
                limiter = self._rate_limiter
                if limiter is None:
                    limiter = SmoothRateLimiter(self._probe_rate())
                    self._rate_limiter = limiter
        return limiter

    def _probe_rate(self) -> float:
        """Sustainable requests per second from the rate limit endpoint."""
        try:
            response = self._send("GET", self.RATE_LIMIT_URI)
            remaining = int(response.headers["X-RateLimit-Remaining"])
            reset = float(response.headers["X-RateLimit-Reset"])
        except (PublishError, KeyError, ValueError) as e:
            logger.warning(
                "Rate limit probe failed, using %.3f requests/s: %s",
                FALLBACK_PERMITS_PER_SECOND,
                e,
            )
            return FALLBACK_PERMITS_PER_SECOND

        rate = remaining / max(reset - time.time(), 1.0)
        if rate <= 0:
            logger.warning(
                "Rate limit exhausted (%d remaining), using %.3f requests/s",
                remaining,
                FALLBACK_PERMITS_PER_SECOND,
            )
            return FALLBACK_PERMITS_PER_SECOND

        logger.debug(
            "rate_limiter_initialized",
            extra={"remaining": remaining, "reset": reset, "permits_per_second": rate},
        )
        return rate

    # --- Core HTTP Methods ---

    def _send(
        self,
        method: str,
        uri: str,
        json: Any = None,
        content: bytes | None = None,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Issue one request; map transport failures and non-2xx statuses.

        Raises:
            TransportError: On connect, timeout, DNS, or TLS failure
            HubError: On any non-2xx response
        """
        try:
            response = self._client.request(
                method,
                uri,
                json=json,
                content=content,
                params=params,
                headers=headers,
            )
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {uri} failed: {e}", cause=e) from e

        if not 200 <= response.status_code < 300:
            try:
                error_body = response.json() if response.content else {}
            except (ValueError, UnicodeDecodeError):
                error_body = {}
            if not isinstance(error_body, dict):
                error_body = {}
            raise HubError(
                response.status_code,
                error_body.get("message") or response.text,
                error_body.get("errors"),
            )

        return response

    def request(
        self,
        method: str,
        uri: str,
        json: Any = None,
        content: bytes | None = None,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Make a request, rate limiting mutating methods first.

        Args:
            method: HTTP method
            uri: Path relative to the API root, or an absolute URL
            json: JSON body
            content: Raw body bytes
            params: Query parameters
            headers: Extra headers

        Returns:
            The 2xx httpx.Response
        """
        method = method.upper()
        if method in self.MUTATING_METHODS:
            self.rate_limiter.acquire()
        return self._send(method, uri, json=json, content=content, params=params, headers=headers)

    @staticmethod
    def _parse(response: httpx.Response) -> Any:
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise HubError(
                response.status_code, f"Invalid JSON in response body: {e}"
            ) from e

    def get(self, uri: str, params: dict[str, str] | None = None) -> Any:
        return self._parse(self.request("GET", uri, params=params))

    def post(self, uri: str, json: Any = None) -> Any:
        return self._parse(self.request("POST", uri, json=json))

    def put(self, uri: str, json: Any = None) -> Any:
        return self._parse(self.request("PUT", uri, json=json))

    def patch(self, uri: str, json: Any = None) -> Any:
        return self._parse(self.request("PATCH", uri, json=json))

    def delete(self, uri: str) -> None:
        self.request("DELETE", uri)

    def upload(
        self,
        url: str,
        content: bytes,
        params: dict[str, str] | None = None,
        content_type: str = "application/octet-stream",
    ) -> Any:
        """POST raw bytes, e.g. to a release upload URL."""
        return self._parse(
            self.request(
                "POST",
                url,
                content=content,
                params=params,
                headers={"Content-Type": content_type},
            )
        )


def create_client(
    config: PublishConfig,
    settings: HostSettings | None = None,
    transport: httpx.BaseTransport | None = None,
) -> GitHubClient:
    """Build a client from configuration and host settings.

    Args:
        config: Publication config (host, credentials, server id)
        settings: Host settings; loaded from config.settings_file when None
        transport: httpx transport override

    Raises:
        ConfigError: On unparseable host or unknown server id
        NoCredentials: If no credentials are configured
    """
    if settings is None:
        settings = load_host_settings(config.settings_file)

    if config.host:
        logger.debug("Using custom host: %s", config.host)

    proxy = get_proxy(settings, config.server, _target_hostname(config.host))
    if proxy is not None:
        logger.debug("Found proxy %s:%d", proxy.host, proxy.port)

    credentials = resolve_credentials(
        user_name=config.user_name,
        password=config.secret("password"),
        oauth2_token=config.secret("oauth2_token"),
        server_id=config.server,
        settings=settings,
    )
    return GitHubClient(credentials, host=config.host, proxy=proxy, transport=transport)
