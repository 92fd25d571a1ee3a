"""Build host settings: named servers and proxies.

Reads a YAML settings file shaped like::

    servers:
      - id: github
        username: octocat
        password: secret
    proxies:
      - id: corporate
        active: true
        protocol: http
        host: proxy.example.com
        port: 8080
        nonProxyHosts: "localhost|*.example.com"

Servers provide credentials by id; proxies are selected per target host.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from ghpublish.errors import ConfigError

logger = logging.getLogger("ghpublish.settings")

__all__ = [
    "DEFAULT_HOST",
    "HostSettings",
    "ProxyEntry",
    "ServerEntry",
    "get_proxy",
    "get_server",
    "load_host_settings",
    "match_non_proxy",
]

DEFAULT_HOST = "github.com"

_NON_PROXY_SEPARATORS = re.compile(r"[,;|]")


@dataclass(frozen=True)
class ServerEntry:
    id: str
    username: str | None = None
    password: str | None = None


@dataclass(frozen=True)
class ProxyEntry:
    host: str
    port: int
    id: str | None = None
    active: bool = True
    protocol: str = "http"
    username: str | None = None
    password: str | None = None
    non_proxy_hosts: str | None = None

    @property
    def is_http(self) -> bool:
        return (self.protocol or "").lower() in ("http", "https")

    def url(self) -> str:
        """Proxy URL for httpx, with credentials when configured."""
        userinfo = ""
        if self.username:
            userinfo = self.username
            if self.password:
                userinfo += f":{self.password}"
            userinfo += "@"
        return f"http://{userinfo}{self.host}:{self.port}"


@dataclass(frozen=True)
class HostSettings:
    servers: list[ServerEntry] = field(default_factory=list)
    proxies: list[ProxyEntry] = field(default_factory=list)


def load_host_settings(path: Path | None) -> HostSettings:
    """Load settings from YAML. A missing file yields empty settings.

    Raises:
        ConfigError: If the file is unreadable, not YAML, or has malformed entries
    """
    if path is None or not path.is_file():
        logger.debug("No settings file at %s", path)
        return HostSettings()

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Malformed settings file {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read settings file {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"Malformed settings file {path}: expected a mapping")

    try:
        servers = [_parse_server(s) for s in raw.get("servers") or []]
        proxies = [_parse_proxy(p) for p in raw.get("proxies") or []]
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigError(f"Malformed entry in settings file {path}: {e}") from e

    logger.debug(
        "Loaded settings from %s: %d servers, %d proxies",
        path,
        len(servers),
        len(proxies),
    )
    return HostSettings(servers=servers, proxies=proxies)


def _parse_server(raw: dict[str, Any]) -> ServerEntry:
    return ServerEntry(
        id=str(raw["id"]),
        username=_optional_str(raw.get("username")),
        password=_optional_str(raw.get("password")),
    )


def _parse_proxy(raw: dict[str, Any]) -> ProxyEntry:
    return ProxyEntry(
        id=_optional_str(raw.get("id")),
        active=bool(raw.get("active", True)),
        protocol=str(raw.get("protocol") or "http"),
        host=str(raw["host"]),
        port=int(raw.get("port", 8080)),
        username=_optional_str(raw.get("username")),
        password=_optional_str(raw.get("password")),
        non_proxy_hosts=_optional_str(
            raw.get("nonProxyHosts", raw.get("non_proxy_hosts"))
        ),
    )


def _optional_str(value: Any) -> str | None:
    return None if value is None else str(value)


def get_server(settings: HostSettings | None, server_id: str) -> ServerEntry | None:
    """Server with the given id, or None."""
    if settings is None:
        return None
    for server in settings.servers:
        if server.id == server_id:
            return server
    return None


def match_non_proxy(proxy: ProxyEntry, hostname: str | None) -> bool:
    """True when hostname is listed in the proxy's nonProxyHosts.

    Entries are separated by ``,`` ``;`` or ``|``. An entry is either a
    literal host or contains a ``*`` splitting it into prefix and suffix:
    ``prefix*``, ``*suffix`` and ``prefix*suffix`` are supported.
    """
    host = hostname if hostname is not None else DEFAULT_HOST

    if not proxy.non_proxy_hosts:
        return False

    for non_proxy_host in _NON_PROXY_SEPARATORS.split(proxy.non_proxy_hosts):
        if "*" in non_proxy_host:
            pos = non_proxy_host.index("*")
            prefix = non_proxy_host[:pos]
            suffix = non_proxy_host[pos + 1 :]
            if prefix and not suffix and host.startswith(prefix):
                return True
            if not prefix and suffix and host.endswith(suffix):
                return True
            if prefix and suffix and host.startswith(prefix) and host.endswith(suffix):
                return True
        elif host == non_proxy_host:
            return True

    return False


def get_proxy(
    settings: HostSettings | None,
    server_id: str | None,
    host: str | None,
) -> ProxyEntry | None:
    """Select the proxy to route requests for host through.

    A proxy whose id matches the server id wins over the first active
    proxy. Only http/https proxies qualify. When the chosen proxy lists the
    host in nonProxyHosts, no proxy is used.
    """
    if settings is None or not settings.proxies:
        return None

    if server_id:
        for proxy in settings.proxies:
            if (
                proxy.active
                and proxy.id
                and proxy.id.lower() == server_id.lower()
                and proxy.is_http
            ):
                return None if match_non_proxy(proxy, host) else proxy

    for proxy in settings.proxies:
        if proxy.active and proxy.is_http:
            return None if match_non_proxy(proxy, host) else proxy

    return None
