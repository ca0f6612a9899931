"""Rate limiting for login, registration and integration endpoints."""

from functools import lru_cache
from ipaddress import IPv4Network, IPv6Network, ip_address, ip_network
from urllib.parse import urlsplit, urlunsplit

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from onboarding_api.config import get_settings

DEVELOPMENT_PROXIES = ("127.0.0.1/32", "::1/128", "10.0.0.0/8", "172.16.0.0/12", "192.168.0.0/16")

FORWARDING_HEADERS = ("X-Forwarded-For", "X-Real-IP")


@lru_cache
def _trusted_networks() -> tuple[IPv4Network | IPv6Network, ...]:
    """Networks whose forwarding headers are believed.

    Nothing is trusted outside development unless TRUSTED_PROXIES is set.
    Unparseable entries are skipped.
    """
    settings = get_settings()
    entries = settings.trusted_proxies_list
    if not entries and settings.environment == "development":
        entries = list(DEVELOPMENT_PROXIES)

    networks = []
    for entry in entries:
        try:
            networks.append(ip_network(entry, strict=False))
        except ValueError:
            continue
    return tuple(networks)


def _from_trusted_proxy(peer: str) -> bool:
    try:
        addr = ip_address(peer)
    except ValueError:
        return False
    return any(addr in network for network in _trusted_networks())


def get_real_client_ip(request: Request) -> str:
    """Client IP for rate-limit keys and audit entries.

    Forwarding headers are read only when the direct peer is a trusted
    proxy, and only a syntactically valid first hop is accepted.
    """
    peer = get_remote_address(request)
    if not _from_trusted_proxy(peer):
        return peer

    for header in FORWARDING_HEADERS:
        first_hop = request.headers.get(header, "").split(",")[0].strip()
        if not first_hop:
            continue
        try:
            ip_address(first_hop)
        except ValueError:
            continue
        return first_hop

    return peer


def _limiter_storage() -> str | None:
    """Redis database 1 when Redis is configured, process memory otherwise.

    A URL that already names a database is used as given.
    """
    redis_url = get_settings().redis_url
    if not redis_url:
        return None

    parts = urlsplit(str(redis_url))
    if parts.path in ("", "/"):
        parts = parts._replace(path="/1")
    return urlunsplit(parts)


def _per_minute(count: int) -> str:
    return f"{count}/minute"


_settings = get_settings()

API_DEFAULT_LIMIT = _per_minute(_settings.rate_limit_default)
AUTH_LOGIN_LIMIT = _per_minute(_settings.rate_limit_auth_login)
AUTH_REGISTER_LIMIT = _per_minute(_settings.rate_limit_auth_register)
INTEGRATION_TEST_LIMIT = _per_minute(_settings.rate_limit_integration_test)
MESSAGING_LIMIT = _per_minute(_settings.rate_limit_messaging)
SENSITIVE_OPERATION_LIMIT = _per_minute(_settings.rate_limit_sensitive)

limiter = Limiter(
    key_func=get_real_client_ip,
    default_limits=[API_DEFAULT_LIMIT],
    storage_uri=_limiter_storage(),
)
