"""URL policy: retail domain allowlist and SSRF prevention.

Two independent guards:

* the domain allowlist restricts product extraction to a fixed set of
  trusted retail hosts, matched on a label boundary so that
  ``amazon.in.evil.com`` never passes for ``amazon.in``;
* the SSRF guard protects caller-supplied image URLs by blocking private
  IPs, local hostnames, and non-HTTP schemes.
"""

from __future__ import annotations

import ipaddress
import socket
from dataclasses import dataclass
from urllib.parse import SplitResult, urlsplit

from labelguard.config.settings import AllowlistConfig, URLPolicyConfig
from labelguard.telemetry.errors import DomainNotAllowed, InvalidInput

PRIVATE_NETWORKS = [
    ipaddress.ip_network("127.0.0.0/8"),
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("169.254.0.0/16"),
    ipaddress.ip_network("::1/128"),
    ipaddress.ip_network("fc00::/7"),
    ipaddress.ip_network("fe80::/10"),
]

_HTTP_SCHEMES = {"http", "https"}


@dataclass(frozen=True)
class URLValidationResult:
    allowed: bool
    reason: str


def _normalize_host(hostname: str) -> str:
    return hostname.strip().lower().rstrip(".")


def is_allowed_host(hostname: str, domains: list[str]) -> bool:
    """Return True if hostname equals an allowed domain or is a subdomain of one."""
    host = _normalize_host(hostname)
    if not host:
        return False
    return any(host == domain or host.endswith(f".{domain}") for domain in domains)


def parse_http_url(url: str) -> SplitResult:
    """Parse an absolute http(s) URL, raising InvalidInput otherwise."""
    try:
        parsed = urlsplit(url.strip())
        hostname = parsed.hostname
    except ValueError as exc:
        raise InvalidInput(f"Invalid URL: {url}") from exc
    if parsed.scheme.lower() not in _HTTP_SCHEMES:
        raise InvalidInput(f"Invalid URL scheme '{parsed.scheme}'. Allowed schemes: http, https.")
    if not hostname:
        raise InvalidInput("URL must include a hostname.")
    return parsed


def ensure_allowed_url(url: str, policy: AllowlistConfig) -> SplitResult:
    """Validate url against the retail allowlist.

    Applied to the requested URL and again to every post-redirect URL:
    only the final destination decides trust.
    """
    parsed = parse_http_url(url)
    hostname = parsed.hostname or ""
    if not is_allowed_host(hostname, policy.allowed_domains):
        raise DomainNotAllowed(f"Domain not allowed: {hostname}")
    return parsed


def _is_private_ip(addr: ipaddress.IPv4Address | ipaddress.IPv6Address) -> str | None:
    """Return the matching private network string if addr is private, else None."""
    for network in PRIVATE_NETWORKS:
        if addr in network:
            return str(network)
    return None


def validate_target_url(url: str, policy: URLPolicyConfig) -> URLValidationResult:
    """Validate a URL against the SSRF prevention policy.

    Checks:
    1. Scheme must be in allowed_schemes (default: http, https)
    2. Hostname must not be localhost or .local
    3. Resolved IP must not be in private/reserved ranges
    """
    try:
        parsed = urlsplit(url)
        hostname = parsed.hostname or ""
    except ValueError:
        return URLValidationResult(allowed=False, reason="Malformed URL")

    if parsed.scheme not in policy.allowed_schemes:
        return URLValidationResult(
            allowed=False,
            reason=f"Scheme '{parsed.scheme}' not allowed",
        )

    if not hostname:
        return URLValidationResult(allowed=False, reason="No hostname in URL")

    if policy.block_local_hostnames:
        if hostname == "localhost" or hostname.endswith(".local"):
            return URLValidationResult(
                allowed=False,
                reason=f"Hostname '{hostname}' is blocked",
            )

    if policy.block_private_ips:
        # Literal IPs skip DNS resolution
        try:
            addr = ipaddress.ip_address(hostname)
            match = _is_private_ip(addr)
            if match:
                return URLValidationResult(
                    allowed=False,
                    reason=f"IP {addr} is in private range {match}",
                )
            return URLValidationResult(allowed=True, reason="OK")
        except ValueError:
            pass

        try:
            infos = socket.getaddrinfo(hostname, None)
            for info in infos:
                addr = ipaddress.ip_address(info[4][0])
                match = _is_private_ip(addr)
                if match:
                    return URLValidationResult(
                        allowed=False,
                        reason=f"IP {addr} is in private range {match}",
                    )
        except socket.gaierror:
            return URLValidationResult(
                allowed=False,
                reason=f"Cannot resolve hostname '{hostname}'",
            )

    return URLValidationResult(allowed=True, reason="OK")


def ensure_fetchable_url(url: str, policy: URLPolicyConfig) -> str:
    """Raise InvalidInput unless url passes the SSRF policy."""
    result = validate_target_url(url, policy)
    if not result.allowed:
        raise InvalidInput(f"URL rejected: {result.reason}")
    return url
