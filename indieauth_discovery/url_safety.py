"""Outbound target checks so untrusted identifiers cannot reach internal hosts."""

from __future__ import annotations

import ipaddress
import socket
from urllib.parse import urlsplit


class URLSafetyError(ValueError):
    """Raised when a URL targets a private or internal network."""


_BLOCKED_HOSTNAMES = frozenset({"localhost", "localhost.localdomain"})


def _is_blocked_ip(ip: ipaddress.IPv4Address | ipaddress.IPv6Address) -> bool:
    return bool(
        ip.is_private
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_multicast
        or ip.is_reserved
        or ip.is_unspecified
    )


def _resolve_ips(hostname: str) -> list[ipaddress.IPv4Address | ipaddress.IPv6Address]:
    records = socket.getaddrinfo(hostname, None, type=socket.SOCK_STREAM)
    resolved: list[ipaddress.IPv4Address | ipaddress.IPv6Address] = []
    seen: set[str] = set()
    for record in records:
        raw_ip = record[4][0]
        if raw_ip in seen:
            continue
        seen.add(raw_ip)
        resolved.append(ipaddress.ip_address(raw_ip))
    return resolved


def assert_url_safe_for_outbound(url: str, *, allow_private: bool = False) -> None:
    """
    Reject outbound URLs whose host is, or resolves to, an internal address.

    Hostnames that do not resolve are let through: the request itself then
    fails to connect, which callers already treat as an unreachable target.
    """

    hostname = urlsplit(url).hostname
    if not hostname:
        raise URLSafetyError("URL must include a hostname")
    if allow_private:
        return

    lowered = hostname.lower().rstrip(".")
    if lowered in _BLOCKED_HOSTNAMES:
        raise URLSafetyError("Private or internal network targets are not allowed")

    try:
        literal_ip = ipaddress.ip_address(lowered)
    except ValueError:
        literal_ip = None

    if literal_ip is not None:
        if _is_blocked_ip(literal_ip):
            raise URLSafetyError("Private or internal network targets are not allowed")
        return

    try:
        resolved_ips = _resolve_ips(lowered)
    except socket.gaierror:
        return

    if any(_is_blocked_ip(ip) for ip in resolved_ips):
        raise URLSafetyError("Private or internal network targets are not allowed")
