"""Proxy-aware client IP resolution."""
from __future__ import annotations

from functools import lru_cache
from ipaddress import IPv4Network, IPv6Network, ip_address, ip_network

from starlette.requests import Request


@lru_cache(maxsize=32)
def _parse_networks(proxies: tuple[str, ...]) -> tuple[IPv4Network | IPv6Network, ...]:
    return tuple(ip_network(proxy, strict=False) for proxy in proxies)


def _is_trusted(host: str, networks) -> bool:
    try:
        addr = ip_address(host)
    except ValueError:
        return False
    return any(addr in network for network in networks)


def get_client_ip(request: Request, trusted_proxies: list[str]) -> str:
    """Return the originating client address for ``request``.

    Forwarding headers are only honoured when the socket peer is a trusted
    proxy. X-Forwarded-For is walked right to left and the first untrusted
    hop wins; X-Real-IP is the fallback.
    """
    remote = request.client.host if request.client else ""
    networks = _parse_networks(tuple(trusted_proxies))

    if not remote or not _is_trusted(remote, networks):
        return remote or "unknown"

    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        hops = [hop.strip() for hop in forwarded_for.split(",") if hop.strip()]
        for hop in reversed(hops):
            if not _is_trusted(hop, networks):
                return hop
        if hops:
            return hops[0]

    real_ip = request.headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    return remote
