"""Client address resolution behind reverse proxies."""

from __future__ import annotations

from starlette.requests import HTTPConnection


def extract_client_ip(connection: HTTPConnection) -> str:
    """Resolve the caller IP from X-Forwarded-For, X-Real-IP, then the peer."""
    forwarded_for = connection.headers.get("x-forwarded-for", "").strip()
    if forwarded_for:
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop
    real_ip = connection.headers.get("x-real-ip", "").strip()
    if real_ip:
        return real_ip
    client = connection.client
    return client.host if client else "unknown"
