"""
Client IP extraction behind proxies and load balancers.
"""
from typing import Optional

from fastapi import Request

# Checked in order; the first non-empty value wins
_FORWARDED_IP_HEADERS = ("X-Real-IP", "CF-Connecting-IP", "True-Client-IP")


def get_client_ip(request: Request) -> Optional[str]:
    """
    Best-effort client IP for logging.

    X-Forwarded-For ("client, proxy1, proxy2") first, then the single-IP
    proxy headers, then the socket peer. These headers can be forged unless
    the proxy in front strips them.
    """
    x_forwarded_for = request.headers.get("X-Forwarded-For")
    if x_forwarded_for:
        client_ip = x_forwarded_for.split(",")[0].strip()
        if client_ip:
            return client_ip

    for header in _FORWARDED_IP_HEADERS:
        value = request.headers.get(header)
        if value and value.strip():
            return value.strip()

    if request.client:
        return request.client.host

    return None
