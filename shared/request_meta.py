"""
Client metadata extraction for FastAPI requests.

IP and user-agent are recorded on security events and feed the
multiple-IP heuristic. Both are free text and never validated.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Request

_IP_HEADERS: tuple[str, ...] = (
    "CF-Connecting-IP",
    "True-Client-IP",
    "X-Forwarded-For",
    "X-Real-IP",
    "X-Client-IP",
)


@dataclass(frozen=True)
class ClientMeta:
    ip: Optional[str]
    user_agent: Optional[str]


def get_client_ip(request: Request) -> Optional[str]:
    """Extract the real client IP from a FastAPI ``Request``.

    Proxy headers are checked in priority order (Cloudflare, Akamai,
    X-Forwarded-For first hop, nginx, X-Client-IP) before falling back to
    the socket peer address.

    Returns:
        The resolved client IP string, or ``None`` if none can be found.
    """
    for header in _IP_HEADERS:
        ip_value: Optional[str] = request.headers.get(header)
        if ip_value:
            client_ip = ip_value.split(",")[0].strip()
            if client_ip:
                return client_ip

    return request.client.host if request.client else None


def get_user_agent(request: Request) -> Optional[str]:
    return request.headers.get("User-Agent") or None


def client_meta(request: Request) -> ClientMeta:
    """FastAPI dependency: IP and user-agent of the caller."""
    return ClientMeta(ip=get_client_ip(request), user_agent=get_user_agent(request))
