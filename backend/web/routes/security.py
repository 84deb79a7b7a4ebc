"""
Shared web security helpers (FastAPI-agnostic utilities for routes).

Contains the CSRF same-origin check used by every write endpoint. Keeping a
single implementation avoids security drift between routers.
"""
from __future__ import annotations

from urllib.parse import urlparse

from fastapi import Request

from portal import config as portal_config


def _default_port(scheme: str) -> int:
    return 443 if scheme == "https" else 80


def _parse_origin(url: str) -> tuple[str, str, int]:
    p = urlparse(url)
    if not p.scheme or not p.hostname:
        raise ValueError("invalid_origin")
    scheme = p.scheme.lower()
    return scheme, p.hostname.lower(), int(p.port if p.port is not None else _default_port(scheme))


def _first(value: str) -> str:
    return value.split(",")[0].strip()


def _server_origin(request: Request) -> tuple[str, str, int]:
    """Return the origin this request was addressed to.

    Only trusts X-Forwarded-* when PORTAL_TRUST_PROXY=true.
    """
    if not portal_config.trust_proxy():
        scheme = (request.url.scheme or "http").lower()
        port = int(request.url.port) if request.url.port else _default_port(scheme)
        return scheme, (request.url.hostname or "").lower(), port

    scheme = (_first(request.headers.get("x-forwarded-proto") or "") or request.url.scheme or "http").lower()
    host_raw = _first(request.headers.get("x-forwarded-host") or request.headers.get("host") or "")
    if ":" in host_raw:
        host, port_str = host_raw.rsplit(":", 1)
        port = int(port_str) if port_str.isdigit() else _default_port(scheme)
    else:
        host = host_raw or (request.url.hostname or "")
        port = int(request.url.port) if request.url.port else _default_port(scheme)
    fwd_port = _first(request.headers.get("x-forwarded-port") or "")
    if fwd_port:
        port = int(fwd_port) if fwd_port.isdigit() else _default_port(scheme)
    return scheme, host.lower(), port


def _is_same_origin(request: Request) -> bool:
    """Verify same-origin using Origin or Referer headers.

    Behavior:
    - If Origin is present, require exact scheme/host/port match with server.
    - Else if Referer is present, validate its origin similarly.
    - Else (no headers): allow to not break non-browser clients.
    """
    indicator = request.headers.get("origin") or request.headers.get("referer")
    if not indicator:
        return True
    try:
        return _parse_origin(indicator) == _server_origin(request)
    except ValueError:
        return False
