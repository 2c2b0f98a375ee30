"""Relying-party context resolution from config and request headers."""

from __future__ import annotations

from urllib.parse import urlsplit

from quart import request

from .models import PasskeyContext


def _hostname(origin: str) -> str | None:
    try:
        parts = urlsplit(origin)
    except ValueError:
        return None
    if not parts.scheme or not parts.hostname:
        return None
    return parts.hostname


def resolve_context(
    origin_header: str | None,
    host_header: str | None,
    *,
    rp_id: str | None = None,
    rp_name: str | None = None,
    origin: str | None = None,
) -> PasskeyContext:
    """Resolve the effective rp id and origin; keyword arguments are configured values."""
    resolved_origin = origin or origin_header or (
        f"http://{host_header}" if host_header else None
    )

    resolved_rp_id = rp_id
    if not resolved_rp_id and resolved_origin:
        resolved_rp_id = _hostname(resolved_origin)
    if not resolved_rp_id and host_header:
        resolved_rp_id = host_header.split(":", 1)[0] or None

    return PasskeyContext(
        rp_id=resolved_rp_id,
        rp_name=rp_name or None,
        origin=resolved_origin,
    )


def context_from_request(config) -> PasskeyContext:
    return resolve_context(
        request.headers.get("origin"),
        request.headers.get("host"),
        rp_id=config.rp_id,
        rp_name=config.rp_name,
        origin=config.origin,
    )
