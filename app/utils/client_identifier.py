"""Derive stable rate limit identifiers from request metadata.

Network identification assumes exactly one trusted reverse proxy hop: the
first entry of ``X-Forwarded-For`` is the original client. Callers that
cannot be identified share the ``"unknown"`` bucket, which is still limited.
"""

from __future__ import annotations

from collections.abc import Mapping

FORWARDED_FOR_HEADER = "x-forwarded-for"
REAL_IP_HEADER = "x-real-ip"
UNKNOWN_CLIENT = "unknown"
USER_KEY_PREFIX = "user:"


def _header(headers: Mapping[str, str], name: str) -> str | None:
    value = headers.get(name)
    if value is None and not hasattr(headers, "getlist"):
        # Plain dicts are case-sensitive; Starlette Headers already are not.
        for key, candidate in headers.items():
            if key.lower() == name:
                value = candidate
                break
    if value is None:
        return None
    value = value.strip()
    return value or None


def identify_client(headers: Mapping[str, str]) -> str:
    """Return the network identifier of the caller.

    Args:
        headers: Request headers (Starlette ``Headers`` or any mapping).

    Returns:
        str: First forwarded address, else the real-IP header, else "unknown".

    Examples:
        >>> identify_client({"X-Forwarded-For": "1.2.3.4, 10.0.0.1"})
        '1.2.3.4'
        >>> identify_client({"X-Real-IP": "5.6.7.8"})
        '5.6.7.8'
        >>> identify_client({})
        'unknown'
    """

    forwarded = _header(headers, FORWARDED_FOR_HEADER)
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = _header(headers, REAL_IP_HEADER)
    if real_ip:
        return real_ip

    return UNKNOWN_CLIENT


def identify_user(user_id: str | int) -> str:
    """Return the per-account identifier for an authenticated principal."""

    return f"{USER_KEY_PREFIX}{user_id}"
