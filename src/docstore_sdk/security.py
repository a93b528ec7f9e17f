"""Credential redaction for logs, base URL checks and Retry-After parsing."""

from __future__ import annotations

import datetime as _dt
from email.utils import parsedate_to_datetime
from typing import Mapping

import httpx

SENSITIVE_HEADERS = frozenset({"authorization", "cookie", "set-cookie", "proxy-authorization"})
LOOPBACK_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})
REDACTED = "[REDACTED]"


def sanitize_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Copy *headers* with session cookies and basic-auth values masked."""
    return {key: REDACTED if key.lower() in SENSITIVE_HEADERS else value for key, value in headers.items()}


def validate_base_url(url: str, *, allow_http: bool = False) -> None:
    """Reject database URLs that would send credentials in clear text.

    Plain ``http`` is accepted for loopback hosts (a local database) or when
    *allow_http* is set.
    """
    if "\x00" in url:
        raise ValueError("Invalid base_url")
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as exc:
        raise ValueError(f"Invalid base_url: {exc}") from exc
    if not parsed.scheme or not parsed.host:
        raise ValueError("base_url must include scheme and host")
    if parsed.scheme not in {"http", "https"}:
        raise ValueError(f"Unsupported base_url scheme: {parsed.scheme}")
    if parsed.scheme == "http" and not allow_http and parsed.host.lower() not in LOOPBACK_HOSTS:
        raise ValueError("Non-HTTPS base_url is not allowed without allow_http=True")


def parse_retry_after(raw: str | None) -> float | None:
    """Seconds to wait from a ``Retry-After`` value (delta-seconds or HTTP date)."""
    value = (raw or "").strip()
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        pass

    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=_dt.timezone.utc)
    remaining = (when - _dt.datetime.now(_dt.timezone.utc)).total_seconds()
    return max(0.0, remaining)
