"""Logical request description handed through the interceptor chain."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Mapping

import httpx

from .exceptions import DocstoreValidationError


def _coerce_auth(auth: Any) -> tuple[str, str] | None:
    if auth is None:
        return None
    if isinstance(auth, Mapping):
        username = auth.get("username", auth.get("user"))
        password = auth.get("password", auth.get("pass"))
        if username is None or password is None:
            raise DocstoreValidationError("auth mapping requires username and password")
        return str(username), str(password)
    if isinstance(auth, (tuple, list)) and len(auth) == 2:
        return str(auth[0]), str(auth[1])
    raise DocstoreValidationError("auth must be a (username, password) pair or mapping")


@dataclass
class RequestOptions:
    """Mutable per-call request description.

    Interceptors may replace any field, including ``method`` and ``url``,
    before the next transfer. ``headers`` is case-insensitive.
    """

    url: str
    method: str = "GET"
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    auth: tuple[str, str] | None = None
    body: bytes | str | None = None
    json: Any | None = None
    params: Mapping[str, Any] | None = None
    timeout: float | None = None

    def __post_init__(self) -> None:
        if not self.url:
            raise DocstoreValidationError("url is required")
        self.method = str(self.method).upper()
        if not isinstance(self.headers, httpx.Headers):
            try:
                self.headers = httpx.Headers(dict(self.headers or {}))
            except (TypeError, ValueError) as exc:
                raise DocstoreValidationError(f"Invalid headers: {exc}", cause=exc) from exc
        self.auth = _coerce_auth(self.auth)
        if self.body is not None and self.json is not None:
            raise DocstoreValidationError("body and json are mutually exclusive")
        if self.timeout is not None and self.timeout <= 0:
            raise DocstoreValidationError("timeout must be greater than 0")

    @classmethod
    def from_value(cls, value: RequestOptions | Mapping[str, Any]) -> RequestOptions:
        if isinstance(value, RequestOptions):
            return value.copy()
        if not isinstance(value, Mapping):
            raise DocstoreValidationError("request options must be RequestOptions or a mapping")
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(value) - known)
        if unknown:
            raise DocstoreValidationError(f"Unknown request option(s): {', '.join(unknown)}")
        return cls(**dict(value))

    def copy(self) -> RequestOptions:
        return dataclasses.replace(
            self,
            headers=httpx.Headers(self.headers),
            params=dict(self.params) if self.params is not None else None,
        )
