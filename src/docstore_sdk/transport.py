"""HTTP transport collaborator around :mod:`httpx`."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Protocol, Union

import httpx

from .exceptions import DocstoreTimeoutError, DocstoreTransportError
from .request_options import RequestOptions


@dataclass(frozen=True)
class HttpResponse:
    """A completed transfer. The status code is not interpreted here."""

    status_code: int
    headers: httpx.Headers
    content: bytes
    request: RequestOptions

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        return json.loads(self.content)


Outcome = Union[HttpResponse, DocstoreTransportError]


class Transport(Protocol):
    async def perform(self, request: RequestOptions) -> Outcome:
        ...


_ERROR_CODES: tuple[tuple[type[httpx.RequestError], str], ...] = (
    (httpx.ConnectError, "ECONNREFUSED"),
    (httpx.ReadError, "ECONNRESET"),
    (httpx.WriteError, "ECONNRESET"),
    (httpx.RemoteProtocolError, "ECONNRESET"),
    (httpx.CloseError, "ECONNRESET"),
)


def transport_error_from_httpx(exc: httpx.RequestError) -> DocstoreTransportError:
    """Map an httpx failure onto a coded transport error."""
    message = str(exc) or type(exc).__name__
    if isinstance(exc, httpx.TimeoutException):
        return DocstoreTimeoutError(message, cause=exc)
    for exc_type, code in _ERROR_CODES:
        if isinstance(exc, exc_type):
            return DocstoreTransportError(message, code=code, cause=exc)
    return DocstoreTransportError(message, code="EREQUEST", cause=exc)


class HttpxTransport:
    """Thin wrapper around :class:`httpx.AsyncClient` returning outcomes instead of raising."""

    def __init__(self, client: httpx.AsyncClient, *, timeout: float | None = None) -> None:
        self._client = client
        self._timeout = timeout

    async def perform(self, request: RequestOptions) -> Outcome:
        sent = request.copy()
        kwargs: dict[str, Any] = {"headers": sent.headers, "params": sent.params}
        if sent.auth is not None:
            kwargs["auth"] = sent.auth
        if sent.json is not None:
            kwargs["json"] = sent.json
        elif sent.body is not None:
            kwargs["content"] = sent.body
        timeout = sent.timeout if sent.timeout is not None else self._timeout
        if timeout is not None:
            kwargs["timeout"] = timeout

        try:
            response = await self._client.request(sent.method, sent.url, **kwargs)
        except httpx.RequestError as exc:
            return transport_error_from_httpx(exc)

        return HttpResponse(
            status_code=response.status_code,
            headers=httpx.Headers(response.headers),
            content=response.content,
            request=sent,
        )

    async def aclose(self) -> None:
        await self._client.aclose()
