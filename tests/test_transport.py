from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from docstore_sdk import DocstoreTimeoutError, HttpResponse, HttpxTransport, RequestOptions
from docstore_sdk.transport import transport_error_from_httpx


def test_perform_sends_logical_request() -> None:
    captured: dict[str, httpx.Request] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["request"] = request
        return httpx.Response(201, json={"ok": True, "id": "doc1"}, headers={"X-Couch-Request-ID": "abc"})

    async def run() -> HttpResponse:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        transport = HttpxTransport(client, timeout=5)
        try:
            return await transport.perform(
                RequestOptions(
                    url="https://db.example.com/animals/doc1",
                    method="put",
                    headers={"X-Trace": "1"},
                    auth=("nodejs", "sjedon"),
                    json={"name": "otter"},
                    params={"batch": "ok"},
                )
            )
        finally:
            await transport.aclose()

    response = asyncio.run(run())

    request = captured["request"]
    assert request.method == "PUT"
    assert request.url.params["batch"] == "ok"
    assert request.headers["x-trace"] == "1"
    assert request.headers["authorization"].startswith("Basic ")
    assert json.loads(request.content) == {"name": "otter"}

    assert response.status_code == 201
    assert response.is_success
    assert response.json() == {"ok": True, "id": "doc1"}
    assert response.headers["x-couch-request-id"] == "abc"
    assert response.request.method == "PUT"


def test_perform_does_not_alias_the_callers_request() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="plain")

    original = RequestOptions(url="https://db.example.com/", body="raw")

    async def run() -> HttpResponse:
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await HttpxTransport(client).perform(original)

    response = asyncio.run(run())
    original.headers["X-Later"] = "1"

    assert "x-later" not in response.request.headers
    assert response.text == "plain"


def test_failures_become_outcomes_instead_of_raising() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await HttpxTransport(client).perform(RequestOptions(url="https://db.example.com/"))

    outcome = asyncio.run(run())

    assert outcome.code == "ECONNREFUSED"
    assert outcome.status_code is None
    assert isinstance(outcome.cause, httpx.ConnectError)


@pytest.mark.parametrize(
    ("error", "code"),
    [
        (httpx.ConnectError, "ECONNREFUSED"),
        (httpx.ReadError, "ECONNRESET"),
        (httpx.WriteError, "ECONNRESET"),
        (httpx.RemoteProtocolError, "ECONNRESET"),
        (httpx.ReadTimeout, "ETIMEDOUT"),
        (httpx.ConnectTimeout, "ETIMEDOUT"),
        (httpx.UnsupportedProtocol, "EREQUEST"),
    ],
)
def test_error_code_mapping(error: type[httpx.RequestError], code: str) -> None:
    mapped = transport_error_from_httpx(error("boom"))

    assert mapped.code == code
    assert mapped.message == "boom"
    assert isinstance(mapped, DocstoreTimeoutError) == (code == "ETIMEDOUT")


def test_response_status_is_not_interpreted() -> None:
    response = HttpResponse(500, httpx.Headers(), b"", RequestOptions(url="/db"))

    assert not response.is_success
    assert response.text == ""
