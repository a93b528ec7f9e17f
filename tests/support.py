"""Shared test doubles: a scripted HTTP server and fixture plugins."""

from __future__ import annotations

import asyncio
import uuid
from collections import deque
from typing import Any

import httpx

from docstore_sdk import (
    BasePlugin,
    DocstoreClient,
    HttpResponse,
    RequestOptions,
    Retry,
    exponential_delay,
)

SERVER = "https://nodejs.cloudant.com"
DBNAME = f"/nodejs-docstore-{uuid.uuid4()}"
CREDENTIALS = ("nodejs", "sjedon")


class ScriptedServer:
    """Replays canned replies per (method, path), like a minimal nock."""

    def __init__(self) -> None:
        self._routes: dict[tuple[str, str], deque[Any]] = {}
        self.requests: list[httpx.Request] = []

    def reply(
        self,
        method: str,
        path: str,
        status: int,
        json: Any = None,
        *,
        times: int = 1,
        headers: dict[str, str] | None = None,
        text: str | None = None,
    ) -> ScriptedServer:
        queue = self._routes.setdefault((method.upper(), path), deque())
        for _ in range(times):
            queue.append(("reply", status, (json, text), headers or {}))
        return self

    def reply_with_error(
        self,
        method: str,
        path: str,
        message: str = "socket hang up",
        *,
        times: int = 1,
        error: type[httpx.RequestError] = httpx.ReadError,
    ) -> ScriptedServer:
        queue = self._routes.setdefault((method.upper(), path), deque())
        for _ in range(times):
            queue.append(("error", error, message, None))
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self._routes.get((request.method, request.url.path))
        if not queue:
            raise AssertionError(f"unexpected request {request.method} {request.url.path}")
        kind, first, second, headers = queue.popleft()
        if kind == "error":
            raise first(second, request=request)
        payload, text = second
        if text is not None:
            return httpx.Response(first, text=text, headers=headers, request=request)
        return httpx.Response(first, json=payload, headers=headers, request=request)

    @property
    def pending(self) -> list[tuple[str, str]]:
        return [key for key, queue in self._routes.items() if queue]

    def assert_done(self) -> None:
        assert self.pending == [], f"replies never requested: {self.pending}"

    def client(self, **kwargs: Any) -> DocstoreClient:
        httpx_client = httpx.AsyncClient(base_url=SERVER, transport=httpx.MockTransport(self.handler))
        return DocstoreClient(base_url=SERVER, httpx_client=httpx_client, **kwargs)


def db_request(method: str = "GET") -> dict[str, Any]:
    return {
        "url": SERVER + DBNAME,
        "auth": {"username": CREDENTIALS[0], "password": CREDENTIALS[1]},
        "method": method,
    }


async def request_with_callback(client: DocstoreClient, options: Any) -> tuple[Any, Any, Any]:
    done: asyncio.Future[tuple[Any, Any, Any]] = asyncio.get_running_loop().create_future()

    def callback(err: Any, resp: Any, data: Any) -> None:
        assert not done.done(), "callback invoked twice"
        done.set_result((err, resp, data))

    assert client.request(options, callback) is None
    return await done


async def request_with_listeners(client: DocstoreClient, options: Any) -> list[tuple[str, Any]]:
    events: list[tuple[str, Any]] = []
    emitter = client.request(options)
    (
        emitter.on("error", lambda err: events.append(("error", err)))
        .on("response", lambda resp: events.append(("response", resp)))
        .on("data", lambda data: events.append(("data", data)))
        .on("end", lambda: events.append(("end", None)))
    )
    await emitter
    return events


class NoopPlugin(BasePlugin):
    pass


class ComplexPlugin1(BasePlugin):
    """Forces PUT, tags the request and retries everything with doubling backoff."""

    async def on_request(self, state, request):
        request.method = "PUT"
        request.headers["ComplexPlugin1"] = "foo"

    async def on_response(self, state, response):
        return Retry(delay=exponential_delay(state.attempt))

    async def on_error(self, state, error):
        return Retry(delay=exponential_delay(state.attempt))


class ComplexPlugin2(BasePlugin):
    """Forces GET, retries a 401 once, and recovers transport errors via /bar."""

    async def on_request(self, state, request):
        request.method = "GET"
        request.headers["ComplexPlugin2"] = "bar"

    async def on_response(self, state, response):
        if response.status_code == 401 and state.attempt == 1:
            return Retry()
        return None

    async def on_error(self, state, error):
        return await state.send(RequestOptions(url=SERVER + "/bar", method="GET"))


class ComplexPlugin3(BasePlugin):
    """Retries the first 500, then replaces a second 500 with DELETE /bar."""

    async def on_response(self, state, response):
        if response.status_code != 500:
            return None
        if state.attempt == 1:
            return Retry()
        return await state.send(RequestOptions(url=SERVER + "/bar", method="DELETE"))


class RecordingPlugin(BasePlugin):
    """Appends ``(label, hook)`` to a shared log; optionally retries."""

    def __init__(self, log: list[tuple[str, str]], label: str, *, retry: bool = False) -> None:
        super().__init__()
        self.log = log
        self.label = label
        self.retry = retry

    async def on_request(self, state, request):
        self.log.append((self.label, "on_request"))

    async def on_response(self, state, response: HttpResponse):
        self.log.append((self.label, "on_response"))
        return Retry() if self.retry else None

    async def on_error(self, state, error):
        self.log.append((self.label, "on_error"))
        return Retry() if self.retry else None


def plugin_chain(log: list[tuple[str, str]]) -> list[RecordingPlugin]:
    return [
        RecordingPlugin(log, "A", retry=True),
        RecordingPlugin(log, "B"),
        RecordingPlugin(log, "C", retry=True),
        RecordingPlugin(log, "D"),
    ]
