"""Result adapters: callback, event emitter and promise delivery.

All three subscribe to the same ``asyncio.Task`` running the attempt loop, so
a given outcome is reported identically whichever convention the caller used.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Generator, Mapping

from .exceptions import (
    DocstoreAuthError,
    DocstoreHTTPError,
    DocstoreRateLimitError,
    DocstoreTransportError,
)
from .models import ErrorBody
from .security import parse_retry_after
from .transport import HttpResponse, Outcome

logger = logging.getLogger(__name__)

Callback = Callable[[BaseException | None, HttpResponse | None, str | None], Any]
Listener = Callable[..., Any]


def _settled(task: asyncio.Future[Outcome]) -> tuple[BaseException | None, HttpResponse | None]:
    if task.cancelled():
        return asyncio.CancelledError("request was cancelled"), None
    exc = task.exception()
    if exc is not None:
        return exc, None
    outcome = task.result()
    if isinstance(outcome, DocstoreTransportError):
        return outcome, None
    return None, outcome


def attach_callback(task: asyncio.Future[Outcome], callback: Callback) -> None:
    """Invoke ``callback(error, response, body)`` exactly once when *task* settles."""

    def _deliver(done: asyncio.Future[Outcome]) -> None:
        error, response = _settled(done)
        if response is None:
            callback(error, None, None)
        else:
            callback(None, response, response.text)

    task.add_done_callback(_deliver)


class RequestEmitter:
    """Event-style handle returned when no callback is supplied.

    On a final response it emits ``response``, ``data`` and ``end`` in that
    order; on failure it emits ``error`` only. Awaiting the emitter waits for
    dispatch to finish and never raises for a failed request.
    """

    EVENTS = frozenset({"error", "response", "data", "end"})

    def __init__(self, task: asyncio.Future[Outcome]) -> None:
        self._task = task
        self._listeners: defaultdict[str, list[Listener]] = defaultdict(list)
        self._dispatched = False
        task.add_done_callback(self._dispatch)

    def on(self, event: str, listener: Listener) -> RequestEmitter:
        if event not in self.EVENTS:
            raise ValueError(f"Unknown event {event!r}; expected one of: {', '.join(sorted(self.EVENTS))}")
        self._listeners[event].append(listener)
        return self

    @property
    def listeners(self) -> Mapping[str, tuple[Listener, ...]]:
        return MappingProxyType({event: tuple(fns) for event, fns in self._listeners.items()})

    @property
    def done(self) -> bool:
        return self._dispatched

    def _emit(self, event: str, *args: Any) -> None:
        for listener in list(self._listeners.get(event, ())):
            listener(*args)

    def _dispatch(self, task: asyncio.Future[Outcome]) -> None:
        self._dispatched = True
        error, response = _settled(task)
        if response is None:
            if not self._listeners.get("error"):
                logger.error("unhandled error event: %r", error)
                return
            self._emit("error", error)
            return
        self._emit("response", response)
        self._emit("data", response.content)
        self._emit("end")

    async def _wait(self) -> None:
        await asyncio.wait([self._task])

    def __await__(self) -> Generator[Any, None, None]:
        return self._wait().__await__()


def parse_body(response: HttpResponse) -> Any:
    """Parse a response body as JSON, falling back to text."""
    if response.status_code == 204 or not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (str, int, float)) and not isinstance(value, bool)


def error_from_response(response: HttpResponse, body: Any) -> DocstoreHTTPError:
    """Build the rejection value for a non-success response."""
    fields = ErrorBody()
    if isinstance(body, Mapping):
        scalars = {key: body[key] for key in ("error", "reason") if _is_scalar(body.get(key))}
        fields = ErrorBody.model_validate(scalars)
    message = fields.reason or fields.error or (body if isinstance(body, str) and body else None)
    message = message or f"HTTP {response.status_code}"
    kwargs: dict[str, Any] = {
        "status_code": response.status_code,
        "error_code": fields.error,
        "error": fields.error,
        "reason": fields.reason,
        "body": body,
        "headers": MappingProxyType(dict(response.headers)),
        "request_id": response.headers.get("x-couch-request-id") or response.headers.get("x-request-id"),
        "retry_after": parse_retry_after(response.headers.get("Retry-After")),
    }
    if response.status_code in {401, 403}:
        return DocstoreAuthError(message, **kwargs)
    if response.status_code == 429:
        return DocstoreRateLimitError(message, **kwargs)
    return DocstoreHTTPError(message, **kwargs)


async def settle_promise(execution: Awaitable[Outcome]) -> Any:
    """Resolve with the parsed body on 2xx, otherwise raise."""
    outcome = await execution
    if isinstance(outcome, DocstoreTransportError):
        raise outcome
    body = parse_body(outcome)
    if not outcome.is_success:
        raise error_from_response(outcome, body)
    return body
