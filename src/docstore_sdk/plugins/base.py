"""Interceptor contract shared by built-in and user plugins."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Protocol, Union

from ..exceptions import DocstoreTransportError
from ..request_options import RequestOptions
from ..transport import HttpResponse

if TYPE_CHECKING:
    from ..engine import CallState

HOOK_NAMES = ("on_request", "on_response", "on_error")


@dataclass(frozen=True)
class Retry:
    """Directive returned from ``on_response``/``on_error`` to request another attempt.

    ``request`` replaces the in-flight options when given; ``delay`` is the
    wait in seconds before the next attempt.
    """

    request: RequestOptions | None = None
    delay: float = 0.0

    def __post_init__(self) -> None:
        if self.delay < 0:
            raise ValueError("retry delay must be non-negative")


RequestHookResult = Union[RequestOptions, DocstoreTransportError, None]
ReactionHookResult = Union[HttpResponse, DocstoreTransportError, Retry, None]


class HookCallCounts:
    """Per-instance hook counters.

    Shared by every slot that holds the same interceptor instance and by
    concurrent calls, so increments are serialized.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counts = dict.fromkeys(HOOK_NAMES, 0)

    def increment(self, hook: str) -> int:
        with self._lock:
            self._counts[hook] += 1
            return self._counts[hook]

    def get(self, hook: str) -> int:
        with self._lock:
            return self._counts[hook]

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return dict(self._counts)

    @property
    def on_request(self) -> int:
        return self.get("on_request")

    @property
    def on_response(self) -> int:
        return self.get("on_response")

    @property
    def on_error(self) -> int:
        return self.get("on_error")

    def __repr__(self) -> str:
        return f"HookCallCounts({self.snapshot()})"


class Interceptor(Protocol):
    """Any object exposing at least one of the hooks below is an interceptor.

    Hooks may be coroutines or plain functions.
    """

    call_counts: HookCallCounts

    def on_request(
        self, state: CallState, request: RequestOptions
    ) -> RequestHookResult | Awaitable[RequestHookResult]:
        ...

    def on_response(
        self, state: CallState, response: HttpResponse
    ) -> ReactionHookResult | Awaitable[ReactionHookResult]:
        ...

    def on_error(
        self, state: CallState, error: DocstoreTransportError
    ) -> ReactionHookResult | Awaitable[ReactionHookResult]:
        ...


class BasePlugin:
    """No-op interceptor. Subclasses override the hooks they care about."""

    name: str | None = None

    def __init__(self) -> None:
        self.call_counts = HookCallCounts()

    @property
    def on_request_call_count(self) -> int:
        return self.call_counts.on_request

    @property
    def on_response_call_count(self) -> int:
        return self.call_counts.on_response

    @property
    def on_error_call_count(self) -> int:
        return self.call_counts.on_error

    async def on_request(self, state: CallState, request: RequestOptions) -> RequestHookResult:
        return None

    async def on_response(self, state: CallState, response: HttpResponse) -> ReactionHookResult:
        return None

    async def on_error(self, state: CallState, error: DocstoreTransportError) -> ReactionHookResult:
        return None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} counts={self.call_counts.snapshot()}>"


def is_interceptor(value: Any) -> bool:
    if isinstance(value, type):
        return False
    return any(callable(getattr(value, hook, None)) for hook in HOOK_NAMES)


def ensure_call_counts(plugin: Any) -> HookCallCounts:
    counts = getattr(plugin, "call_counts", None)
    if isinstance(counts, HookCallCounts):
        return counts
    counts = HookCallCounts()
    plugin.call_counts = counts
    return counts
