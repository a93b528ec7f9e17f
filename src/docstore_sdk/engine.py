"""Attempt orchestration: interceptor chain, transfer and bounded retry loop."""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

from .exceptions import DocstoreTransportError
from .plugins.base import Interceptor, Retry, ensure_call_counts
from .request_options import RequestOptions
from .security import sanitize_headers
from .transport import HttpResponse, Outcome, Transport

logger = logging.getLogger(__name__)


@dataclass
class CallState:
    """State owned by a single ``request()`` call for all of its attempts."""

    request: RequestOptions
    plugins: tuple[Interceptor, ...]
    transport: Transport
    max_attempt: int = 1
    attempt: int = 1
    retry: Retry | None = None
    stash: dict[str, Any] = field(default_factory=dict)
    prepare: Callable[[RequestOptions], RequestOptions] | None = None

    def adopt(self, request: RequestOptions) -> None:
        """Make *request* the in-flight options, applying client defaults first."""
        self.request = self.prepare(request) if self.prepare is not None else request

    async def send(self, request: RequestOptions) -> Outcome:
        """Perform a transfer outside the interceptor chain."""
        return await self.transport.perform(request)

    @property
    def final_attempt(self) -> bool:
        return self.attempt >= self.max_attempt


async def _invoke(hook: Any, *args: Any) -> Any:
    result = hook(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


def _is_outcome(value: Any) -> bool:
    return isinstance(value, (HttpResponse, DocstoreTransportError))


class AttemptOrchestrator:
    """Runs one call to completion.

    Per attempt, ``on_request`` hooks fire in attachment order, the transport
    performs the transfer, then ``on_response`` or ``on_error`` hooks fire in
    reverse order. A :class:`Retry` from the reaction phase loops back while
    ``attempt < max_attempt``.
    """

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    def new_state(
        self,
        request: RequestOptions,
        plugins: Sequence[Interceptor],
        *,
        max_attempt: int,
        prepare: Callable[[RequestOptions], RequestOptions] | None = None,
    ) -> CallState:
        return CallState(
            request=request,
            plugins=tuple(plugins),
            transport=self._transport,
            max_attempt=max_attempt,
            prepare=prepare,
        )

    async def execute(self, state: CallState) -> Outcome:
        while True:
            state.retry = None
            logger.debug(
                "attempt %d/%d: %s %s headers=%s",
                state.attempt,
                state.max_attempt,
                state.request.method,
                state.request.url,
                sanitize_headers(state.request.headers),
            )

            outcome, entered = await self._request_phase(state)
            if outcome is None:
                outcome = await self._transport.perform(state.request)
            outcome = await self._reaction_phase(state, outcome, entered)

            directive = state.retry
            if directive is None:
                return outcome
            if state.final_attempt:
                logger.warning(
                    "retry requested after attempt %d but max_attempt=%d reached; finalizing",
                    state.attempt,
                    state.max_attempt,
                )
                return outcome

            if directive.request is not None:
                state.adopt(directive.request)
            logger.info(
                "retrying %s %s in %.3fs (attempt %d/%d)",
                state.request.method,
                state.request.url,
                directive.delay,
                state.attempt + 1,
                state.max_attempt,
            )
            if directive.delay > 0:
                await asyncio.sleep(directive.delay)
            state.attempt += 1

    async def _request_phase(
        self, state: CallState
    ) -> tuple[DocstoreTransportError | None, tuple[Interceptor, ...]]:
        for index, plugin in enumerate(state.plugins):
            hook = getattr(plugin, "on_request", None)
            if hook is None:
                continue
            ensure_call_counts(plugin).increment("on_request")
            result = await _invoke(hook, state, state.request)
            if result is None:
                continue
            if isinstance(result, RequestOptions):
                state.adopt(result)
                continue
            if isinstance(result, DocstoreTransportError):
                logger.debug("%r short-circuited attempt %d: %r", plugin, state.attempt, result)
                return result, state.plugins[: index + 1]
            raise TypeError(
                f"on_request of {plugin!r} returned {type(result).__name__}; "
                "expected None, RequestOptions or DocstoreTransportError"
            )
        return None, state.plugins

    async def _reaction_phase(
        self,
        state: CallState,
        outcome: Outcome,
        plugins: tuple[Interceptor, ...],
    ) -> Outcome:
        hook_name = "on_response" if isinstance(outcome, HttpResponse) else "on_error"
        for plugin in reversed(plugins):
            hook = getattr(plugin, hook_name, None)
            if hook is None:
                continue
            ensure_call_counts(plugin).increment(hook_name)
            result = await _invoke(hook, state, outcome)
            if result is None:
                continue
            if isinstance(result, Retry):
                if state.retry is None:
                    logger.debug("%r requested retry on attempt %d", plugin, state.attempt)
                    state.retry = result
                else:
                    logger.debug("ignoring retry from %r; attempt %d already has one", plugin, state.attempt)
                continue
            if _is_outcome(result):
                kind_changed = isinstance(result, HttpResponse) != isinstance(outcome, HttpResponse)
                outcome = result
                if kind_changed:
                    logger.debug("%r converted outcome via %s; ending reaction phase", plugin, hook_name)
                    break
                continue
            raise TypeError(
                f"{hook_name} of {plugin!r} returned {type(result).__name__}; "
                "expected None, Retry, HttpResponse or DocstoreTransportError"
            )
        return outcome
