"""Asynchronous request-execution client with pluggable interceptors."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Mapping

import httpx

from .delivery import Callback, RequestEmitter, attach_callback, settle_promise
from .engine import AttemptOrchestrator, CallState
from .exceptions import DocstoreValidationError
from .models import ClientConfig, build_config
from .plugins.base import Interceptor
from .plugins.registry import Resolution, iter_references, resolve_plugin
from .request_options import RequestOptions
from .security import validate_base_url
from .transport import HttpxTransport, Outcome, Transport

logger = logging.getLogger(__name__)


def _normalize_headers(headers: Mapping[str, str] | None) -> dict[str, str]:
    if not headers:
        return {}
    return {str(key): str(value) for key, value in headers.items()}


def _env_int(name: str) -> int | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise DocstoreValidationError(f"{name} must be an integer", cause=exc) from exc


class DocstoreClient:
    """Runs requests through an ordered interceptor chain.

    ``request(options, callback)`` returns ``None`` and invokes the callback
    once. Without a callback it returns a :class:`RequestEmitter`, or an
    awaitable task resolving to the parsed body when the ``"promises"``
    plugin was configured. Must be called from a running event loop.
    """

    user_agent = "docstore-python-sdk/0.1.0"

    def __init__(
        self,
        *,
        plugin: Any = None,
        plugins: Any = None,
        max_attempt: int | None = None,
        base_url: str | None = None,
        username: str | None = None,
        password: str | None = None,
        timeout: float | None = None,
        headers: Mapping[str, str] | None = None,
        retry_initial_delay: float | None = None,
        retry_delay_multiplier: float | None = None,
        retry_status_codes: frozenset[int] | set[int] | list[int] | None = None,
        retry_errors: bool | None = None,
        allow_http: bool = False,
        httpx_client: httpx.AsyncClient | None = None,
        transport: Transport | None = None,
        base_url_env_var: str = "DOCSTORE_URL",
        username_env_var: str = "DOCSTORE_USERNAME",
        password_env_var: str = "DOCSTORE_PASSWORD",
        max_attempt_env_var: str = "DOCSTORE_MAX_ATTEMPT",
    ) -> None:
        self.config: ClientConfig = build_config(
            {
                "base_url": base_url or os.getenv(base_url_env_var),
                "username": username or os.getenv(username_env_var),
                "password": password or os.getenv(password_env_var),
                "max_attempt": max_attempt if max_attempt is not None else _env_int(max_attempt_env_var),
                "timeout": timeout,
                "headers": _normalize_headers(headers),
                "retry_initial_delay": retry_initial_delay,
                "retry_delay_multiplier": retry_delay_multiplier,
                "retry_status_codes": frozenset(retry_status_codes) if retry_status_codes is not None else None,
                "retry_errors": retry_errors,
                "allow_http": allow_http,
            }
        )
        if self.config.base_url:
            try:
                validate_base_url(self.config.base_url, allow_http=allow_http)
            except ValueError as exc:
                raise DocstoreValidationError(str(exc), cause=exc) from exc

        self._default_headers = {
            "Accept": "application/json",
            "User-Agent": self.user_agent,
        }
        self._default_headers.update(self.config.headers)

        if transport is None:
            client_kwargs: dict[str, Any] = {"timeout": self.config.timeout, "trust_env": False}
            if self.config.base_url:
                client_kwargs["base_url"] = self.config.base_url
            transport = HttpxTransport(
                httpx_client or httpx.AsyncClient(**client_kwargs),
                timeout=self.config.timeout,
            )
        self._transport = transport
        self._engine = AttemptOrchestrator(transport)
        self._plugins: list[Interceptor] = []
        self._use_promises = False
        self._pending: set[asyncio.Task[Any]] = set()

        self.add_plugins([*iter_references(plugin), *iter_references(plugins)])

    async def __aenter__(self) -> DocstoreClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._pending:
            await asyncio.wait(list(self._pending))
        aclose = getattr(self._transport, "aclose", None)
        if aclose is not None:
            await aclose()

    @property
    def plugins(self) -> tuple[Interceptor, ...]:
        """The effective interceptor list, in attachment order."""
        return tuple(self._plugins)

    @property
    def use_promises(self) -> bool:
        return self._use_promises

    @property
    def max_attempt(self) -> int:
        return self.config.max_attempt

    def add_plugins(self, references: Any) -> None:
        """Attach one reference or a list of them, preserving order."""
        for reference in iter_references(references):
            resolved = resolve_plugin(reference, self.config)
            if resolved is Resolution.PROMISES:
                self._use_promises = True
            elif resolved is Resolution.IGNORED:
                continue
            else:
                self._plugins.append(resolved)
                logger.debug("attached plugin %r at position %d", resolved, len(self._plugins) - 1)

    def _prepare(self, options: RequestOptions | Mapping[str, Any]) -> RequestOptions:
        request = RequestOptions.from_value(options)
        for key, value in self._default_headers.items():
            request.headers.setdefault(key, value)
        if request.auth is None:
            request.auth = self.config.credentials
        return request

    def _new_state(self, request: RequestOptions) -> CallState:
        return self._engine.new_state(
            request,
            self._plugins,
            max_attempt=self.config.max_attempt,
            prepare=self._prepare,
        )

    def _track(self, task: asyncio.Task[Any]) -> asyncio.Task[Any]:
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def execute(self, options: RequestOptions | Mapping[str, Any]) -> Outcome:
        """Run the attempt loop and return the final outcome without adapting it."""
        state = self._new_state(self._prepare(options))
        return await self._engine.execute(state)

    def request(
        self,
        options: RequestOptions | Mapping[str, Any],
        callback: Callback | None = None,
    ) -> RequestEmitter | asyncio.Task[Any] | None:
        request = self._prepare(options)
        loop = asyncio.get_running_loop()
        state = self._new_state(request)
        execution = self._track(loop.create_task(self._engine.execute(state)))

        if callback is not None:
            attach_callback(execution, callback)
            return None
        if self._use_promises:
            return self._track(loop.create_task(settle_promise(execution)))
        return RequestEmitter(execution)
