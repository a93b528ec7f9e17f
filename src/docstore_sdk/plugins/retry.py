"""Retry failed requests with exponential backoff."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

from ..backoff import exponential_delay
from ..exceptions import DocstoreTransportError
from ..models import DEFAULT_RETRY_STATUS_CODES, ClientConfig
from ..security import parse_retry_after
from ..transport import HttpResponse
from .base import BasePlugin, ReactionHookResult, Retry

if TYPE_CHECKING:
    from ..engine import CallState

logger = logging.getLogger(__name__)


class RetryPlugin(BasePlugin):
    name = "retry"
    max_retry_after = 60.0

    def __init__(
        self,
        *,
        initial_delay: float = 0.5,
        delay_multiplier: float = 2.0,
        status_codes: Iterable[int] = DEFAULT_RETRY_STATUS_CODES,
        retry_errors: bool = True,
    ) -> None:
        super().__init__()
        self.initial_delay = initial_delay
        self.delay_multiplier = delay_multiplier
        self.status_codes = frozenset(status_codes)
        self.retry_errors = retry_errors

    @classmethod
    def from_config(cls, config: ClientConfig) -> RetryPlugin:
        return cls(
            initial_delay=config.retry_initial_delay,
            delay_multiplier=config.retry_delay_multiplier,
            status_codes=config.retry_status_codes,
            retry_errors=config.retry_errors,
        )

    def delay_for(self, attempt: int) -> float:
        return exponential_delay(attempt, base=self.initial_delay, multiplier=self.delay_multiplier)

    async def on_response(self, state: CallState, response: HttpResponse) -> ReactionHookResult:
        if response.status_code not in self.status_codes:
            return None
        delay = self.delay_for(state.attempt)
        if response.status_code == 429:
            retry_after = parse_retry_after(response.headers.get("Retry-After"))
            if retry_after is not None:
                delay = min(retry_after, self.max_retry_after)
        logger.debug("status %d is retryable; backing off %.3fs", response.status_code, delay)
        return Retry(delay=delay)

    async def on_error(self, state: CallState, error: DocstoreTransportError) -> ReactionHookResult:
        if not self.retry_errors:
            return None
        return Retry(delay=self.delay_for(state.attempt))
