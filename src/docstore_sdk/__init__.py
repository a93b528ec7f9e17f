"""Request-execution core for the Docstore document-database HTTP API."""

from .backoff import exponential_delay
from .client import DocstoreClient
from .delivery import RequestEmitter
from .engine import AttemptOrchestrator, CallState
from .exceptions import (
    DocstoreAuthError,
    DocstoreError,
    DocstoreHTTPError,
    DocstoreRateLimitError,
    DocstoreTimeoutError,
    DocstoreTransportError,
    DocstoreValidationError,
)
from .models import ClientConfig
from .plugins import BasePlugin, CookieAuthPlugin, HookCallCounts, Retry, RetryPlugin
from .request_options import RequestOptions
from .transport import HttpResponse, HttpxTransport, Outcome

__all__ = [
    "AttemptOrchestrator",
    "BasePlugin",
    "CallState",
    "ClientConfig",
    "CookieAuthPlugin",
    "DocstoreAuthError",
    "DocstoreClient",
    "DocstoreError",
    "DocstoreHTTPError",
    "DocstoreRateLimitError",
    "DocstoreTimeoutError",
    "DocstoreTransportError",
    "DocstoreValidationError",
    "HookCallCounts",
    "HttpResponse",
    "HttpxTransport",
    "Outcome",
    "RequestEmitter",
    "RequestOptions",
    "Retry",
    "RetryPlugin",
    "exponential_delay",
]
