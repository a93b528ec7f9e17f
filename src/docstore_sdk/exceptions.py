"""SDK-specific exceptions."""

from __future__ import annotations

from typing import Mapping


class DocstoreError(Exception):
    """Base exception for all Docstore SDK failures."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        error_code: str | None = None,
        body: object = None,
        headers: Mapping[str, str] | None = None,
        request_id: str | None = None,
        retry_after: float | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.body = body
        self.headers = dict(headers) if headers is not None else {}
        self.request_id = request_id
        self.retry_after = retry_after
        self.cause = cause

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        prefix = f"{self.status_code} {self.error_code}" if self.error_code else str(self.status_code)
        return f"{prefix}: {self.message}"


class DocstoreValidationError(DocstoreError):
    """Raised when client configuration or request options are invalid."""


class DocstoreTransportError(DocstoreError):
    """Network-level failure (reset, refused, DNS, timeout). Never carries a status code."""

    def __init__(self, message: str, *, code: str = "EREQUEST", cause: Exception | None = None) -> None:
        super().__init__(message, error_code=code, cause=cause)
        self.code = code

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class DocstoreTimeoutError(DocstoreTransportError):
    """Raised when a transfer exceeds the configured timeout."""

    def __init__(self, message: str, *, code: str = "ETIMEDOUT", cause: Exception | None = None) -> None:
        super().__init__(message, code=code, cause=cause)


class DocstoreHTTPError(DocstoreError):
    """Raised in promise mode for non-success responses.

    ``error`` and ``reason`` mirror the fields of the server's JSON error body.
    """

    def __init__(
        self,
        message: str,
        *,
        error: str | None = None,
        reason: str | None = None,
        **kwargs: object,
    ) -> None:
        super().__init__(message, **kwargs)  # type: ignore[arg-type]
        self.error = error
        self.reason = reason


class DocstoreAuthError(DocstoreHTTPError):
    """Raised for authentication and authorization failures."""


class DocstoreRateLimitError(DocstoreHTTPError):
    """Raised for HTTP 429 responses."""
