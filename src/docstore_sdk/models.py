"""Validated configuration and response body models."""

from __future__ import annotations

from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import DocstoreValidationError

DEFAULT_RETRY_STATUS_CODES = frozenset({429, 500, 501, 502, 503, 504})


class DocstoreModel(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)


class ErrorBody(DocstoreModel):
    """Error payload returned by the database for non-success statuses."""

    error: str | None = None
    reason: str | None = None


class ClientConfig(DocstoreModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    base_url: str | None = None
    username: str | None = None
    password: str | None = None
    max_attempt: int = Field(default=3, ge=1)
    timeout: float = Field(default=30.0, gt=0)
    retry_initial_delay: float = Field(default=0.5, ge=0)
    retry_delay_multiplier: float = Field(default=2.0, ge=1)
    retry_status_codes: frozenset[int] = DEFAULT_RETRY_STATUS_CODES
    retry_errors: bool = True
    headers: dict[str, str] = Field(default_factory=dict)
    allow_http: bool = False

    @field_validator("base_url")
    @classmethod
    def _strip_base_url(cls, value: str | None) -> str | None:
        return value.rstrip("/") if value else None

    @field_validator("retry_status_codes")
    @classmethod
    def _check_status_codes(cls, value: frozenset[int]) -> frozenset[int]:
        for code in value:
            if not 100 <= code <= 599:
                raise ValueError(f"invalid HTTP status code: {code}")
        return value

    @property
    def credentials(self) -> tuple[str, str] | None:
        if self.username is None or self.password is None:
            return None
        return self.username, self.password


def build_config(values: Mapping[str, Any]) -> ClientConfig:
    """Validate construction options, dropping unset values so defaults apply."""
    try:
        return ClientConfig(**{k: v for k, v in values.items() if v is not None})
    except ValidationError as exc:
        raise DocstoreValidationError(f"Invalid client configuration: {exc}", cause=exc) from exc
