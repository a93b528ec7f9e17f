"""Resolve plugin references into interceptor instances."""

from __future__ import annotations

import enum
import inspect
import logging
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping

from ..exceptions import DocstoreValidationError
from ..models import ClientConfig
from .base import Interceptor, ensure_call_counts, is_interceptor
from .cookieauth import CookieAuthPlugin
from .retry import RetryPlugin

logger = logging.getLogger(__name__)


class Resolution(enum.Enum):
    """Outcomes of resolving a reserved name that adds no interceptor."""

    PROMISES = "promises"
    IGNORED = "ignored"


PLUGIN_FACTORIES: Mapping[str, Callable[[ClientConfig], Interceptor]] = MappingProxyType(
    {
        RetryPlugin.name: RetryPlugin.from_config,
        CookieAuthPlugin.name: CookieAuthPlugin.from_config,
    }
)

# Baseline behavior that is always present: default header injection and the
# httpx transport.
BASELINE_NAMES = frozenset({"default", "base"})
PROMISES_NAME = "promises"


def _resolve_name(name: str, config: ClientConfig) -> Interceptor | Resolution:
    key = name.strip().lower()
    if key == PROMISES_NAME:
        return Resolution.PROMISES
    if key in BASELINE_NAMES:
        logger.debug("plugin %r is always active; ignoring", name)
        return Resolution.IGNORED
    factory = PLUGIN_FACTORIES.get(key)
    if factory is None:
        known = sorted({PROMISES_NAME, *BASELINE_NAMES, *PLUGIN_FACTORIES})
        raise DocstoreValidationError(f"Unknown plugin {name!r}; expected one of: {', '.join(known)}")
    return factory(config)


def _check_zero_argument(factory: Callable[..., Any]) -> None:
    try:
        signature = inspect.signature(factory)
    except (TypeError, ValueError):
        return
    try:
        signature.bind()
    except TypeError as exc:
        raise DocstoreValidationError(f"Plugin factory {factory!r} could not be called", cause=exc) from exc


def resolve_plugin(reference: Any, config: ClientConfig) -> Interceptor | Resolution:
    """Resolve one reference: an instance, a class/factory, or a reserved name.

    Instances resolve to themselves so their counters stay shared; classes and
    factories produce a fresh instance on every resolution.
    """
    if isinstance(reference, str):
        resolved = _resolve_name(reference, config)
        if isinstance(resolved, Resolution):
            return resolved
    elif is_interceptor(reference):
        resolved = reference
    elif callable(reference):
        _check_zero_argument(reference)
        resolved = reference()
        if not is_interceptor(resolved):
            raise DocstoreValidationError(f"Plugin factory {reference!r} did not produce an interceptor")
    else:
        raise DocstoreValidationError(f"Unsupported plugin reference: {reference!r}")

    try:
        ensure_call_counts(resolved)
    except AttributeError as exc:
        raise DocstoreValidationError(f"Plugin {resolved!r} cannot hold call counters", cause=exc) from exc
    return resolved


def iter_references(value: Any) -> Iterable[Any]:
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        return value
    return (value,)
