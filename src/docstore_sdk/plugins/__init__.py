"""Interceptor plugins and the plugin registry."""

from .base import BasePlugin, HookCallCounts, Interceptor, Retry
from .cookieauth import CookieAuthPlugin
from .registry import PLUGIN_FACTORIES, Resolution, resolve_plugin
from .retry import RetryPlugin

__all__ = [
    "BasePlugin",
    "CookieAuthPlugin",
    "HookCallCounts",
    "Interceptor",
    "PLUGIN_FACTORIES",
    "Resolution",
    "Retry",
    "RetryPlugin",
    "resolve_plugin",
]
