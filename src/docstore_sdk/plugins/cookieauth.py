"""Cookie session authentication against the ``/_session`` endpoint."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from urllib.parse import urlencode

import httpx

from ..exceptions import DocstoreTransportError
from ..models import ClientConfig
from ..request_options import RequestOptions
from ..transport import HttpResponse
from .base import BasePlugin, ReactionHookResult, RequestHookResult, Retry

if TYPE_CHECKING:
    from ..engine import CallState

logger = logging.getLogger(__name__)

SESSION_COOKIE = "AuthSession"
_STASH_CREDENTIALS = "cookieauth.credentials"
_STASH_ORIGIN = "cookieauth.origin"
_STASH_RENEWED = "cookieauth.renewed"


def _origin(url: str) -> str:
    parsed = httpx.URL(url)
    if not parsed.is_absolute_url:
        return ""
    return f"{parsed.scheme}://{parsed.netloc.decode('ascii')}"


def _session_cookie(response: HttpResponse) -> str | None:
    for header in response.headers.get_list("set-cookie"):
        pair = header.split(";", 1)[0].strip()
        name, _, value = pair.partition("=")
        if name == SESSION_COOKIE and value:
            return pair
    return None


class CookieAuthPlugin(BasePlugin):
    """Exchanges credentials for a session cookie and renews it on 401.

    Cookies are cached per server origin on the instance, so every call made
    through the same plugin instance reuses one session.
    """

    name = "cookieauth"
    session_path = "/_session"

    def __init__(self, *, username: str | None = None, password: str | None = None) -> None:
        super().__init__()
        self._credentials = (username, password) if username and password else None
        self._cookies: dict[str, str] = {}

    @classmethod
    def from_config(cls, config: ClientConfig) -> CookieAuthPlugin:
        return cls(username=config.username, password=config.password)

    def cookie_for(self, url: str) -> str | None:
        return self._cookies.get(_origin(url))

    async def on_request(self, state: CallState, request: RequestOptions) -> RequestHookResult:
        credentials = state.stash.setdefault(_STASH_CREDENTIALS, request.auth or self._credentials)
        if credentials is None:
            return None

        origin = _origin(request.url)
        state.stash[_STASH_ORIGIN] = origin
        cookie = self._cookies.get(origin)
        if cookie is None:
            outcome = await self._login(state, request.url, credentials)
            if isinstance(outcome, DocstoreTransportError):
                return outcome
            cookie = self._cookies.get(origin)

        if cookie is not None:
            request.headers["Cookie"] = cookie
            request.auth = None
        else:
            request.headers.pop("Cookie", None)
            request.auth = credentials
        return None

    async def on_response(self, state: CallState, response: HttpResponse) -> ReactionHookResult:
        origin = state.stash.get(_STASH_ORIGIN, _origin(response.request.url))
        refreshed = _session_cookie(response)
        if refreshed is not None:
            self._cookies[origin] = refreshed

        if (
            response.status_code == 401
            and state.stash.get(_STASH_CREDENTIALS) is not None
            and not state.stash.get(_STASH_RENEWED)
        ):
            state.stash[_STASH_RENEWED] = True
            logger.debug("session for %s rejected; renewing", origin or "base url")
            self._cookies.pop(origin, None)
            return Retry()
        return None

    async def _login(
        self,
        state: CallState,
        url: str,
        credentials: tuple[str, str],
    ) -> HttpResponse | DocstoreTransportError:
        username, password = credentials
        origin = _origin(url)
        session = RequestOptions(
            url=f"{origin}{self.session_path}",
            method="POST",
            headers={"Content-Type": "application/x-www-form-urlencoded", "Accept": "application/json"},
            body=urlencode({"name": username, "password": password}),
        )
        outcome = await state.send(session)
        if isinstance(outcome, DocstoreTransportError):
            logger.warning("session request to %s failed: %s", session.url, outcome.message)
            return outcome

        cookie = _session_cookie(outcome)
        if outcome.is_success and cookie is not None:
            self._cookies[origin] = cookie
        else:
            logger.warning("session request to %s returned %d", session.url, outcome.status_code)
        return outcome
