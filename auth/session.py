"""
auth/session.py -- Session gate: cookie envelope around the token codec.

The gate owns the session lifecycle contract:
  attach(token)       -- set the session cookie after a successful login
  detach()            -- delete it on logout
  is_authenticated()  -- cookie present AND token verifies

Cookie storage itself is a collaborator (CookieStore). In the app it is
StarletteCookieStore, which reads from the incoming Request and writes
Set-Cookie headers on the outgoing Response. Tests use a plain dict-backed
store.

Cookie attributes:
  httponly=True   -- JS cannot read the cookie (XSS mitigation).
  samesite="lax"  -- not sent on cross-site POST (CSRF mitigation).
  secure          -- HTTPS only, outside DEBUG mode.
  max_age         -- 7 days by default. The token has no expiry of its own,
                     so this is the effective session lifetime.
  path="/"        -- whole site.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from starlette.requests import Request
from starlette.responses import Response

from auth.tokens import check_credentials, verify_session_token
from core.config import Settings, get_settings


@dataclass(frozen=True)
class CookieAttributes:
    max_age: int
    secure: bool
    httponly: bool = True
    samesite: str = "lax"
    path: str = "/"


class CookieStore(Protocol):
    def get(self, name: str) -> str | None: ...

    def set(self, name: str, value: str, attributes: CookieAttributes) -> None: ...

    def delete(self, name: str) -> None: ...


class StarletteCookieStore:
    """CookieStore backed by a Starlette request/response pair."""

    def __init__(self, request: Request, response: Response) -> None:
        self._request = request
        self._response = response

    def get(self, name: str) -> str | None:
        return self._request.cookies.get(name)

    def set(self, name: str, value: str, attributes: CookieAttributes) -> None:
        self._response.set_cookie(
            name,
            value=value,
            max_age=attributes.max_age,
            path=attributes.path,
            secure=attributes.secure,
            httponly=attributes.httponly,
            samesite=attributes.samesite,
        )

    def delete(self, name: str) -> None:
        self._response.delete_cookie(name, path="/")


CredentialCheck = Callable[[str, str], bool]


class SessionGate:
    """Boolean authentication predicate plus the session cookie lifecycle.

    Args:
        cookies:     Where the session cookie lives.
        settings:    Cookie name, lifetime and secure flag. Defaults to get_settings().
        credentials: Credential check. Defaults to check_credentials() bound to settings.
    """

    def __init__(
        self,
        cookies: CookieStore,
        settings: Settings | None = None,
        credentials: CredentialCheck | None = None,
    ) -> None:
        self.cookies = cookies
        self.settings = settings or get_settings()
        self._credentials = credentials or (lambda u, p: check_credentials(u, p, self.settings))

    def authenticate(self, username: str, password: str) -> bool:
        return self._credentials(username, password)

    def current_token(self) -> str | None:
        return self.cookies.get(self.settings.auth_cookie_name)

    def is_authenticated(self) -> bool:
        """True when a session cookie is present and its token verifies. Never raises on bad tokens."""
        token = self.current_token()
        if not token:
            return False
        return verify_session_token(token, self.settings.auth_secret)

    def attach(self, token: str) -> None:
        self.cookies.set(
            self.settings.auth_cookie_name,
            token,
            CookieAttributes(
                max_age=self.settings.session_max_age_seconds,
                secure=self.settings.secure_cookies,
            ),
        )

    def detach(self) -> None:
        self.cookies.delete(self.settings.auth_cookie_name)
