"""PrincipalResolver -- how a request names its session.

Two variants, chosen once per deployment by ``security.auth_mode``:
cookie sessions (ambient credential, so CSRF applies) and bearer tokens
(explicit credential, so CSRF never applies).
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from fastapi import Request, Response

from laundry.config import SecurityConfig
from laundry.security.sessions import Session

BEARER_PREFIX = "bearer "


@runtime_checkable
class PrincipalResolver(Protocol):
    """Extracts and hands out the session credential."""

    mode: str
    requires_csrf: bool

    def credential(self, request: Request) -> str | None:
        """The session id the request presents, if any."""
        ...

    def attach(self, response: Response, session: Session) -> None:
        """Hand a newly created session to the client."""
        ...

    def detach(self, response: Response) -> None:
        """Tell the client to drop its credential."""
        ...


class CookieSessionResolver:
    """Session id travels in an HttpOnly cookie."""

    mode = "cookie"
    requires_csrf = True

    def __init__(
        self,
        cookie_name: str = "laundry.sid",
        secure: bool = False,
        samesite: str = "lax",
        max_age: int = 24 * 3600,
    ) -> None:
        self.cookie_name = cookie_name
        self._secure = secure
        self._samesite = samesite
        self._max_age = max_age

    def credential(self, request: Request) -> str | None:
        return request.cookies.get(self.cookie_name) or None

    def attach(self, response: Response, session: Session) -> None:
        response.set_cookie(
            self.cookie_name,
            session.id,
            max_age=self._max_age,
            httponly=True,
            secure=self._secure,
            samesite=self._samesite,  # type: ignore[arg-type]
            path="/",
        )

    def detach(self, response: Response) -> None:
        response.delete_cookie(
            self.cookie_name,
            path="/",
            httponly=True,
            secure=self._secure,
            samesite=self._samesite,  # type: ignore[arg-type]
        )


class BearerTokenResolver:
    """Session id travels in ``Authorization: Bearer <token>``.

    The token is returned in the login response body; nothing is stored
    in cookies, so detach is a no-op.
    """

    mode = "bearer"
    requires_csrf = False

    def credential(self, request: Request) -> str | None:
        header = request.headers.get("authorization", "")
        if not header.lower().startswith(BEARER_PREFIX):
            return None
        token = header[len(BEARER_PREFIX):].strip()
        return token or None

    def attach(self, response: Response, session: Session) -> None:
        pass

    def detach(self, response: Response) -> None:
        pass


def build_resolver(config: SecurityConfig) -> PrincipalResolver:
    """Instantiate the resolver selected by configuration."""
    if config.auth_mode == "bearer":
        return BearerTokenResolver()
    return CookieSessionResolver(
        cookie_name=config.cookie_name,
        secure=config.cookie_secure,
        samesite=config.cookie_samesite,
        max_age=config.session_ttl_hours * 3600,
    )
