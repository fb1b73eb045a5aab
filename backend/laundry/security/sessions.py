"""Server-side sessions.

A session maps an opaque client-held id to a user id (or nobody, for an
anonymous visitor that has only fetched a CSRF token) and to the one CSRF
token bound to it. Destroying a session revokes its token.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

import structlog

from laundry.security.csrf import CSRFGuard
from laundry.utils.time import Clock, utc_now

log = structlog.get_logger()

DEFAULT_SESSION_TTL = timedelta(days=7)


@dataclass
class Session:
    """One live session. ``user_id`` is None until login."""

    id: str
    csrf_token: str
    created_at: datetime
    expires_at: datetime
    user_id: str | None = None

    @property
    def authenticated(self) -> bool:
        return self.user_id is not None


class SessionStore:
    """In-memory session map sharing a CSRFGuard for bound tokens."""

    def __init__(
        self,
        csrf: CSRFGuard,
        ttl: timedelta = DEFAULT_SESSION_TTL,
        clock: Clock = utc_now,
    ) -> None:
        self._csrf = csrf
        self._ttl = ttl
        self._clock = clock
        self._sessions: dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self, user_id: str | None = None) -> Session:
        """Start a session with a freshly issued CSRF token."""
        now = self._clock()
        session = Session(
            id=secrets.token_urlsafe(32),
            csrf_token=self._csrf.issue(),
            created_at=now,
            expires_at=now + self._ttl,
            user_id=user_id,
        )
        self._sessions[session.id] = session
        log.debug("session_created", authenticated=session.authenticated)
        return session

    def get(self, session_id: str | None) -> Session | None:
        """Live session for ``session_id``; expired sessions are destroyed."""
        if not session_id:
            return None
        session = self._sessions.get(session_id)
        if session is None:
            return None
        if self._clock() > session.expires_at:
            self._drop(session)
            return None
        return session

    def refresh_csrf(self, session: Session) -> str:
        """Bind a new CSRF token to ``session``, revoking the previous one."""
        self._csrf.revoke(session.csrf_token)
        session.csrf_token = self._csrf.issue()
        return session.csrf_token

    def destroy(self, session_id: str | None) -> bool:
        """End a session and revoke its CSRF token. Returns whether it existed."""
        if not session_id:
            return False
        session = self._sessions.get(session_id)
        if session is None:
            return False
        self._drop(session)
        return True

    def destroy_for_user(self, user_id: str) -> int:
        """End every session of one user (e.g. after a password change)."""
        doomed = [s for s in list(self._sessions.values()) if s.user_id == user_id]
        for session in doomed:
            self._drop(session)
        return len(doomed)

    def sweep(self) -> int:
        """Destroy every expired session and return how many were removed."""
        now = self._clock()
        expired = [s for s in list(self._sessions.values()) if now > s.expires_at]
        for session in expired:
            self._drop(session)
        return len(expired)

    def _drop(self, session: Session) -> None:
        self._sessions.pop(session.id, None)
        self._csrf.revoke(session.csrf_token)
