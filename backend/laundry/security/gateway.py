"""SessionGateway -- principal resolution, CSRF route policy and role checks.

The gateway only ever raises typed errors (UnauthorizedError,
ForbiddenError, CSRFInvalidError, CSRFExpiredError). Turning those into
responses is the web layer's job, and what a client does with them
(clearing storage, navigating to login) is the client's.
"""

from __future__ import annotations

import hmac
from dataclasses import dataclass
from typing import Any, cast

import structlog
from fastapi import Request, Response

from laundry.errors import (
    CSRFExpiredError,
    CSRFInvalidError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
)
from laundry.models.entities import STAFF_ROLES, Collection, Role, User
from laundry.security.csrf import CSRFGuard
from laundry.security.resolvers import PrincipalResolver
from laundry.security.sessions import Session, SessionStore
from laundry.store.entity_store import EntityStore

log = structlog.get_logger()

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})

CSRF_HEADER = "X-CSRF-Token"
CSRF_BODY_FIELD = "_csrf"

# Routes that precede token issuance or carry their own credential.
CSRF_EXEMPT_PREFIXES: tuple[str, ...] = (
    "/api/auth/login",
    "/api/auth/register",
    "/api/auth/google",
    "/api/auth/logout",
    "/api/auth/request-login-otp",
    "/api/auth/request-signup-otp",
    "/api/auth/request-reset-otp",
    "/api/auth/verify-login-otp",
    "/api/auth/verify-signup-otp",
    "/api/auth/verify-reset-otp",
    "/api/auth/profile",
    "/api/auth/change-password",
)

# A 401 from these must not tell the client to clear its session.
IDENTITY_ROUTES = frozenset({
    "/api/auth/login",
    "/api/auth/register",
    "/api/auth/google",
    "/api/auth/me",
})


@dataclass(frozen=True)
class Principal:
    """The authenticated identity exposed to route handlers."""

    id: str
    role: Role
    email: str
    name: str

    @classmethod
    def from_user(cls, user: User) -> Principal:
        return cls(id=user.id, role=user.role, email=user.email, name=user.name)

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "role": self.role.value, "email": self.email, "name": self.name}


@dataclass
class RequestContext:
    """What the gateway resolved for one request."""

    principal: Principal | None = None
    session: Session | None = None

    @property
    def authenticated(self) -> bool:
        return self.principal is not None


def csrf_required(method: str, path: str) -> bool:
    """Route policy: unsafe methods outside the allow-list need a token."""
    if method.upper() in SAFE_METHODS:
        return False
    return not path.startswith(CSRF_EXEMPT_PREFIXES)


def clears_session(path: str) -> bool:
    """Whether a 401 on ``path`` should tell the client to drop credentials."""
    return path.rstrip("/") not in IDENTITY_ROUTES


class SessionGateway:
    """Resolves principals and gates access for every request."""

    def __init__(
        self,
        resolver: PrincipalResolver,
        sessions: SessionStore,
        csrf: CSRFGuard,
        store: EntityStore,
    ) -> None:
        self.resolver = resolver
        self.sessions = sessions
        self.csrf = csrf
        self._store = store

    # --- Resolution ---

    async def authenticate(self, request: Request) -> RequestContext:
        """Resolve the session and principal a request presents.

        Missing, unknown or expired credentials resolve as anonymous; so
        does a session whose user has been removed or disabled.
        """
        session = self.sessions.get(self.resolver.credential(request))
        if session is None or session.user_id is None:
            return RequestContext(principal=None, session=session)
        try:
            user = cast(User, await self._store.get(Collection.USERS, session.user_id))
        except NotFoundError:
            log.warning("session_user_missing", user_id=session.user_id)
            return RequestContext(principal=None, session=session)
        if user.disabled:
            return RequestContext(principal=None, session=session)
        return RequestContext(principal=Principal.from_user(user), session=session)

    # --- CSRF ---

    def enforce_csrf(
        self,
        context: RequestContext,
        method: str,
        path: str,
        token: str | None,
    ) -> None:
        """Apply the CSRF route policy.

        Raises:
            CSRFInvalidError: Token missing or not the session's bound token.
            CSRFExpiredError: Bound token no longer passes validation.
        """
        if not self.resolver.requires_csrf or not csrf_required(method, path):
            return
        bound = context.session.csrf_token if context.session is not None else None
        if not token or bound is None or not hmac.compare_digest(token, bound):
            log.warning(
                "csrf_invalid",
                method=method,
                path=path,
                token_present=bool(token),
                session_present=context.session is not None,
            )
            raise CSRFInvalidError()
        if not self.csrf.validate(token):
            log.warning("csrf_expired", method=method, path=path)
            raise CSRFExpiredError()

    def csrf_token_for(self, context: RequestContext) -> tuple[str, Session | None]:
        """Token to hand out from the token-fetch route.

        In cookie mode the token is bound to the caller's session, creating
        an anonymous one if needed. Returns the token and any newly
        created session the caller must attach.
        """
        if not self.resolver.requires_csrf:
            return self.csrf.issue(), None
        session = context.session
        if session is None:
            created = self.sessions.create()
            return created.csrf_token, created
        if not self.csrf.validate(session.csrf_token):
            return self.sessions.refresh_csrf(session), None
        return session.csrf_token, None

    # --- Access checks ---

    @staticmethod
    def require_principal(context: RequestContext) -> Principal:
        if context.principal is None:
            raise UnauthorizedError()
        return context.principal

    @staticmethod
    def require_role(context: RequestContext, *roles: Role) -> Principal:
        """Principal whose role is one of ``roles``.

        Raises:
            UnauthorizedError: Anonymous caller.
            ForbiddenError: Authenticated but the role is insufficient.
        """
        principal = SessionGateway.require_principal(context)
        if principal.role not in roles:
            log.info(
                "access_forbidden",
                user_id=principal.id,
                role=principal.role.value,
                required=[r.value for r in roles],
            )
            raise ForbiddenError()
        return principal

    @staticmethod
    def require_staff(context: RequestContext) -> Principal:
        return SessionGateway.require_role(context, *sorted(STAFF_ROLES))

    # --- Session establishment ---

    def establish(
        self,
        response: Response,
        user: User,
        context: RequestContext,
    ) -> Session:
        """Replace any presented session with a fresh one for ``user``."""
        if context.session is not None:
            self.sessions.destroy(context.session.id)
        session = self.sessions.create(user_id=user.id)
        self.resolver.attach(response, session)
        log.info("session_established", user_id=user.id, mode=self.resolver.mode)
        return session

    def terminate(self, response: Response, context: RequestContext) -> None:
        """Destroy the presented session, if any, and clear the credential."""
        if context.session is not None:
            self.sessions.destroy(context.session.id)
            log.info("session_terminated", user_id=context.session.user_id)
        self.resolver.detach(response)
