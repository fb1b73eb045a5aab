"""Security layer: CSRF tokens, sessions, principal resolution.

Re-exports the public pieces:
    from laundry.security import CSRFGuard, SessionGateway, SessionStore
"""

from laundry.security.csrf import CSRFGuard, CSRFSweeper
from laundry.security.gateway import (
    CSRF_EXEMPT_PREFIXES,
    Principal,
    RequestContext,
    SessionGateway,
)
from laundry.security.passwords import hash_password, verify_password
from laundry.security.resolvers import (
    BearerTokenResolver,
    CookieSessionResolver,
    PrincipalResolver,
    build_resolver,
)
from laundry.security.sessions import Session, SessionStore

__all__ = [
    "CSRF_EXEMPT_PREFIXES",
    "BearerTokenResolver",
    "CSRFGuard",
    "CSRFSweeper",
    "CookieSessionResolver",
    "Principal",
    "PrincipalResolver",
    "RequestContext",
    "Session",
    "SessionGateway",
    "SessionStore",
    "build_resolver",
    "hash_password",
    "verify_password",
]
