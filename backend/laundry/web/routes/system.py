"""Health check and CSRF token fetch."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Response

from laundry import __version__
from laundry.web.deps import ContextDep, ServicesDep

router = APIRouter(prefix="/api", tags=["system"])


@router.get("/health")
async def health(services: ServicesDep) -> dict[str, Any]:
    return {
        "success": True,
        "status": "ok",
        "version": __version__,
        "auth_mode": services.gateway.resolver.mode,
    }


@router.get("/csrf-token")
async def csrf_token(
    response: Response,
    services: ServicesDep,
    context: ContextDep,
) -> dict[str, Any]:
    """Hand out the token bound to the caller's session.

    A visitor without a session gets an anonymous one, so the token has
    something to be bound to before login.
    """
    token, created = services.gateway.csrf_token_for(context)
    if created is not None:
        services.gateway.resolver.attach(response, created)
    return {"success": True, "csrf_token": token}
