"""Shared FastAPI dependencies.

``request_context`` runs once per request (FastAPI caches it): it resolves
the principal through the SessionGateway and applies the CSRF policy
before any handler code touches the store.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Request

from laundry.accounts import AccountService
from laundry.config import AppConfig
from laundry.orders.lifecycle import OrderLifecycle
from laundry.security.csrf import CSRFGuard, CSRFSweeper
from laundry.security.gateway import (
    CSRF_BODY_FIELD,
    CSRF_HEADER,
    Principal,
    RequestContext,
    SessionGateway,
    csrf_required,
)
from laundry.security.sessions import SessionStore
from laundry.store.entity_store import EntityStore
from laundry.utils.time import Clock, utc_now


@dataclass
class Services:
    """Everything a request handler may need, built once per app."""

    config: AppConfig
    store: EntityStore
    csrf: CSRFGuard
    sessions: SessionStore
    gateway: SessionGateway
    sweeper: CSRFSweeper
    accounts: AccountService
    lifecycle: OrderLifecycle
    clock: Clock = utc_now


def get_services(request: Request) -> Services:
    services: Services = request.app.state.services
    return services


async def _presented_csrf_token(request: Request) -> str | None:
    """Token from the X-CSRF-Token header, else from a JSON body ``_csrf``."""
    header = request.headers.get(CSRF_HEADER)
    if header:
        return header
    if "json" not in request.headers.get("content-type", ""):
        return None
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    if isinstance(body, dict) and isinstance(body.get(CSRF_BODY_FIELD), str):
        token: str = body[CSRF_BODY_FIELD]
        return token
    return None


async def request_context(
    request: Request,
    services: Annotated[Services, Depends(get_services)],
) -> RequestContext:
    gateway = services.gateway
    context = await gateway.authenticate(request)
    token = None
    if gateway.resolver.requires_csrf and csrf_required(request.method, request.url.path):
        token = await _presented_csrf_token(request)
    gateway.enforce_csrf(context, request.method, request.url.path, token)
    return context


def current_principal(
    context: Annotated[RequestContext, Depends(request_context)],
) -> Principal:
    return SessionGateway.require_principal(context)


def staff_principal(
    context: Annotated[RequestContext, Depends(request_context)],
) -> Principal:
    return SessionGateway.require_staff(context)


ServicesDep = Annotated[Services, Depends(get_services)]
ContextDep = Annotated[RequestContext, Depends(request_context)]
PrincipalDep = Annotated[Principal, Depends(current_principal)]
StaffDep = Annotated[Principal, Depends(staff_principal)]
