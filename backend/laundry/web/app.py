"""FastAPI application factory.

All collaborators are built here and hung on ``app.state.services``; tests
pass their own store, identity provider and clock.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import timedelta

import structlog
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from laundry import __version__
from laundry.accounts import AccountService
from laundry.config import AppConfig
from laundry.identity.google import GoogleIdentityProvider
from laundry.identity.provider import IdentityProvider
from laundry.orders.lifecycle import OrderLifecycle
from laundry.security.csrf import CSRFGuard, CSRFSweeper
from laundry.security.gateway import CSRF_HEADER, SessionGateway
from laundry.security.resolvers import build_resolver
from laundry.security.sessions import SessionStore
from laundry.store import build_store
from laundry.store.entity_store import EntityStore
from laundry.utils.time import Clock, utc_now
from laundry.web.deps import Services, request_context
from laundry.web.errors import register_exception_handlers
from laundry.web.middleware import REQUEST_ID_HEADER, RequestIdMiddleware
from laundry.web.routes import ROUTERS

log = structlog.get_logger()


def build_services(
    config: AppConfig,
    store: EntityStore | None = None,
    identity: IdentityProvider | None = None,
    clock: Clock = utc_now,
) -> Services:
    """Wire the store, security layer and domain services together."""
    security = config.security
    store = store if store is not None else build_store(config.store)
    csrf = CSRFGuard(ttl=timedelta(hours=security.csrf_ttl_hours), clock=clock)
    sessions = SessionStore(
        csrf,
        ttl=timedelta(hours=security.session_ttl_hours),
        clock=clock,
    )
    gateway = SessionGateway(build_resolver(security), sessions, csrf, store)
    if identity is None:
        identity = GoogleIdentityProvider(config.identity)
    return Services(
        config=config,
        store=store,
        csrf=csrf,
        sessions=sessions,
        gateway=gateway,
        sweeper=CSRFSweeper(csrf, sessions, security.sweep_interval_seconds),
        accounts=AccountService(store, security, identity, clock),
        lifecycle=OrderLifecycle(store, clock),
        clock=clock,
    )


def create_app(
    config: AppConfig | None = None,
    store: EntityStore | None = None,
    identity: IdentityProvider | None = None,
    clock: Clock = utc_now,
) -> FastAPI:
    config = config or AppConfig()
    services = build_services(config, store, identity, clock)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await services.store.bootstrap()
        services.sweeper.start()
        log.info(
            "app_started",
            store=config.store.backend,
            auth_mode=config.security.auth_mode,
        )
        try:
            yield
        finally:
            await services.sweeper.stop()
            await services.store.dispose()
            log.info("app_stopped")

    app = FastAPI(
        title="Laundry Buddy",
        version=__version__,
        lifespan=lifespan,
        dependencies=[Depends(request_context)],
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.web.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", CSRF_HEADER, REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER],
    )
    app.add_middleware(RequestIdMiddleware)
    register_exception_handlers(app)

    for router in ROUTERS:
        app.include_router(router)
    return app
