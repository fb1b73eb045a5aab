"""Authentication routes: register, login, external identity, profile."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Response

from laundry.models.entities import User
from laundry.security.gateway import RequestContext
from laundry.security.sessions import Session
from laundry.web.deps import ContextDep, PrincipalDep, Services, ServicesDep
from laundry.web.schemas import (
    ChangePasswordRequest,
    GoogleLoginRequest,
    LoginRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    user_payload,
)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _login_body(
    services: Services,
    user: User,
    session: Session,
    message: str,
) -> dict[str, Any]:
    body: dict[str, Any] = {
        "success": True,
        "message": message,
        "user": user_payload(user),
        "csrf_token": session.csrf_token,
    }
    if services.gateway.resolver.mode == "bearer":
        body["token"] = session.id
    return body


@router.post("/register", status_code=201)
async def register(
    payload: RegisterRequest,
    response: Response,
    services: ServicesDep,
    context: ContextDep,
) -> dict[str, Any]:
    user = await services.accounts.register(
        name=payload.name,
        email=payload.email,
        password=payload.password,
        phone=payload.phone,
        hostel=payload.hostel,
        room=payload.room,
    )
    session = services.gateway.establish(response, user, context)
    return _login_body(services, user, session, "Registration successful")


@router.post("/login")
async def login(
    payload: LoginRequest,
    response: Response,
    services: ServicesDep,
    context: ContextDep,
) -> dict[str, Any]:
    user = await services.accounts.authenticate(payload.email, payload.password)
    session = services.gateway.establish(response, user, context)
    return _login_body(services, user, session, "Login successful")


@router.post("/google")
async def google_login(
    payload: GoogleLoginRequest,
    response: Response,
    services: ServicesDep,
    context: ContextDep,
) -> dict[str, Any]:
    user, created = await services.accounts.login_with_identity(payload.credential)
    session = services.gateway.establish(response, user, context)
    if created:
        response.status_code = 201
    body = _login_body(
        services,
        user,
        session,
        "Account created successfully" if created else "Login successful",
    )
    body["is_new_user"] = created
    return body


@router.post("/logout")
async def logout(
    response: Response,
    services: ServicesDep,
    context: ContextDep,
) -> dict[str, Any]:
    services.gateway.terminate(response, context)
    return {"success": True, "message": "Logged out"}


@router.get("/me")
async def me(principal: PrincipalDep, services: ServicesDep) -> dict[str, Any]:
    user = await services.accounts.get_user(principal.id)
    return {"success": True, "user": user_payload(user)}


@router.put("/profile")
async def update_profile(
    payload: ProfileUpdateRequest,
    principal: PrincipalDep,
    services: ServicesDep,
) -> dict[str, Any]:
    user = await services.accounts.update_profile(
        principal.id,
        **payload.model_dump(exclude_unset=True),
    )
    return {"success": True, "message": "Profile updated", "user": user_payload(user)}


@router.put("/change-password")
async def change_password(
    payload: ChangePasswordRequest,
    response: Response,
    principal: PrincipalDep,
    services: ServicesDep,
) -> dict[str, Any]:
    user = await services.accounts.change_password(
        principal.id,
        payload.current_password,
        payload.new_password,
    )
    # Other sessions of this user die with the old password.
    services.sessions.destroy_for_user(user.id)
    session = services.gateway.establish(response, user, RequestContext())
    return _login_body(services, user, session, "Password changed")
