"""Staff dashboard routes."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query

from laundry.errors import ValidationFailedError
from laundry.models.entities import Role
from laundry.orders.types import OrderStatus
from laundry.security.gateway import Principal, RequestContext, SessionGateway
from laundry.web.deps import ServicesDep, StaffDep, request_context
from laundry.web.schemas import order_payload, user_payload

router = APIRouter(prefix="/api/admin", tags=["admin"])


def admin_principal(
    context: Annotated[RequestContext, Depends(request_context)],
) -> Principal:
    return SessionGateway.require_role(context, Role.ADMIN)


@router.get("/orders")
async def list_orders(
    principal: StaffDep,
    services: ServicesDep,
    status: Annotated[str | None, Query()] = None,
    q: Annotated[str, Query(max_length=100)] = "",
) -> dict[str, Any]:
    wanted = None
    if status:
        try:
            wanted = OrderStatus(status)
        except ValueError:
            raise ValidationFailedError(f"Unknown status: {status}") from None
    orders = await services.lifecycle.orders_by_status(wanted, q)
    return {"success": True, "orders": [order_payload(o) for o in orders]}


@router.get("/stats")
async def stats(principal: StaffDep, services: ServicesDep) -> dict[str, Any]:
    counts = await services.lifecycle.status_counts()
    users = await services.accounts.list_users()
    return {
        "success": True,
        "orders": counts,
        "users": {
            "total": len(users),
            "staff": sum(1 for u in users if u.is_staff),
        },
    }


@router.get("/users")
async def list_users(
    principal: Annotated[Principal, Depends(admin_principal)],
    services: ServicesDep,
) -> dict[str, Any]:
    users = await services.accounts.list_users()
    return {"success": True, "users": [user_payload(u) for u in users]}
