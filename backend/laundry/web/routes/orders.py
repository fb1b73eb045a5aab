"""Order routes for students and staff."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from laundry.errors import ForbiddenError, NotFoundError, OrderNotEditableError
from laundry.models.entities import Collection, Order
from laundry.orders.types import INITIAL_STATUS, OrderStatus
from laundry.security.gateway import Principal
from laundry.web.deps import PrincipalDep, Services, ServicesDep, StaffDep
from laundry.web.schemas import (
    AdvanceRequest,
    OrderCreateRequest,
    OrderUpdateRequest,
    order_payload,
    tracking_payload,
)

router = APIRouter(prefix="/api/orders", tags=["orders"])


async def _visible_order(services: Services, order_id: str, principal: Principal) -> Order:
    """Order the principal may see: their own, or any for staff."""
    order = await services.lifecycle.get_order(order_id)
    if order.user_id != principal.id and not principal.is_staff:
        raise ForbiddenError()
    return order


@router.get("")
async def list_orders(principal: PrincipalDep, services: ServicesDep) -> dict[str, Any]:
    orders = await services.lifecycle.orders_for_user(principal.id)
    return {"success": True, "orders": [order_payload(o) for o in orders]}


@router.get("/history")
async def order_history(principal: PrincipalDep, services: ServicesDep) -> dict[str, Any]:
    orders = await services.lifecycle.orders_for_user(
        principal.id,
        status=OrderStatus.COMPLETED,
    )
    return {"success": True, "orders": [order_payload(o) for o in orders]}


@router.post("", status_code=201)
async def create_order(
    payload: OrderCreateRequest,
    principal: PrincipalDep,
    services: ServicesDep,
) -> dict[str, Any]:
    order = await services.lifecycle.place_order(
        principal.id,
        [item.model_dump() for item in payload.items],
        service_type=payload.service_type,
        pickup_date=payload.pickup_date,
        special_instructions=payload.special_instructions,
    )
    return {"success": True, "message": "Order submitted", "order": order_payload(order)}


@router.get("/{order_id}")
async def get_order(
    order_id: str,
    principal: PrincipalDep,
    services: ServicesDep,
) -> dict[str, Any]:
    order = await _visible_order(services, order_id, principal)
    return {"success": True, "order": order_payload(order)}


@router.patch("/{order_id}")
async def update_order(
    order_id: str,
    payload: OrderUpdateRequest,
    principal: PrincipalDep,
    services: ServicesDep,
) -> dict[str, Any]:
    order = await services.lifecycle.get_order(order_id)
    if order.user_id != principal.id:
        raise ForbiddenError()
    order = await services.lifecycle.edit_items(
        order_id,
        [item.model_dump() for item in payload.items],
        special_instructions=payload.special_instructions,
    )
    return {"success": True, "order": order_payload(order)}


@router.delete("/{order_id}")
async def delete_order(
    order_id: str,
    principal: PrincipalDep,
    services: ServicesDep,
) -> dict[str, Any]:
    order = await _visible_order(services, order_id, principal)
    if not principal.is_staff and order.status != INITIAL_STATUS:
        raise OrderNotEditableError("Order can no longer be cancelled")
    if not await services.lifecycle.remove_order(order_id):
        raise NotFoundError(Collection.ORDERS.value, order_id)
    return {"success": True, "message": "Order deleted"}


@router.get("/{order_id}/history")
async def tracking_history(
    order_id: str,
    principal: PrincipalDep,
    services: ServicesDep,
) -> dict[str, Any]:
    await _visible_order(services, order_id, principal)
    records = await services.lifecycle.history(order_id)
    return {"success": True, "history": tracking_payload(records)}


@router.post("/{order_id}/advance")
async def advance_order(
    order_id: str,
    principal: StaffDep,
    services: ServicesDep,
    payload: AdvanceRequest | None = None,
) -> dict[str, Any]:
    target = payload.status if payload is not None else None
    note = payload.note if payload is not None else None
    order = await services.lifecycle.advance(order_id, target=target, note=note)
    return {"success": True, "order": order_payload(order)}
