"""Tracking lookup by human-facing order number."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from laundry.errors import ForbiddenError
from laundry.web.deps import PrincipalDep, ServicesDep
from laundry.web.schemas import order_payload, tracking_payload

router = APIRouter(prefix="/api/tracking", tags=["tracking"])


@router.get("/order/{order_number}")
async def track_by_number(
    order_number: str,
    principal: PrincipalDep,
    services: ServicesDep,
) -> dict[str, Any]:
    order = await services.lifecycle.find_by_number(order_number)
    if order.user_id != principal.id and not principal.is_staff:
        raise ForbiddenError()
    records = await services.lifecycle.history(order.id)
    return {
        "success": True,
        "order": order_payload(order),
        "history": tracking_payload(records),
    }
