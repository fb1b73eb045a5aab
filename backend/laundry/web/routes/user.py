"""Personal data export."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from laundry.utils.time import now_timestamp
from laundry.web.deps import PrincipalDep, ServicesDep
from laundry.web.schemas import order_payload, tracking_payload, user_payload

router = APIRouter(prefix="/api/user", tags=["user"])


@router.get("/export-data")
async def export_data(principal: PrincipalDep, services: ServicesDep) -> dict[str, Any]:
    """Everything stored about the caller, as one JSON document."""
    user = await services.accounts.get_user(principal.id)
    orders = await services.lifecycle.orders_for_user(principal.id)
    return {
        "success": True,
        "exported_at": now_timestamp(services.clock),
        "user": user_payload(user),
        "orders": [
            {
                **order_payload(order),
                "history": tracking_payload(await services.lifecycle.history(order.id)),
            }
            for order in orders
        ],
    }
