"""Order lifecycle -- places orders and applies status transitions.

Every accepted transition is two store writes: the order's ``status`` is
updated, then a TrackingRecord is appended. Transitions are serialized by
one lifecycle lock so the read-validate-write of two concurrent advances
on the same order cannot interleave. All lifecycle events logged via
structlog.
"""

from __future__ import annotations

import asyncio
import secrets
from collections import Counter
from collections.abc import Iterable, Mapping
from typing import Any, NoReturn, cast

import structlog
from pydantic import ValidationError

from laundry.errors import (
    InvalidTransitionError,
    LifecycleIntegrityError,
    NotFoundError,
    OrderNotEditableError,
    ValidationFailedError,
)
from laundry.models.entities import Collection, LineItem, Order, TrackingRecord, new_id
from laundry.orders.state_machine import OrderStatusMachine
from laundry.orders.types import INITIAL_STATUS, STATUS_SEQUENCE, OrderStatus
from laundry.store.entity_store import EntityStore
from laundry.utils.time import Clock, format_timestamp, utc_now

log = structlog.get_logger()

PLACED_NOTE = "Order placed"


def generate_order_number(clock: Clock = utc_now) -> str:
    """Human-facing order number: ``ORD`` + epoch millis + 4 random digits."""
    millis = int(clock().timestamp() * 1000)
    return f"ORD{millis}{secrets.randbelow(10_000):04d}"


def parse_status(value: OrderStatus | str, current: OrderStatus) -> OrderStatus:
    """Coerce a requested target status, rejecting unknown names."""
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(value)
    except ValueError:
        raise InvalidTransitionError(current.value, str(value)) from None


def _coerce_items(items: Iterable[LineItem | Mapping[str, Any]]) -> list[LineItem]:
    try:
        parsed = [
            item if isinstance(item, LineItem) else LineItem.model_validate(item)
            for item in items
        ]
    except ValidationError as e:
        raise ValidationFailedError(f"Invalid order items: {e}") from e
    if not parsed:
        raise ValidationFailedError("Order must contain at least one item")
    return parsed


class OrderLifecycle:
    """Order placement, status transitions and tracking history."""

    def __init__(self, store: EntityStore, clock: Clock = utc_now) -> None:
        self._store = store
        self._clock = clock
        self._lock = asyncio.Lock()

    # --- Placement ---

    async def place_order(
        self,
        user_id: str,
        items: Iterable[LineItem | Mapping[str, Any]],
        service_type: str = "wash-and-fold",
        pickup_date: str | None = None,
        special_instructions: str = "",
    ) -> Order:
        """Create a ``received`` order and its initial tracking record."""
        now = format_timestamp(self._clock())
        order = Order(
            id=new_id(),
            user_id=user_id,
            order_number=generate_order_number(self._clock),
            service_type=service_type,
            items=_coerce_items(items),
            pickup_date=pickup_date,
            special_instructions=special_instructions,
            status=INITIAL_STATUS,
            created_at=now,
            updated_at=now,
        )
        async with self._lock:
            await self._store.create(Collection.ORDERS, order)
            try:
                await self._append_tracking(order.id, INITIAL_STATUS, PLACED_NOTE, now)
            except Exception as exc:
                # No history means no order: undo the create.
                await self._store.delete(Collection.ORDERS, order.id)
                log.error("order_place_failed", order_id=order.id, error=str(exc))
                raise LifecycleIntegrityError(
                    f"Could not record initial status for order {order.id}"
                ) from exc

        log.info(
            "order_placed",
            order_id=order.id,
            order_number=order.order_number,
            user_id=user_id,
            items=len(order.items),
        )
        return order

    # --- Queries ---

    async def get_order(self, order_id: str) -> Order:
        return cast(Order, await self._store.get(Collection.ORDERS, order_id))

    async def current_status(self, order_id: str) -> OrderStatus:
        """The order's status. Raises NotFoundError for an unknown order."""
        return (await self.get_order(order_id)).status

    async def history(self, order_id: str) -> list[TrackingRecord]:
        """Tracking records for an order, oldest first.

        Raises:
            NotFoundError: If the order does not exist.
        """
        await self.get_order(order_id)
        records = cast(
            list[TrackingRecord],
            await self._store.find(Collection.TRACKING, order_id=order_id),
        )
        # Stable: equal timestamps keep append order.
        return sorted(records, key=lambda r: r.timestamp)

    async def find_by_number(self, order_number: str) -> Order:
        matches = await self._store.find(Collection.ORDERS, order_number=order_number)
        if not matches:
            raise NotFoundError(Collection.ORDERS.value, order_number)
        return cast(Order, matches[0])

    async def orders_for_user(
        self,
        user_id: str,
        status: OrderStatus | None = None,
    ) -> list[Order]:
        """A user's orders, newest first, optionally filtered by status."""
        criteria: dict[str, Any] = {"user_id": user_id}
        if status is not None:
            criteria["status"] = status
        orders = cast(list[Order], await self._store.find(Collection.ORDERS, **criteria))
        return sorted(orders, key=lambda o: o.created_at, reverse=True)

    async def orders_by_status(
        self,
        status: OrderStatus | None = None,
        query: str = "",
    ) -> list[Order]:
        """All orders, newest first, filtered by status and a search term.

        The search term matches order number, status or line-item type,
        case-insensitively.
        """
        orders = cast(list[Order], await self._store.list(Collection.ORDERS))
        if status is not None:
            orders = [o for o in orders if o.status == status]
        term = query.strip().lower()
        if term:
            orders = [o for o in orders if _matches_term(o, term)]
        return sorted(orders, key=lambda o: o.created_at, reverse=True)

    async def status_counts(self) -> dict[str, int]:
        """Number of orders per status, every status present."""
        orders = cast(list[Order], await self._store.list(Collection.ORDERS))
        counts = Counter(o.status for o in orders)
        result = {status.value: counts.get(status, 0) for status in STATUS_SEQUENCE}
        result["total"] = len(orders)
        return result

    # --- Transitions ---

    async def advance(
        self,
        order_id: str,
        target: OrderStatus | str | None = None,
        note: str | None = None,
    ) -> Order:
        """Move an order to its immediate successor status.

        ``target``, when given, must equal that successor.

        Raises:
            NotFoundError: If the order does not exist.
            InvalidTransitionError: Skip, backward, repeat or terminal.
            LifecycleIntegrityError: Status written but history append failed.
        """
        async with self._lock:
            order = await self.get_order(order_id)
            previous = order.status
            machine = OrderStatusMachine(previous)
            if target is None:
                new_status = machine.advance()
            else:
                new_status = parse_status(target, previous)
                machine.transition(new_status)

            now = format_timestamp(self._clock())
            updated = cast(
                Order,
                await self._store.update(
                    Collection.ORDERS,
                    order_id,
                    {"status": new_status.value, "updated_at": now},
                ),
            )
            try:
                await self._append_tracking(
                    order_id,
                    new_status,
                    note or f"Updated to {new_status.value}",
                    now,
                )
            except Exception as exc:
                await self._abort_advance(order, exc)

        log.info(
            "order_advanced",
            order_id=order_id,
            order_number=updated.order_number,
            from_status=previous.value,
            to_status=new_status.value,
        )
        return updated

    async def _abort_advance(self, order: Order, cause: Exception) -> NoReturn:
        """Best-effort revert of the status write, then raise."""
        log.critical(
            "lifecycle_audit_append_failed",
            order_id=order.id,
            status=order.status.value,
            error=str(cause),
        )
        try:
            await self._store.update(
                Collection.ORDERS,
                order.id,
                {"status": order.status.value, "updated_at": order.updated_at},
            )
        except Exception as revert_exc:
            log.critical(
                "lifecycle_revert_failed",
                order_id=order.id,
                error=str(revert_exc),
            )
        raise LifecycleIntegrityError(
            f"Order {order.id} status change could not be recorded"
        ) from cause

    # --- Edits ---

    async def edit_items(
        self,
        order_id: str,
        items: Iterable[LineItem | Mapping[str, Any]],
        special_instructions: str | None = None,
    ) -> Order:
        """Replace line items. Only allowed while the order is ``received``."""
        parsed = _coerce_items(items)
        async with self._lock:
            order = await self.get_order(order_id)
            if order.status != INITIAL_STATUS:
                raise OrderNotEditableError()
            fields: dict[str, Any] = {
                "items": [item.model_dump(mode="json") for item in parsed],
                "updated_at": format_timestamp(self._clock()),
            }
            if special_instructions is not None:
                fields["special_instructions"] = special_instructions
            updated = await self._store.update(Collection.ORDERS, order_id, fields)
        log.info("order_items_edited", order_id=order_id, items=len(parsed))
        return cast(Order, updated)

    async def remove_order(self, order_id: str) -> bool:
        """Delete an order. Tracking records are kept for audit."""
        async with self._lock:
            removed = await self._store.delete(Collection.ORDERS, order_id)
        if removed:
            log.info("order_removed", order_id=order_id)
        return removed

    # --- Internal helpers ---

    async def _append_tracking(
        self,
        order_id: str,
        status: OrderStatus,
        note: str,
        timestamp: str,
    ) -> TrackingRecord:
        record = TrackingRecord(
            id=new_id(),
            order_id=order_id,
            status=status,
            note=note,
            timestamp=timestamp,
        )
        await self._store.create(Collection.TRACKING, record)
        return record


def _matches_term(order: Order, term: str) -> bool:
    if term in order.order_number.lower() or term in order.status.value:
        return True
    return any(term in item.type.lower() for item in order.items)
