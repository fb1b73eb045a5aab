"""Shared test factories for creating domain objects.

Provides make_user(), make_order(), make_tracking() with sensible
defaults so tests can focus on the values they care about, plus a
ManualClock for driving expiry deterministically.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

from laundry.config import AppConfig, IdentityConfig, SecurityConfig, StoreConfig
from laundry.models.entities import LineItem, Order, Role, TrackingRecord, User, new_id
from laundry.orders.types import OrderStatus
from laundry.utils.time import format_timestamp

_DEFAULT_TIMESTAMP = datetime(2026, 3, 2, 9, 30, tzinfo=UTC)


class ManualClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = _DEFAULT_TIMESTAMP) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)


def make_user(
    *,
    id: str | None = None,
    email: str = "student@example.com",
    role: Role = Role.STUDENT,
    name: str = "Test Student",
    **extra: Any,
) -> User:
    """Create a User with sensible defaults."""
    stamp = format_timestamp(_DEFAULT_TIMESTAMP)
    return User(
        id=id or new_id(),
        email=email,
        role=role,
        name=name,
        created_at=stamp,
        updated_at=stamp,
        **extra,
    )


def make_order(
    *,
    id: str | None = None,
    user_id: str = "u1",
    status: OrderStatus = OrderStatus.RECEIVED,
    order_number: str = "ORD17000000000001234",
    items: list[LineItem] | None = None,
    created_at: datetime = _DEFAULT_TIMESTAMP,
    **extra: Any,
) -> Order:
    """Create an Order with sensible defaults."""
    stamp = format_timestamp(created_at)
    return Order(
        id=id or new_id(),
        user_id=user_id,
        order_number=order_number,
        status=status,
        items=items if items is not None else [LineItem(type="shirt", count=3)],
        created_at=stamp,
        updated_at=stamp,
        **extra,
    )


def make_tracking(
    *,
    order_id: str = "o1",
    status: OrderStatus = OrderStatus.RECEIVED,
    note: str = "",
    timestamp: datetime = _DEFAULT_TIMESTAMP,
) -> TrackingRecord:
    """Create a TrackingRecord with sensible defaults."""
    return TrackingRecord(
        id=new_id(),
        order_id=order_id,
        status=status,
        note=note,
        timestamp=format_timestamp(timestamp),
    )


def make_config(data_dir: Path, **security: Any) -> AppConfig:
    """AppConfig on a temp data dir with cheap bcrypt rounds."""
    return AppConfig(
        store=StoreConfig(backend="json", data_dir=str(data_dir)),
        security=SecurityConfig(bcrypt_rounds=4, **security),
        identity=IdentityConfig(google_client_id="test-client"),
    )
