"""Tests for entity schemas."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from laundry.models.entities import (
    ENTITY_TYPES,
    Collection,
    LineItem,
    Order,
    Role,
    User,
    new_id,
)
from laundry.orders.types import OrderStatus


class TestCollections:
    def test_kinds(self) -> None:
        assert Collection.USERS.kind == "user"
        assert Collection.ORDERS.kind == "order"
        assert Collection.TRACKING.kind == "tracking"

    def test_every_collection_has_a_schema(self) -> None:
        assert set(ENTITY_TYPES) == set(Collection)


class TestUser:
    def test_email_is_lowercased(self) -> None:
        user = User(id="u1", email="  Someone@Example.COM ")
        assert user.email == "someone@example.com"

    @pytest.mark.parametrize(
        ("role", "staff"),
        [(Role.STUDENT, False), (Role.LAUNDRY, True), (Role.ADMIN, True)],
    )
    def test_is_staff(self, role: Role, staff: bool) -> None:
        assert User(id="u1", email="a@x.com", role=role).is_staff is staff

    def test_unknown_role_rejected(self) -> None:
        with pytest.raises(ValidationError):
            User(id="u1", email="a@x.com", role="janitor")

    def test_empty_id_rejected(self) -> None:
        with pytest.raises(ValidationError):
            User(id="", email="a@x.com")


class TestOrder:
    def test_defaults(self) -> None:
        order = Order(id="o1", user_id="u1")
        assert order.status == OrderStatus.RECEIVED
        assert order.items == []

    def test_unknown_fields_are_kept(self) -> None:
        order = Order.model_validate(
            {"id": "o1", "user_id": "u1", "priority": "express"}
        )
        assert order.model_dump(mode="json")["priority"] == "express"

    def test_status_serializes_to_exact_string(self) -> None:
        order = Order(id="o1", user_id="u1", status=OrderStatus.READY_FOR_PICKUP)
        assert order.model_dump(mode="json")["status"] == "ready-for-pickup"


class TestLineItem:
    def test_count_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            LineItem(type="shirt", count=0)

    def test_default_color(self) -> None:
        assert LineItem(type="towel", count=2).color == "mixed"


def test_new_id_is_unique() -> None:
    assert len({new_id() for _ in range(100)}) == 100
