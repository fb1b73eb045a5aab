"""Request bodies and response shaping for the HTTP API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from laundry.models.entities import Order, TrackingRecord, User


class RegisterRequest(BaseModel):
    name: str
    email: str
    password: str
    phone: str = ""
    hostel: str = ""
    room: str = ""


class LoginRequest(BaseModel):
    email: str
    password: str


class GoogleLoginRequest(BaseModel):
    credential: str = Field(min_length=1)


class ProfileUpdateRequest(BaseModel):
    name: str | None = None
    phone: str | None = None
    hostel: str | None = None
    room: str | None = None
    photo_url: str | None = None


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str


class LineItemIn(BaseModel):
    type: str = Field(min_length=1)
    count: int = Field(ge=1)
    color: str = "mixed"


class OrderCreateRequest(BaseModel):
    items: list[LineItemIn] = Field(min_length=1)
    service_type: str = "wash-and-fold"
    pickup_date: str | None = None
    special_instructions: str = ""


class OrderUpdateRequest(BaseModel):
    items: list[LineItemIn] = Field(min_length=1)
    special_instructions: str | None = None


class AdvanceRequest(BaseModel):
    status: str | None = None
    note: str | None = None


def user_payload(user: User) -> dict[str, Any]:
    """Public view of a user; never includes the password hash."""
    return {
        "id": user.id,
        "role": user.role.value,
        "email": user.email,
        "name": user.name,
        "phone": user.phone,
        "hostel": user.hostel,
        "room": user.room,
        "photo_url": user.photo_url,
        "created_at": user.created_at,
        "last_login_at": user.last_login_at,
    }


def order_payload(order: Order) -> dict[str, Any]:
    return order.model_dump(mode="json")


def tracking_payload(records: list[TrackingRecord]) -> list[dict[str, Any]]:
    return [r.model_dump(mode="json") for r in records]
