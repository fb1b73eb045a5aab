"""Entity schemas for the three durable collections.

Per-collection pydantic records with ``extra="allow"``: fields written by
newer callers are kept on the model and written back unchanged.
"""

from __future__ import annotations

from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from laundry.orders.types import INITIAL_STATUS, OrderStatus


class Collection(str, Enum):
    """Durable entity collections."""

    USERS = "users"
    ORDERS = "orders"
    TRACKING = "tracking"

    @property
    def kind(self) -> str:
        """Entity kind stored in this collection."""
        return {
            Collection.USERS: "user",
            Collection.ORDERS: "order",
            Collection.TRACKING: "tracking",
        }[self]


class Role(str, Enum):
    """User roles. ``laundry`` and ``admin`` are staff."""

    STUDENT = "student"
    LAUNDRY = "laundry"
    ADMIN = "admin"


STAFF_ROLES = frozenset({Role.LAUNDRY, Role.ADMIN})


def new_id() -> str:
    """Generate an opaque entity id."""
    return str(uuid4())


class Entity(BaseModel):
    """Base record: an opaque id plus a bag of typed and unknown fields."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(min_length=1)


class User(Entity):
    """Registered account. ``password_hash`` is never the plaintext."""

    email: str
    password_hash: str | None = None
    role: Role = Role.STUDENT
    name: str = ""
    phone: str = ""
    hostel: str = ""
    room: str = ""
    photo_url: str | None = None
    google_id: str | None = None
    disabled: bool = False
    failed_login_attempts: int = 0
    locked_until: str | None = None
    last_login_at: str | None = None
    created_at: str = ""
    updated_at: str = ""

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


class LineItem(BaseModel):
    """One garment/service line on an order."""

    model_config = ConfigDict(extra="allow")

    type: str = Field(min_length=1)
    count: int = Field(ge=1)
    color: str = "mixed"


class Order(Entity):
    """Laundry order. ``status`` projects the latest tracking record."""

    user_id: str
    order_number: str = ""
    service_type: str = "wash-and-fold"
    items: list[LineItem] = Field(default_factory=list)
    pickup_date: str | None = None
    special_instructions: str = ""
    status: OrderStatus = INITIAL_STATUS
    created_at: str = ""
    updated_at: str = ""


class TrackingRecord(Entity):
    """Immutable audit entry appended on each status change."""

    order_id: str
    status: OrderStatus
    note: str = ""
    timestamp: str


ENTITY_TYPES: dict[Collection, type[Entity]] = {
    Collection.USERS: User,
    Collection.ORDERS: Order,
    Collection.TRACKING: TrackingRecord,
}

# Secondary keys that must be unique within a collection.
UNIQUE_FIELDS: dict[Collection, tuple[str, ...]] = {
    Collection.USERS: ("email",),
}
