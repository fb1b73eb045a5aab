"""Entity schemas and the SQLite row model."""

from laundry.models.base import Base
from laundry.models.entities import (
    ENTITY_TYPES,
    STAFF_ROLES,
    Collection,
    Entity,
    LineItem,
    Order,
    Role,
    TrackingRecord,
    User,
    new_id,
)
from laundry.models.entity_row import EntityRow

__all__ = [
    "ENTITY_TYPES",
    "STAFF_ROLES",
    "Base",
    "Collection",
    "Entity",
    "EntityRow",
    "LineItem",
    "Order",
    "Role",
    "TrackingRecord",
    "User",
    "new_id",
]
