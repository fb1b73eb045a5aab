"""EntityStore protocol -- abstract interface for durable CRUD.

All store backends (JSON files, SQLite) must satisfy this protocol. The
helpers below hold the semantics both backends share: shallow merge,
id immutability and unique secondary keys.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Protocol, runtime_checkable

from pydantic import ValidationError

from laundry.errors import UniqueConstraintError, ValidationFailedError
from laundry.models.entities import ENTITY_TYPES, UNIQUE_FIELDS, Collection, Entity


@runtime_checkable
class EntityStore(Protocol):
    """Async CRUD over the users, orders and tracking collections.

    Mutations either fully commit or raise and leave prior state intact.
    """

    async def bootstrap(self) -> None:
        """Materialize missing collections as empty. Idempotent."""
        ...

    async def dispose(self) -> None:
        """Release held resources. The store is unusable afterwards."""
        ...

    async def list(self, collection: Collection) -> list[Entity]:
        """All entities of a collection in stored order."""
        ...

    async def get(self, collection: Collection, entity_id: str) -> Entity:
        """Fetch one entity.

        Raises:
            NotFoundError: If no entity has ``entity_id``.
        """
        ...

    async def find(self, collection: Collection, **criteria: Any) -> list[Entity]:
        """Entities whose fields equal every ``criteria`` value."""
        ...

    async def create(self, collection: Collection, entity: Entity) -> Entity:
        """Store a new entity.

        Raises:
            DuplicateIdError: If the id is already present.
            UniqueConstraintError: If a unique secondary key is taken.
        """
        ...

    async def update(
        self,
        collection: Collection,
        entity_id: str,
        fields: Mapping[str, Any],
    ) -> Entity:
        """Shallow-merge ``fields`` into an entity and return the result.

        Raises:
            NotFoundError: If no entity has ``entity_id``.
        """
        ...

    async def delete(self, collection: Collection, entity_id: str) -> bool:
        """Remove an entity. Returns whether it existed."""
        ...


def coerce_entity(collection: Collection, value: Entity | Mapping[str, Any]) -> Entity:
    """Validate ``value`` against the collection's schema."""
    model = ENTITY_TYPES[collection]
    if isinstance(value, model):
        return value
    data = value.model_dump(mode="json") if isinstance(value, Entity) else dict(value)
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ValidationFailedError(f"Invalid {collection.kind}: {e}") from e


def merge_fields(
    collection: Collection,
    entity: Entity,
    fields: Mapping[str, Any],
) -> Entity:
    """Shallow merge: given fields replace same-named ones, others are kept."""
    if "id" in fields and fields["id"] != entity.id:
        raise ValidationFailedError("id is immutable")
    data = entity.model_dump(mode="json")
    data.update(fields)
    return coerce_entity(collection, data)


def matches(entity: Entity, criteria: Mapping[str, Any]) -> bool:
    """Equality filter on dumped field values (enums compare by value)."""
    data = entity.model_dump(mode="json")
    for key, expected in criteria.items():
        if hasattr(expected, "value"):
            expected = expected.value
        if data.get(key) != expected:
            return False
    return True


def check_unique(
    collection: Collection,
    candidate: Entity,
    existing: Iterable[Entity],
) -> None:
    """Raise if ``candidate`` duplicates a unique key of another entity."""
    unique = UNIQUE_FIELDS.get(collection, ())
    if not unique:
        return
    for other in existing:
        if other.id == candidate.id:
            continue
        for field in unique:
            value = getattr(candidate, field, None)
            if value is not None and getattr(other, field, None) == value:
                raise UniqueConstraintError(collection.value, field, str(value))
