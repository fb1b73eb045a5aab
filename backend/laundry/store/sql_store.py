"""SqlEntityStore -- per-entity rows in SQLite via async SQLAlchemy.

Each entity is its own row keyed by (collection, entity_id), so a
mutation touches one row in one transaction instead of rewriting the
whole collection. Writers are still serialized per collection so the
unique e-mail check and the write happen as one step.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from laundry.errors import DuplicateIdError, NotFoundError
from laundry.models.base import Base, register_engine_events
from laundry.models.entities import ENTITY_TYPES, UNIQUE_FIELDS, Collection, Entity
from laundry.models.entity_row import EntityRow
from laundry.store.entity_store import check_unique, coerce_entity, matches, merge_fields
from laundry.utils.time import format_timestamp, utc_now

log = structlog.get_logger()


class SqlEntityStore:
    """EntityStore backed by the ``entity`` table."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._session_factory = async_sessionmaker(engine, expire_on_commit=False)
        self._locks: dict[Collection, asyncio.Lock] = {c: asyncio.Lock() for c in Collection}

    @classmethod
    def from_path(cls, db_path: str | Path) -> SqlEntityStore:
        """Create a store on a SQLite file, with pragmas registered."""
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", echo=False)
        register_engine_events(engine.sync_engine)
        return cls(engine)

    async def bootstrap(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        log.info("store_bootstrapped", backend="sqlite")

    async def dispose(self) -> None:
        await self._engine.dispose()

    # --- Reads ---

    async def list(self, collection: Collection) -> list[Entity]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(EntityRow)
                .where(EntityRow.collection == collection.value)
                .order_by(EntityRow.id)
            )
            rows = result.scalars().all()
        entities = []
        for row in rows:
            entity = self._decode(collection, row)
            if entity is not None:
                entities.append(entity)
        return entities

    async def get(self, collection: Collection, entity_id: str) -> Entity:
        async with self._session_factory() as session:
            row = await self._find_row(session, collection, entity_id)
        entity = self._decode(collection, row) if row is not None else None
        if entity is None:
            raise NotFoundError(collection.value, entity_id)
        return entity

    async def find(self, collection: Collection, **criteria: Any) -> list[Entity]:
        return [e for e in await self.list(collection) if matches(e, criteria)]

    # --- Mutations ---

    async def create(self, collection: Collection, entity: Entity) -> Entity:
        entity = coerce_entity(collection, entity)
        async with self._locks[collection]:
            if collection in UNIQUE_FIELDS:
                check_unique(collection, entity, await self.list(collection))
            async with self._session_factory() as session, session.begin():
                if await self._find_row(session, collection, entity.id) is not None:
                    raise DuplicateIdError(collection.value, entity.id)
                session.add(
                    EntityRow(
                        collection=collection.value,
                        entity_id=entity.id,
                        body=self._encode(entity),
                        updated_at=format_timestamp(utc_now()),
                    )
                )
        log.debug("entity_created", collection=collection.value, entity_id=entity.id)
        return entity

    async def update(
        self,
        collection: Collection,
        entity_id: str,
        fields: Mapping[str, Any],
    ) -> Entity:
        async with self._locks[collection]:
            others = await self.list(collection) if collection in UNIQUE_FIELDS else []
            async with self._session_factory() as session, session.begin():
                row = await self._find_row(session, collection, entity_id)
                current = self._decode(collection, row) if row is not None else None
                if row is None or current is None:
                    raise NotFoundError(collection.value, entity_id)
                updated = merge_fields(collection, current, fields)
                check_unique(collection, updated, others)
                row.body = self._encode(updated)
                row.updated_at = format_timestamp(utc_now())
        log.debug(
            "entity_updated",
            collection=collection.value,
            entity_id=entity_id,
            fields=sorted(fields),
        )
        return updated

    async def delete(self, collection: Collection, entity_id: str) -> bool:
        async with self._locks[collection]:
            async with self._session_factory() as session, session.begin():
                result = await session.execute(
                    delete(EntityRow).where(
                        EntityRow.collection == collection.value,
                        EntityRow.entity_id == entity_id,
                    )
                )
                found = bool(result.rowcount)
        if found:
            log.info("entity_deleted", collection=collection.value, entity_id=entity_id)
        return found

    # --- Internal helpers ---

    @staticmethod
    async def _find_row(
        session: AsyncSession,
        collection: Collection,
        entity_id: str,
    ) -> EntityRow | None:
        result = await session.execute(
            select(EntityRow).where(
                EntityRow.collection == collection.value,
                EntityRow.entity_id == entity_id,
            )
        )
        row: EntityRow | None = result.scalar_one_or_none()
        return row

    @staticmethod
    def _encode(entity: Entity) -> str:
        return json.dumps(entity.model_dump(mode="json"))

    @staticmethod
    def _decode(collection: Collection, row: EntityRow) -> Entity | None:
        """Parse a row body; unparseable rows are logged and skipped."""
        try:
            return ENTITY_TYPES[collection].model_validate(json.loads(row.body))
        except (json.JSONDecodeError, ValidationError) as e:
            log.error(
                "store_row_corrupt",
                collection=collection.value,
                entity_id=row.entity_id,
                reason=str(e),
            )
            return None
