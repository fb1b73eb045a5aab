"""JsonFileEntityStore -- one JSON file per collection.

Every mutation is a read-modify-rewrite of the whole collection, so the
collection is the unit of atomicity. All operations on a collection are
serialized by that collection's asyncio.Lock; without it two concurrent
updates to different entities of the same collection would race and one
would be lost.

Writes go to a temp file in the same directory, are fsynced, then
os.replace()d over the collection file, so a crash leaves either the old
or the new collection on disk, never a torn one.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError

from laundry.errors import DuplicateIdError, NotFoundError, StorageCorruptError
from laundry.models.entities import ENTITY_TYPES, Collection, Entity
from laundry.store.entity_store import check_unique, coerce_entity, matches, merge_fields
from laundry.utils.time import utc_now

log = structlog.get_logger()


class JsonFileEntityStore:
    """EntityStore backed by ``<data_dir>/<collection>.json`` files."""

    def __init__(self, data_dir: str | Path) -> None:
        self._data_dir = Path(data_dir)
        self._locks: dict[Collection, asyncio.Lock] = {c: asyncio.Lock() for c in Collection}

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def path_for(self, collection: Collection) -> Path:
        """Backing file of a collection."""
        return self._data_dir / f"{collection.value}.json"

    async def bootstrap(self) -> None:
        await asyncio.to_thread(self._bootstrap_sync)
        log.info("store_bootstrapped", backend="json", data_dir=str(self._data_dir))

    async def dispose(self) -> None:
        # Files are opened per call; nothing is held between calls.
        return None

    def _bootstrap_sync(self) -> None:
        self._data_dir.mkdir(parents=True, exist_ok=True)
        for collection in Collection:
            # Exclusive create: never truncates an existing collection.
            with contextlib.suppress(FileExistsError):
                with self.path_for(collection).open("x", encoding="utf-8") as f:
                    f.write("[]")

    # --- Reads ---

    async def list(self, collection: Collection) -> list[Entity]:
        async with self._locks[collection]:
            return await self._load(collection)

    async def get(self, collection: Collection, entity_id: str) -> Entity:
        async with self._locks[collection]:
            entities = await self._load(collection)
        for entity in entities:
            if entity.id == entity_id:
                return entity
        raise NotFoundError(collection.value, entity_id)

    async def find(self, collection: Collection, **criteria: Any) -> list[Entity]:
        async with self._locks[collection]:
            entities = await self._load(collection)
        return [e for e in entities if matches(e, criteria)]

    # --- Mutations ---

    async def create(self, collection: Collection, entity: Entity) -> Entity:
        entity = coerce_entity(collection, entity)
        async with self._locks[collection]:
            entities = await self._load(collection)
            if any(e.id == entity.id for e in entities):
                raise DuplicateIdError(collection.value, entity.id)
            check_unique(collection, entity, entities)
            entities.append(entity)
            await self._save(collection, entities)
        log.debug("entity_created", collection=collection.value, entity_id=entity.id)
        return entity

    async def update(
        self,
        collection: Collection,
        entity_id: str,
        fields: Mapping[str, Any],
    ) -> Entity:
        async with self._locks[collection]:
            entities = await self._load(collection)
            index = next(
                (i for i, e in enumerate(entities) if e.id == entity_id),
                None,
            )
            if index is None:
                raise NotFoundError(collection.value, entity_id)
            updated = merge_fields(collection, entities[index], fields)
            check_unique(collection, updated, entities)
            entities[index] = updated
            await self._save(collection, entities)
        log.debug(
            "entity_updated",
            collection=collection.value,
            entity_id=entity_id,
            fields=sorted(fields),
        )
        return updated

    async def delete(self, collection: Collection, entity_id: str) -> bool:
        async with self._locks[collection]:
            entities = await self._load(collection)
            remaining = [e for e in entities if e.id != entity_id]
            if len(remaining) == len(entities):
                return False
            await self._save(collection, remaining)
        log.info("entity_deleted", collection=collection.value, entity_id=entity_id)
        return True

    # --- Internal helpers (caller holds the collection lock) ---

    async def _load(self, collection: Collection) -> list[Entity]:
        """Read a collection, degrading to empty on corruption."""
        try:
            return await asyncio.to_thread(self._read_sync, collection)
        except StorageCorruptError as exc:
            quarantined = await asyncio.to_thread(self._quarantine_sync, collection)
            log.error(
                "store_collection_corrupt",
                collection=collection.value,
                reason=exc.reason,
                quarantined_to=str(quarantined) if quarantined else None,
            )
            return []

    def _read_sync(self, collection: Collection) -> list[Entity]:
        path = self.path_for(collection)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StorageCorruptError(collection.value, f"unparseable JSON: {e}") from e
        if not isinstance(data, list):
            raise StorageCorruptError(collection.value, "top-level value is not a list")
        model = ENTITY_TYPES[collection]
        try:
            return [model.model_validate(item) for item in data]
        except ValidationError as e:
            raise StorageCorruptError(collection.value, f"invalid record: {e}") from e

    def _quarantine_sync(self, collection: Collection) -> Path | None:
        """Move a corrupt collection file aside so it can be inspected."""
        path = self.path_for(collection)
        stamp = utc_now().strftime("%Y%m%dT%H%M%S%f")
        target = path.with_name(f"{path.name}.corrupt-{stamp}")
        try:
            os.replace(path, target)
        except FileNotFoundError:
            return None
        return target

    async def _save(self, collection: Collection, entities: list[Entity]) -> None:
        payload = json.dumps(
            [e.model_dump(mode="json") for e in entities],
            indent=2,
        )
        await asyncio.to_thread(self._write_sync, collection, payload)

    def _write_sync(self, collection: Collection, payload: str) -> None:
        path = self.path_for(collection)
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_file = path.with_suffix(".json.tmp")
        with temp_file.open("w", encoding="utf-8") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_file, path)
