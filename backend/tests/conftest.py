"""Shared test fixtures for laundry-buddy."""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import pytest

from laundry.store.entity_store import EntityStore
from laundry.store.json_store import JsonFileEntityStore
from laundry.store.sql_store import SqlEntityStore
from tests.factories import ManualClock


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
async def json_store(tmp_path: Path) -> JsonFileEntityStore:
    store = JsonFileEntityStore(tmp_path / "data")
    await store.bootstrap()
    return store


@pytest.fixture
async def sql_store(tmp_path: Path) -> AsyncIterator[SqlEntityStore]:
    store = SqlEntityStore.from_path(tmp_path / "laundry.db")
    await store.bootstrap()
    try:
        yield store
    finally:
        await store.dispose()


@pytest.fixture(params=["json", "sqlite"])
async def store(
    request: pytest.FixtureRequest,
    tmp_path: Path,
) -> AsyncIterator[EntityStore]:
    """Each test using this runs once per backend."""
    backend: EntityStore
    if request.param == "json":
        backend = JsonFileEntityStore(tmp_path / "data")
    else:
        backend = SqlEntityStore.from_path(tmp_path / "laundry.db")
    await backend.bootstrap()
    try:
        yield backend
    finally:
        await backend.dispose()
