"""Tests for JsonFileEntityStore: files, durability, corruption handling."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from laundry.errors import DuplicateIdError
from laundry.models.entities import Collection, Order, User
from laundry.store.json_store import JsonFileEntityStore
from tests.factories import make_order, make_user


class TestBootstrap:
    async def test_creates_empty_collections(self, tmp_path: Path) -> None:
        store = JsonFileEntityStore(tmp_path / "data")
        await store.bootstrap()
        for collection in Collection:
            assert json.loads(store.path_for(collection).read_text()) == []

    async def test_is_idempotent_and_never_truncates(
        self,
        json_store: JsonFileEntityStore,
    ) -> None:
        await json_store.create(Collection.USERS, make_user(id="u1"))
        await json_store.bootstrap()
        await json_store.bootstrap()
        assert [u.id for u in await json_store.list(Collection.USERS)] == ["u1"]

    async def test_concurrent_with_reads(self, json_store: JsonFileEntityStore) -> None:
        await json_store.create(Collection.ORDERS, make_order(id="o1"))
        results = await asyncio.gather(
            json_store.bootstrap(),
            json_store.list(Collection.ORDERS),
            json_store.bootstrap(),
        )
        assert [o.id for o in results[1]] == ["o1"]
        assert len(await json_store.list(Collection.ORDERS)) == 1

    async def test_dispose_leaves_files_for_the_next_store(self, tmp_path: Path) -> None:
        store = JsonFileEntityStore(tmp_path / "data")
        await store.bootstrap()
        await store.create(Collection.USERS, make_user(id="u1"))
        await store.dispose()

        reopened = JsonFileEntityStore(tmp_path / "data")
        assert [u.id for u in await reopened.list(Collection.USERS)] == ["u1"]


class TestFileFormat:
    async def test_collection_is_indented_json_array(
        self,
        json_store: JsonFileEntityStore,
    ) -> None:
        await json_store.create(Collection.ORDERS, make_order(id="o1"))
        raw = json_store.path_for(Collection.ORDERS).read_text()
        assert raw.startswith("[\n  {")
        data = json.loads(raw)
        assert data[0]["id"] == "o1"
        assert data[0]["status"] == "received"

    async def test_unknown_fields_round_trip_through_the_file(
        self,
        json_store: JsonFileEntityStore,
    ) -> None:
        path = json_store.path_for(Collection.USERS)
        path.write_text(
            json.dumps([{"id": "u1", "email": "a@x.com", "favourite_detergent": "lemon"}])
        )
        await json_store.update(Collection.USERS, "u1", {"name": "Asha"})
        data = json.loads(path.read_text())
        assert data[0]["favourite_detergent"] == "lemon"
        assert data[0]["name"] == "Asha"

    async def test_no_temp_file_left_behind(self, json_store: JsonFileEntityStore) -> None:
        await json_store.create(Collection.USERS, make_user(id="u1"))
        assert not list(json_store.data_dir.glob("*.tmp"))

    async def test_missing_file_reads_as_empty(self, tmp_path: Path) -> None:
        store = JsonFileEntityStore(tmp_path / "never-bootstrapped")
        assert await store.list(Collection.TRACKING) == []


class TestCorruption:
    async def test_unparseable_file_degrades_to_empty(
        self,
        json_store: JsonFileEntityStore,
    ) -> None:
        json_store.path_for(Collection.ORDERS).write_text("{not json")
        assert await json_store.list(Collection.ORDERS) == []

    async def test_corrupt_file_is_quarantined(self, json_store: JsonFileEntityStore) -> None:
        json_store.path_for(Collection.ORDERS).write_text("{not json")
        await json_store.list(Collection.ORDERS)
        quarantined = list(json_store.data_dir.glob("orders.json.corrupt-*"))
        assert len(quarantined) == 1
        assert quarantined[0].read_text() == "{not json"

    async def test_non_list_top_level_is_corrupt(self, json_store: JsonFileEntityStore) -> None:
        json_store.path_for(Collection.USERS).write_text('{"id": "u1"}')
        assert await json_store.list(Collection.USERS) == []

    async def test_schema_invalid_record_is_corrupt(
        self,
        json_store: JsonFileEntityStore,
    ) -> None:
        json_store.path_for(Collection.ORDERS).write_text('[{"id": "o1"}]')
        assert await json_store.list(Collection.ORDERS) == []

    async def test_store_keeps_working_after_corruption(
        self,
        json_store: JsonFileEntityStore,
    ) -> None:
        json_store.path_for(Collection.ORDERS).write_text("garbage")
        await json_store.create(Collection.ORDERS, make_order(id="o2"))
        assert [o.id for o in await json_store.list(Collection.ORDERS)] == ["o2"]

    async def test_other_collections_unaffected(self, json_store: JsonFileEntityStore) -> None:
        await json_store.create(Collection.USERS, make_user(id="u1"))
        json_store.path_for(Collection.ORDERS).write_text("garbage")
        await json_store.list(Collection.ORDERS)
        assert len(await json_store.list(Collection.USERS)) == 1


class TestDuplicateIds:
    async def test_duplicate_create_leaves_file_untouched(
        self,
        json_store: JsonFileEntityStore,
    ) -> None:
        await json_store.create(Collection.ORDERS, make_order(id="o1"))
        before = json_store.path_for(Collection.ORDERS).read_bytes()
        with pytest.raises(DuplicateIdError):
            await json_store.create(Collection.ORDERS, make_order(id="o1", user_id="u9"))
        assert json_store.path_for(Collection.ORDERS).read_bytes() == before


_names = st.text(
    alphabet=st.characters(blacklist_categories=("Cs",)),
    max_size=30,
)


class TestRoundTripProperty:
    @given(
        names=st.lists(_names, max_size=8),
        extras=st.dictionaries(
            st.from_regex(r"x_[a-z]{1,8}", fullmatch=True),
            st.one_of(st.integers(), st.text(max_size=10), st.booleans(), st.none()),
            max_size=3,
        ),
    )
    @settings(
        max_examples=50,
        suppress_health_check=[HealthCheck.function_scoped_fixture],
    )
    def test_write_then_read_yields_equal_entities(
        self,
        tmp_path: Path,
        names: list[str],
        extras: dict[str, object],
    ) -> None:
        store = JsonFileEntityStore(tmp_path)
        users = [
            User(id=f"u{i}", email=f"user{i}@example.com", name=name, **extras)
            for i, name in enumerate(names)
        ]
        store._write_sync(
            Collection.USERS,
            json.dumps([u.model_dump(mode="json") for u in users], indent=2),
        )
        assert store._read_sync(Collection.USERS) == users

    def test_orders_round_trip(self, tmp_path: Path) -> None:
        store = JsonFileEntityStore(tmp_path)
        orders: list[Order] = [make_order(id="o1"), make_order(id="o2", note="fragile")]
        store._write_sync(
            Collection.ORDERS,
            json.dumps([o.model_dump(mode="json") for o in orders]),
        )
        assert store._read_sync(Collection.ORDERS) == orders
