"""Entity store package.

Re-exports the protocol and both backends:
    from laundry.store import EntityStore, JsonFileEntityStore, build_store
"""

from laundry.config import StoreConfig
from laundry.store.entity_store import EntityStore
from laundry.store.json_store import JsonFileEntityStore
from laundry.store.sql_store import SqlEntityStore


def build_store(config: StoreConfig) -> EntityStore:
    """Instantiate the backend selected by configuration."""
    if config.backend == "sqlite":
        return SqlEntityStore.from_path(config.db_path)
    return JsonFileEntityStore(config.data_dir)


__all__ = [
    "EntityStore",
    "JsonFileEntityStore",
    "SqlEntityStore",
    "build_store",
]
