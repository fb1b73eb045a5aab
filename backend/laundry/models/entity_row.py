"""Per-entity storage table for the SQLite store backend.

Table: entity
"""

from __future__ import annotations

from sqlalchemy import Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from laundry.models.base import Base


class EntityRow(Base):
    """One entity of any collection, body kept as its JSON document."""

    __tablename__ = "entity"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    collection: Mapped[str] = mapped_column(String, nullable=False)
    entity_id: Mapped[str] = mapped_column(String, nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (
        UniqueConstraint("collection", "entity_id", name="uq_entity_collection_id"),
        Index("ix_entity_collection", "collection"),
    )
