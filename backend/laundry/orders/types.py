"""Order domain types shared across the order lifecycle."""

from __future__ import annotations

from enum import Enum


class OrderStatus(str, Enum):
    """Order lifecycle states. Values are used verbatim in filters/search."""

    RECEIVED = "received"
    WASHING = "washing"
    DRYING = "drying"
    FOLDING = "folding"
    READY_FOR_PICKUP = "ready-for-pickup"
    COMPLETED = "completed"


# Strict forward order; no skipping, no going back.
STATUS_SEQUENCE: tuple[OrderStatus, ...] = (
    OrderStatus.RECEIVED,
    OrderStatus.WASHING,
    OrderStatus.DRYING,
    OrderStatus.FOLDING,
    OrderStatus.READY_FOR_PICKUP,
    OrderStatus.COMPLETED,
)

INITIAL_STATUS = OrderStatus.RECEIVED

TERMINAL_STATES = frozenset({OrderStatus.COMPLETED})
