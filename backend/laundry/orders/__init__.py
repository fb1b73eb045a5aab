"""Order lifecycle package.

Only the pure status types are re-exported here; entity models import
them, so the lifecycle itself lives at ``laundry.orders.lifecycle``.
"""

from laundry.orders.state_machine import OrderStatusMachine
from laundry.orders.types import (
    INITIAL_STATUS,
    STATUS_SEQUENCE,
    TERMINAL_STATES,
    OrderStatus,
)

__all__ = [
    "INITIAL_STATUS",
    "STATUS_SEQUENCE",
    "TERMINAL_STATES",
    "OrderStatus",
    "OrderStatusMachine",
]
