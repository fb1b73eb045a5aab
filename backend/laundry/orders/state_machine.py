"""Order status state machine -- pure transition logic with validation.

No I/O, no store access. Validates status transitions and raises on
invalid ones.
"""

from __future__ import annotations

from typing import ClassVar

from laundry.errors import InvalidTransitionError
from laundry.orders.types import STATUS_SEQUENCE, TERMINAL_STATES, OrderStatus


class OrderStatusMachine:
    """Pure state transition logic for the order lifecycle.

    Each non-terminal status has exactly one valid target: its immediate
    successor in STATUS_SEQUENCE. Raises InvalidTransitionError otherwise.
    """

    TRANSITIONS: ClassVar[dict[OrderStatus, OrderStatus]] = {
        current: following
        for current, following in zip(STATUS_SEQUENCE, STATUS_SEQUENCE[1:])
    }

    def __init__(self, status: OrderStatus) -> None:
        self._status = status

    @property
    def status(self) -> OrderStatus:
        """Current status."""
        return self._status

    @property
    def is_terminal(self) -> bool:
        """Whether the current status is terminal (no further transitions)."""
        return self._status in TERMINAL_STATES

    @property
    def next_status(self) -> OrderStatus | None:
        """Immediate successor, or None when terminal."""
        return self.TRANSITIONS.get(self._status)

    def transition(self, to: OrderStatus) -> None:
        """Validate and apply a status transition.

        Raises:
            InvalidTransitionError: If ``to`` is not the immediate successor.
        """
        if self.next_status is None or to != self.next_status:
            raise InvalidTransitionError(self._status.value, to.value)
        self._status = to

    def advance(self) -> OrderStatus:
        """Move to the immediate successor and return it.

        Raises:
            InvalidTransitionError: If the current status is terminal.
        """
        following = self.next_status
        if following is None:
            raise InvalidTransitionError(self._status.value, self._status.value)
        self._status = following
        return following
