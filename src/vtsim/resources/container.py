"""Container: a homogeneous, divisible quantity (fuel, blood units, parts).

Puts and gets are served FIFO with head-of-line blocking on both sides: a
large put waiting for room holds back smaller puts queued behind it, and
the same for gets.
"""

from typing import TYPE_CHECKING

from vtsim.models.enums import TraceEventType
from vtsim.resources.base import BaseResource, Get, Put

if TYPE_CHECKING:
    from vtsim.core.environment import Environment

Infinity = float("inf")


def _check_amount(amount: float) -> None:
    if amount <= 0:
        raise ValueError(f"amount must be > 0, got {amount}")


class ContainerPut(Put):
    """Deposit ``amount`` into a Container once there is room for it."""

    def __init__(self, container: "Container", amount: float):
        _check_amount(amount)
        self.amount = amount
        super().__init__(container)


class ContainerGet(Get):
    """Withdraw ``amount`` from a Container once that much is available."""

    def __init__(self, container: "Container", amount: float):
        _check_amount(amount)
        self.amount = amount
        super().__init__(container)


class Container(BaseResource):
    """Holds a level between 0 and ``capacity``.

    Args:
        env: Environment the container lives in
        capacity: Maximum level (unbounded by default)
        init: Initial level
    """

    def __init__(
        self,
        env: "Environment",
        capacity: float = Infinity,
        init: float = 0,
    ):
        if capacity <= 0:
            raise ValueError(f"capacity must be > 0, got {capacity}")
        if init < 0 or init > capacity:
            raise ValueError(f"init must be within [0, {capacity}], got {init}")
        super().__init__(env, capacity)
        self._level = init

    def __repr__(self) -> str:
        return f"<{self.name} level={self._level}/{self.capacity}>"

    @property
    def level(self) -> float:
        """Amount currently held."""
        return self._level

    def put(self, amount: float) -> ContainerPut:
        return ContainerPut(self, amount)

    def get(self, amount: float) -> ContainerGet:
        return ContainerGet(self, amount)

    def _do_put(self, event: ContainerPut) -> bool:
        if self._capacity - self._level < event.amount:
            return False
        self._level += event.amount
        event.succeed()
        self.env._record(
            TraceEventType.PUT_GRANTED,
            event.name,
            resource=self.name,
            amount=event.amount,
            level=self._level,
        )
        return True

    def _do_get(self, event: ContainerGet) -> bool:
        if self._level < event.amount:
            return False
        self._level -= event.amount
        event.succeed(event.amount)
        self.env._record(
            TraceEventType.GET_GRANTED,
            event.name,
            resource=self.name,
            amount=event.amount,
            level=self._level,
        )
        return True
