"""Store: a FIFO collection of discrete items.

Puts block while the store is full. Gets may carry a predicate; a get is
served with the oldest item it accepts. A get whose predicate matches
nothing does not hold back gets queued behind it.
"""

from typing import TYPE_CHECKING, Any, Callable, Optional

from vtsim.exceptions import ProtocolError
from vtsim.models.enums import TraceEventType
from vtsim.resources.base import BaseResource, Get, Put

if TYPE_CHECKING:
    from vtsim.core.environment import Environment

Infinity = float("inf")


class StorePut(Put):
    """Add ``item`` to a Store once there is room."""

    def __init__(self, store: "Store", item: Any):
        self.item = item
        super().__init__(store)


class StoreGet(Get):
    """Take the first item accepted by ``predicate`` (any item if None)."""

    def __init__(self, store: "Store", predicate: Optional[Callable[[Any], bool]] = None):
        if predicate is not None and not callable(predicate):
            raise ProtocolError(f"Store predicate {predicate!r} is not callable")
        self.predicate = predicate
        super().__init__(store)

    def accepts(self, item: Any) -> bool:
        return self.predicate is None or bool(self.predicate(item))


class Store(BaseResource):
    """Holds up to ``capacity`` items in insertion order."""

    get_blocking = False

    def __init__(self, env: "Environment", capacity: float = Infinity):
        if capacity <= 0:
            raise ValueError(f"capacity must be > 0, got {capacity}")
        super().__init__(env, capacity)
        self.items: list[Any] = []

    def __repr__(self) -> str:
        return f"<{self.name} {len(self.items)}/{self.capacity} items>"

    @property
    def level(self) -> int:
        """Number of items currently held."""
        return len(self.items)

    def put(self, item: Any) -> StorePut:
        return StorePut(self, item)

    def get(self, predicate: Optional[Callable[[Any], bool]] = None) -> StoreGet:
        """Request an item; ``predicate`` filters which items qualify."""
        return StoreGet(self, predicate)

    def _do_put(self, event: StorePut) -> bool:
        if len(self.items) >= self._capacity:
            return False
        self.items.append(event.item)
        event.succeed()
        self.env._record(
            TraceEventType.PUT_GRANTED,
            event.name,
            resource=self.name,
            item=event.item,
            level=len(self.items),
        )
        return True

    def _do_get(self, event: StoreGet) -> bool:
        for idx, item in enumerate(self.items):
            if event.accepts(item):
                del self.items[idx]
                event.succeed(item)
                self.env._record(
                    TraceEventType.GET_GRANTED,
                    event.name,
                    resource=self.name,
                    item=item,
                    level=len(self.items),
                )
                return True
        return False
