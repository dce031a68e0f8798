"""Exclusive / capacity-limited resource with a priority wait queue.

Usage:
    staff = Resource(env, capacity=2)

    def customer(env, staff):
        with staff.request() as req:
            yield req
            yield env.timeout(5)
        # released on leaving the block (or cancelled if never granted)
"""

import bisect
from typing import TYPE_CHECKING, Optional

from vtsim.core.events import Event
from vtsim.exceptions import ProtocolError
from vtsim.models.enums import TraceEventType
from vtsim.resources.base import BaseResource, Get, Put

if TYPE_CHECKING:
    from vtsim.core.environment import Environment


class Request(Put):
    """Request for one unit of a Resource.

    Waiting requests are ordered by ``key``: priority (lower first), then
    submission time, then submission sequence.
    """

    def __init__(self, resource: "Resource", priority: int = 0):
        self.priority = priority if resource.priority_enabled else 0
        super().__init__(resource)

    @property
    def key(self) -> tuple[int, float, int]:
        return (self.priority, self.submitted_at, self.sequence)

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        if self in self.resource.users:
            self.resource.release(self)
        elif self.pending:
            self.resource.cancel(self)


class Release(Event):
    """Already-succeeded event returned by ``Resource.release``."""

    def __init__(self, resource: "Resource", request: Request):
        super().__init__(resource.env)
        self.resource = resource
        self.request = request
        self.succeed()


class Resource(BaseResource):
    """Up to ``capacity`` processes may hold the resource at once.

    Args:
        env: Environment the resource lives in
        capacity: Number of units (0 means requests can never be granted)
        priority_enabled: Order waiting requests by priority; when False
            every request is queued FIFO regardless of the priority passed
    """

    def __init__(
        self,
        env: "Environment",
        capacity: int = 1,
        priority_enabled: bool = False,
    ):
        super().__init__(env, capacity)
        self.priority_enabled = priority_enabled
        self.users: list[Request] = []

    def __repr__(self) -> str:
        return (
            f"<{self.name} {self.level}/{self.capacity} in use, "
            f"{len(self.queue)} waiting>"
        )

    @property
    def level(self) -> int:
        """Units currently held."""
        return len(self.users)

    @property
    def queue(self) -> list[Request]:
        """Pending requests in service order."""
        return self.put_queue

    def request(self, priority: int = 0) -> Request:
        """Request one unit; the returned event triggers when granted."""
        return Request(self, priority)

    def release(self, request: Optional[Request] = None) -> Release:
        """Give back one unit and grant waiting requests.

        Args:
            request: The granted request being released. If None, the
                longest-held unit is released.

        Raises:
            ProtocolError: If nothing is held, or ``request`` is not a
                current holder
        """
        if request is None:
            if not self.users:
                raise ProtocolError(f"Release of {self.name} without holding it")
            request = self.users[0]
        elif request not in self.users:
            raise ProtocolError(f"{request.name} does not hold {self.name}")

        self.users.remove(request)
        self.env._record(TraceEventType.RESOURCE_RELEASED, request.name, resource=self.name)
        release = Release(self, request)
        self._dispatch()
        return release

    def _enqueue(self, request: Request, queue: list) -> None:
        bisect.insort(queue, request, key=lambda r: r.key)

    def _do_put(self, request: Request) -> bool:
        if len(self.users) >= self._capacity:
            return False
        self.users.append(request)
        request.succeed()
        self.env._record(
            TraceEventType.REQUEST_GRANTED,
            request.name,
            resource=self.name,
            priority=request.priority,
        )
        return True

    def _do_get(self, event: Get) -> bool:
        """Resources never issue Gets; present to complete the BaseResource interface."""
        return False
