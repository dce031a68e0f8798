"""Put/get queue machinery shared by Resource, Container and Store.

Every request against a shared primitive is an event. A request that can
be served at once is triggered immediately; otherwise it waits in the put
or get queue. Each successful put or get re-runs the dispatch loop, so a
release or put that frees capacity grants waiting requests in one
synchronous cascade, without virtual time passing.
"""

from typing import TYPE_CHECKING

from vtsim.core.events import PENDING, Event
from vtsim.exceptions import ProtocolError
from vtsim.models.enums import EventState, TraceEventType

if TYPE_CHECKING:
    from vtsim.core.environment import Environment


class _QueuedRequest(Event):
    """A request waiting on a shared primitive."""

    def __init__(self, resource: "BaseResource"):
        super().__init__(resource.env)
        self.resource = resource
        self.proc = self.env.active_process
        self.submitted_at = self.env.now
        self.sequence = self.env._next_id()

    @property
    def pending(self) -> bool:
        """Neither granted nor cancelled yet."""
        return self.state is EventState.IDLE and self._value is PENDING

    def cancel(self) -> None:
        """Withdraw this request; see ``BaseResource.cancel``."""
        self.resource.cancel(self)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        if self.pending:
            self.resource.cancel(self)


class Put(_QueuedRequest):
    """Request to add to a primitive (acquire a slot, deposit, store an item)."""

    def __init__(self, resource: "BaseResource"):
        super().__init__(resource)
        resource._submit(self, resource.put_queue)


class Get(_QueuedRequest):
    """Request to take from a primitive (withdraw an amount, fetch an item)."""

    def __init__(self, resource: "BaseResource"):
        super().__init__(resource)
        resource._submit(self, resource.get_queue)


class BaseResource:
    """Base class for shared primitives with put and get queues.

    Subclasses implement ``_do_put`` and ``_do_get``, which try to serve a
    single request and return True if it was granted. ``put_blocking`` and
    ``get_blocking`` select head-of-line blocking: when set, serving a
    queue stops at the first request that cannot be granted.
    """

    put_blocking = True
    get_blocking = True

    def __init__(self, env: "Environment", capacity: float):
        if capacity < 0:
            raise ValueError(f"capacity must be >= 0, got {capacity}")
        self.env = env
        self._capacity = capacity
        self.name = f"{type(self).__name__}#{env._next_id()}"
        self.logger = env.logger.bind(component=self.name)
        self.put_queue: list[Put] = []
        self.get_queue: list[Get] = []

    @property
    def capacity(self) -> float:
        """Maximum capacity of the primitive."""
        return self._capacity

    def cancel(self, request: _QueuedRequest) -> None:
        """Withdraw a pending request from its queue.

        Raises:
            ProtocolError: If the request belongs to another primitive or
                is no longer pending (granted or already cancelled)
        """
        if request.resource is not self:
            raise ProtocolError(f"{request.name} was not issued by {self.name}")
        if not request.pending:
            raise ProtocolError(
                f"Cannot cancel {request.name}: it is no longer pending "
                f"({request.state.value})"
            )

        queue = self.put_queue if isinstance(request, Put) else self.get_queue
        queue.remove(request)
        request.state = EventState.CANCELLED
        self.env._record(TraceEventType.REQUEST_CANCELLED, request.name, resource=self.name)
        self.logger.debug("{} cancelled", request.name)

        # The cancelled request may have been blocking the head of its queue
        self._dispatch()

    def _enqueue(self, request: _QueuedRequest, queue: list) -> None:
        queue.append(request)

    def _submit(self, request: _QueuedRequest, queue: list) -> None:
        self.env._record(TraceEventType.REQUEST_SUBMITTED, request.name, resource=self.name)
        self._enqueue(request, queue)
        self._dispatch()

    def _dispatch(self) -> None:
        """Serve both queues until neither can make progress."""
        progress = True
        while progress:
            progress = self._serve(self.put_queue, self._do_put, self.put_blocking)
            progress = self._serve(self.get_queue, self._do_get, self.get_blocking) or progress

    @staticmethod
    def _serve(queue: list, do, blocking: bool) -> bool:
        served = False
        idx = 0
        while idx < len(queue):
            request = queue[idx]
            if do(request):
                queue.pop(idx)
                served = True
            elif blocking:
                break
            else:
                idx += 1
        return served

    def _do_put(self, event: Put) -> bool:
        raise NotImplementedError(self)

    def _do_get(self, event: Get) -> bool:
        raise NotImplementedError(self)
