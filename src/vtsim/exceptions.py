"""Exception taxonomy for the simulation engine.

ProtocolError marks misuse of an engine primitive and is always fatal.
StopSimulation is the one exception that ends a run as a normal outcome.
Anything else raised inside a process body is a user error and propagates
out of ``Environment.run()``.
"""

from typing import Any, Optional


class SimulationError(Exception):
    """Base class for all engine errors."""


class ProtocolError(SimulationError):
    """Invalid use of an engine primitive.

    Examples: releasing a resource that is not held, cancelling a request
    that was already granted, yielding something that is not an event,
    or passing a non-callable predicate to ``Store.get``.
    """


class EmptySchedule(SimulationError):
    """Raised by ``Environment.step()`` when no events are left."""


class StopSimulation(SimulationError):
    """Voluntary, clean termination of a run.

    Raise it from any process (or call ``env.exit()``) and ``run()``
    returns ``value`` at the current virtual time without processing
    further events.
    """

    def __init__(self, value: Any = None):
        super().__init__(value)
        self.value = value

    @classmethod
    def callback(cls, event) -> None:
        """Event callback used by ``run(until=event)``."""
        if event.ok:
            raise cls(event.value)
        raise event.value


class Interrupt(SimulationError):
    """Thrown into a process by ``Process.interrupt()``.

    The process may catch it and carry on; ``cause`` holds whatever the
    interrupting party passed along.
    """

    def __init__(self, cause: Optional[Any] = None):
        super().__init__(cause)

    @property
    def cause(self) -> Optional[Any]:
        """Reason given by the interrupting party."""
        return self.args[0]

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.cause!r})"
