"""Events, timeouts and event combinators.

An Event is the unit of scheduling state. Processes wait for events by
yielding them; shared primitives hand out events for every request; the
Environment processes them in (time, insertion sequence) order and runs
their callbacks.

State machine (see ``EventState``)::

    IDLE --succeed()/fail()--> TRIGGERED --step()--> PROCESSED
    IDLE/TRIGGERED --cancel()--> CANCELLED

A Timeout is created with its outcome already fixed but stays IDLE until
the scheduler reaches its due time.
"""

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Callable, Iterable, Iterator, Optional

from vtsim.exceptions import ProtocolError
from vtsim.models.enums import EventState, TraceEventType

if TYPE_CHECKING:
    from vtsim.core.environment import Environment


PENDING = object()
"""Sentinel for an event whose outcome has not been decided"""

Callback = Callable[["Event"], None]


class Event:
    """A single occurrence that processes can wait for.

    Args:
        env: Environment the event belongs to
        name: Identifier used in traces and logs (defaults to
            ``<ClassName>#<n>`` with a per-environment counter)
    """

    def __init__(self, env: "Environment", name: Optional[str] = None):
        self.env = env
        self.name = name or f"{type(self).__name__}#{env._next_id()}"
        self.callbacks: list[Callback] = []
        self.state = EventState.IDLE
        self.defused = False
        """Set once a failure has been handled by a waiting process"""
        self._value: Any = PENDING
        self._ok = True

    def __repr__(self) -> str:
        return f"<{self.name} {self.state.value}>"

    # === State ===

    @property
    def triggered(self) -> bool:
        """Outcome is fixed and due (state TRIGGERED or PROCESSED)."""
        return self.state in (EventState.TRIGGERED, EventState.PROCESSED)

    @property
    def processed(self) -> bool:
        """Callbacks have run."""
        return self.state is EventState.PROCESSED

    @property
    def cancelled(self) -> bool:
        return self.state is EventState.CANCELLED

    @property
    def ok(self) -> bool:
        """Whether the event succeeded. Only defined once it has an outcome."""
        if self._value is PENDING:
            raise ProtocolError(f"{self.name} has no outcome yet")
        return self._ok

    @property
    def value(self) -> Any:
        """Value the event succeeded with, or the exception it failed with."""
        if self._value is PENDING:
            raise ProtocolError(f"Value of {self.name} is not yet available")
        return self._value

    # === Transitions ===

    def succeed(self, value: Any = None) -> "Event":
        """Fix a successful outcome and schedule the event for now."""
        self._check_can_trigger()
        self._ok = True
        self._value = value
        self.state = EventState.TRIGGERED
        self.env.schedule(self)
        return self

    def fail(self, exception: BaseException) -> "Event":
        """Fix a failed outcome; waiting processes get ``exception`` thrown in."""
        if not isinstance(exception, BaseException):
            raise ProtocolError(f"{exception!r} is not an exception")
        self._check_can_trigger()
        self._ok = False
        self._value = exception
        self.state = EventState.TRIGGERED
        self.env.schedule(self)
        return self

    def cancel(self) -> None:
        """Withdraw the event before it is processed.

        A cancelled event never runs its callbacks; anything waiting on it
        is not resumed. Cancelling a processed or already cancelled event is
        a ProtocolError.
        """
        if self.state in (EventState.PROCESSED, EventState.CANCELLED):
            raise ProtocolError(
                f"Cannot cancel {self.name}: it is already {self.state.value}"
            )
        self.state = EventState.CANCELLED
        self.env._record(TraceEventType.EVENT_CANCELLED, self.name)

    def _check_can_trigger(self) -> None:
        if self.state is EventState.CANCELLED:
            raise ProtocolError(f"{self.name} has been cancelled")
        if self._value is not PENDING:
            raise ProtocolError(f"{self.name} has already been triggered")

    # === Combinators ===

    def __and__(self, other: "Event") -> "AllOf":
        return AllOf(self.env, [self, other])

    def __or__(self, other: "Event") -> "AnyOf":
        return AnyOf(self.env, [self, other])


class Timeout(Event):
    """An event that succeeds after ``delay`` units of virtual time."""

    def __init__(
        self,
        env: "Environment",
        delay: float,
        value: Any = None,
        name: Optional[str] = None,
    ):
        if delay < 0:
            raise ValueError(f"Negative delay {delay}")
        super().__init__(env, name)
        self.delay = delay
        self._ok = True
        self._value = value
        env.schedule(self, delay)

    def __repr__(self) -> str:
        return f"<{self.name} delay={self.delay} {self.state.value}>"


class ConditionValue(Mapping):
    """Result of an AllOf/AnyOf: every sub-event mapped to its state.

    States are snapshotted when the condition itself is processed. Several
    sub-events can be due at the same instant, so all of them show up in
    ``winners``; deciding between them is up to the caller.
    """

    def __init__(self, events: Iterable[Event] = ()):
        self.events = tuple(events)
        self._states = {event: event.state for event in self.events}

    def __getitem__(self, event: Event) -> EventState:
        try:
            return self._states[event]
        except KeyError:
            raise KeyError(f"{event!r} is not part of this condition") from None

    def __iter__(self) -> Iterator[Event]:
        return iter(self.events)

    def __len__(self) -> int:
        return len(self.events)

    @property
    def winners(self) -> list[Event]:
        """Sub-events that had triggered, in the order they were given."""
        return [
            e for e in self.events
            if self._states[e] in (EventState.TRIGGERED, EventState.PROCESSED)
        ]

    def todict(self) -> dict[Event, Any]:
        """Map each winning sub-event to its value."""
        return {e: e._value for e in self.winners}

    def __repr__(self) -> str:
        states = ", ".join(f"{e.name}: {s.value}" for e, s in self._states.items())
        return f"<ConditionValue {{{states}}}>"


class Condition(Event):
    """Event that triggers once ``evaluate(events, count)`` holds.

    ``count`` is the number of sub-events processed so far. If any
    sub-event fails, the condition fails with the same exception.
    """

    def __init__(
        self,
        env: "Environment",
        evaluate: Callable[[tuple[Event, ...], int], bool],
        events: Iterable[Event],
    ):
        super().__init__(env)
        self._evaluate = evaluate
        self._events = tuple(events)
        self._count = 0

        for event in self._events:
            if event.env is not env:
                raise ProtocolError(
                    "It is not allowed to mix events from different environments"
                )

        # Must run before any waiting process is resumed
        self.callbacks.append(self._build_value)

        if not self._events:
            self.succeed()
            return

        for event in self._events:
            if self._value is not PENDING:
                break
            if event.processed:
                self._check(event)
            elif not event.cancelled:
                event.callbacks.append(self._check)

    @property
    def events(self) -> tuple[Event, ...]:
        return self._events

    def _build_value(self, event: Event) -> None:
        self._remove_check_callbacks()
        if event._ok:
            self._value = ConditionValue(self._events)

    def _remove_check_callbacks(self) -> None:
        for event in self._events:
            if self._check in event.callbacks:
                event.callbacks.remove(self._check)

    def _check(self, event: Event) -> None:
        if self._value is not PENDING or self.cancelled:
            return
        self._count += 1
        if not event._ok:
            event.defused = True
            self.fail(event._value)
        elif self._evaluate(self._events, self._count):
            self.succeed()

    @staticmethod
    def all_events(events: tuple[Event, ...], count: int) -> bool:
        return len(events) == count

    @staticmethod
    def any_events(events: tuple[Event, ...], count: int) -> bool:
        return count > 0 or len(events) == 0


class AllOf(Condition):
    """Triggers once every sub-event has been processed, at max(t_i)."""

    def __init__(self, env: "Environment", events: Iterable[Event]):
        super().__init__(env, Condition.all_events, events)


class AnyOf(Condition):
    """Triggers as soon as one sub-event has been processed, at min(t_i)."""

    def __init__(self, env: "Environment", events: Iterable[Event]):
        super().__init__(env, Condition.any_events, events)
