"""Virtual-time scheduler.

The Environment owns the simulation clock and the event queue. Events are
keyed by (due time, insertion sequence), so events due at the same time
are processed in the order they were scheduled. That ordering, together
with a seeded random stream, is what makes a run replayable.

Usage:
    env = Environment(seed=42)
    env.process(my_body(env))
    env.run(until=100)
"""

import inspect
import random
from heapq import heappop, heappush
from itertools import count
from typing import Any, Generator, Iterable, Optional, Union

from loguru import logger as _logger

from vtsim.core.events import AllOf, AnyOf, Event, Timeout
from vtsim.core.process import Process
from vtsim.exceptions import EmptySchedule, ProtocolError, SimulationError, StopSimulation
from vtsim.models.config import SimulationConfig
from vtsim.models.enums import EventState, TraceEventType
from vtsim.simulation.trace import EventTrace

Infinity = float("inf")


class Environment:
    """Execution environment for one simulation run.

    Args:
        initial_time: Virtual time at which the clock starts
        seed: Seed for ``env.rng``, the run's random stream
        logger: Logger handle; defaults to the loguru logger bound to
            ``component="Environment"``. Records logged through it carry
            the virtual time as ``extra["sim_time"]``.
        trace: Optional EventTrace receiving a record for every processed
            event and primitive state change
    """

    def __init__(
        self,
        initial_time: float = 0.0,
        *,
        seed: Optional[int] = None,
        logger=None,
        trace: Optional[EventTrace] = None,
    ):
        self._now = initial_time
        self._queue: list[tuple[float, int, Event]] = []
        self._eid = count()
        self._ids = count(1)
        self._active_process: Optional[Process] = None

        self.seed = seed
        self.rng = random.Random(seed)
        if logger is None:
            logger = _logger.bind(component="Environment")
        self.logger = logger.patch(self._stamp_time)
        self.trace = trace

    @classmethod
    def from_config(cls, config: SimulationConfig, logger=None) -> "Environment":
        """Build an environment from a SimulationConfig."""
        return cls(
            config.start_time,
            seed=config.random_seed,
            logger=logger,
            trace=EventTrace() if config.record_trace else None,
        )

    def __repr__(self) -> str:
        return f"<Environment now={self._now} queued={len(self._queue)}>"

    @property
    def now(self) -> float:
        """Current virtual time."""
        return self._now

    @property
    def active_process(self) -> Optional[Process]:
        """The process whose body is currently executing, if any."""
        return self._active_process

    def _stamp_time(self, record: dict) -> None:
        record["extra"]["sim_time"] = self._now

    def _next_id(self) -> int:
        return next(self._ids)

    def _record(self, record_type: TraceEventType, entity_id: str, **details: Any) -> None:
        if self.trace is not None:
            self.trace.log(self._now, record_type, entity_id, **details)

    # === Factories ===

    def event(self, name: Optional[str] = None) -> Event:
        """Create a plain event to be triggered manually."""
        return Event(self, name)

    def timeout(self, delay: float, value: Any = None) -> Timeout:
        """Create an event that succeeds after ``delay``."""
        return Timeout(self, delay, value)

    def process(self, generator: Generator, name: Optional[str] = None) -> Process:
        """Start a process running ``generator``."""
        return Process(self, generator, name=name)

    def all_of(self, events: Iterable[Event]) -> AllOf:
        return AllOf(self, events)

    def any_of(self, events: Iterable[Event]) -> AnyOf:
        return AnyOf(self, events)

    def exit(self, value: Any = None) -> None:
        """Stop the run cleanly; ``run()`` returns ``value``."""
        raise StopSimulation(value)

    # === Scheduling ===

    def schedule(self, event: Event, delay: float = 0) -> None:
        """Queue ``event`` to be processed ``delay`` time units from now."""
        if delay < 0:
            raise ValueError(f"Negative delay {delay}")
        heappush(self._queue, (self._now + delay, next(self._eid), event))

    def _discard_cancelled(self) -> None:
        while self._queue and self._queue[0][2].state is EventState.CANCELLED:
            heappop(self._queue)

    def peek(self) -> float:
        """Due time of the next live event, or infinity if none is left."""
        self._discard_cancelled()
        if self._queue:
            return self._queue[0][0]
        return Infinity

    def step(self) -> None:
        """Process the next event.

        Raises:
            EmptySchedule: If no events are left
            Exception: The failure of an event nobody handled
        """
        self._discard_cancelled()
        try:
            self._now, _, event = heappop(self._queue)
        except IndexError:
            raise EmptySchedule() from None

        # A due timeout becomes triggered here; succeed()/fail() events already are
        if event.state is EventState.IDLE:
            event.state = EventState.TRIGGERED

        callbacks, event.callbacks = event.callbacks, []
        event.state = EventState.PROCESSED
        self._record(TraceEventType.EVENT_PROCESSED, event.name, ok=event._ok)

        for callback in callbacks:
            callback(event)

        if not event._ok and not event.defused:
            raise event._value

    def run(self, until: Union[None, float, Event] = None) -> Any:
        """Run until a stopping condition holds.

        Args:
            until: None to run until no events are left; a time to process
                every event due strictly before it and then set the clock to
                it; or an event to run until that event has been processed

        Returns:
            The value passed to StopSimulation if the run was stopped, the
            value of ``until`` if it was an event, otherwise None
        """
        self._record(TraceEventType.SIMULATION_STARTED, "Environment", until=until)

        if until is not None and not isinstance(until, Event):
            at = float(until)
            if at <= self._now:
                raise ValueError(
                    f"until ({at}) must be greater than the current simulation time ({self._now})"
                )
            return self._run_until_time(at)

        if isinstance(until, Event):
            if until.env is not self:
                raise ProtocolError(f"{until.name} belongs to another environment")
            if until.processed:
                return until.value
            if until.cancelled:
                raise ProtocolError(f"Cannot run until {until.name}: it has been cancelled")
            until.callbacks.append(StopSimulation.callback)

        try:
            while True:
                self.step()
        except StopSimulation as stop:
            self._stopped(stop)
            return stop.value
        except EmptySchedule:
            if until is not None:
                raise SimulationError(
                    f'No scheduled events left but "until" event was not processed: {until!r}'
                ) from None
        finally:
            # A run that ends before ``until`` must not leave it armed for the next one
            if until is not None and StopSimulation.callback in until.callbacks:
                until.callbacks.remove(StopSimulation.callback)
        self._record(TraceEventType.SIMULATION_ENDED, "Environment")
        return None

    def _run_until_time(self, at: float) -> Any:
        try:
            while self.peek() < at:
                self.step()
        except StopSimulation as stop:
            self._stopped(stop)
            return stop.value
        self._now = at
        self._record(TraceEventType.SIMULATION_ENDED, "Environment")
        return None

    def _stopped(self, stop: StopSimulation) -> None:
        self._record(TraceEventType.SIMULATION_STOPPED, "Environment", value=stop.value)
        self.logger.debug("Simulation stopped ({!r})", stop.value)


def spawn(env: Environment, body, *args: Any, **kwargs: Any) -> Process:
    """Start a process in ``env``.

    ``body`` is either a generator, or a generator function that is called
    as ``body(env, *args, **kwargs)``.
    """
    if not inspect.isgenerator(body):
        body = body(env, *args, **kwargs)
    return env.process(body)


def run(env: Environment, until: Union[None, float, Event] = None) -> Any:
    """Run ``env``; see ``Environment.run``."""
    return env.run(until)
