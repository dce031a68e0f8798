"""Processes: generators driven by events.

A process body is a generator that yields events. The process subscribes
to each yielded event and is resumed, at the same virtual time, once that
event is processed. The Process is itself an event, so other processes
can wait for it to finish.
"""

import inspect
from typing import TYPE_CHECKING, Any, Generator, Optional

from vtsim.core.events import PENDING, Event
from vtsim.exceptions import Interrupt, ProtocolError, StopSimulation
from vtsim.models.enums import EventState, TraceEventType

if TYPE_CHECKING:
    from vtsim.core.environment import Environment


class Process(Event):
    """Wraps a generator and advances it as its yielded events are processed.

    The generator is advanced to its first yield (or to completion) as
    soon as the process is created. When it returns, the process succeeds
    with the return value; when it raises, the process fails with the
    exception.

    Args:
        env: Environment to run in
        generator: The process body
        name: Identifier for traces and logs (defaults to the generator
            function's name with a per-environment counter)
        logger: Logger handle (defaults to the environment's logger bound
            to this process's name)
    """

    def __init__(
        self,
        env: "Environment",
        generator: Generator,
        name: Optional[str] = None,
        logger=None,
    ):
        if not inspect.isgenerator(generator):
            raise ProtocolError(f"{generator!r} is not a generator")

        if name is None:
            name = f"{generator.__name__}#{env._next_id()}"
        super().__init__(env, name)

        self._generator = generator
        self._target: Optional[Event] = None
        self.logger = logger if logger is not None else env.logger.bind(component=self.name)

        env._record(TraceEventType.PROCESS_STARTED, self.name)
        self._resume(None)

    def __repr__(self) -> str:
        status = "alive" if self.is_alive else self.state.value
        return f"<Process {self.name} {status}>"

    @property
    def target(self) -> Optional[Event]:
        """The event the process is currently waiting for."""
        return self._target

    @property
    def is_alive(self) -> bool:
        """False once the generator has returned or raised."""
        return self._value is PENDING

    def cancel(self) -> None:
        raise ProtocolError(
            f"Processes cannot be cancelled; interrupt {self.name} instead"
        )

    def interrupt(self, cause: Any = None) -> "Interruption":
        """Throw an Interrupt into this process at the current time.

        The process stops waiting for its current target. A terminated
        process cannot be interrupted, and a process cannot interrupt
        itself.

        Returns:
            The Interruption event. The interrupter may yield it to resume
            once the interrupted process has handled the Interrupt.
        """
        if not self.is_alive:
            raise ProtocolError(f"{self.name} has terminated and cannot be interrupted")
        if self is self.env.active_process:
            raise ProtocolError("A process is not allowed to interrupt itself")
        return Interruption(self, cause)

    def _resume(self, event: Optional[Event]) -> None:
        """Send the outcome of ``event`` into the generator and wait again.

        ``event`` is None on the initial advance. Loops while the generator
        keeps yielding events that have already been processed.
        """
        env = self.env
        previous, env._active_process = env._active_process, self
        try:
            while True:
                try:
                    if event is None:
                        target = self._generator.send(None)
                    elif isinstance(event, Interruption) and event.process is self:
                        target = self._generator.throw(Interrupt(event.cause))
                    elif event._ok:
                        target = self._generator.send(event._value)
                    else:
                        event.defused = True
                        target = self._generator.throw(event._value)
                except StopIteration as stop:
                    self._finish(True, stop.value)
                    return
                except StopSimulation as stop:
                    self._finish(True, stop.value)
                    raise
                except Exception as exc:
                    self._finish(False, exc)
                    return

                if not isinstance(target, Event):
                    self._generator.close()
                    raise ProtocolError(
                        f"{self.name} yielded {target!r}, which is not an event"
                    )
                if target.env is not env:
                    self._generator.close()
                    raise ProtocolError(
                        f"{self.name} yielded {target.name} from another environment"
                    )
                if target.cancelled:
                    self._generator.close()
                    raise ProtocolError(
                        f"{self.name} yielded {target.name}, which has been cancelled"
                    )

                if target.state is EventState.PROCESSED:
                    event = target
                    continue

                target.callbacks.append(self._resume)
                self._target = target
                return
        finally:
            env._active_process = previous

    def _finish(self, ok: bool, value: Any) -> None:
        self._target = None
        self._generator = None
        if ok:
            self.env._record(TraceEventType.PROCESS_FINISHED, self.name)
            self.succeed(value)
        else:
            self.env._record(
                TraceEventType.PROCESS_FAILED,
                self.name,
                error=type(value).__name__,
            )
            self.logger.debug("{} failed with {!r}", self.name, value)
            self.fail(value)


class Interruption(Event):
    """Delivers an Interrupt to a process at the current time.

    The event itself succeeds with ``cause``; only the interrupted process
    sees the Interrupt.
    """

    def __init__(self, process: Process, cause: Any):
        super().__init__(process.env)
        self.process = process
        self.cause = cause
        self.callbacks.append(self._interrupt)
        self.succeed(cause)

    def _interrupt(self, event: Event) -> None:
        process = self.process
        if not process.is_alive:
            return

        target = process._target
        if target is not None and process._resume in target.callbacks:
            target.callbacks.remove(process._resume)
        process._target = None

        self.env._record(
            TraceEventType.PROCESS_INTERRUPTED,
            process.name,
            cause=self.cause,
        )
        process._resume(self)
