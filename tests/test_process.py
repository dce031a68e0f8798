"""Tests for processes and interrupts."""

import pytest

from vtsim.core import Environment, Process, spawn
from vtsim.exceptions import Interrupt, ProtocolError
from vtsim.models import EventState


class TestProcessLifecycle:
    def test_advances_immediately_on_spawn(self, env):
        """The body runs up to its first yield when the process is created."""
        log = []

        def body(env):
            log.append(("started", env.now))
            yield env.timeout(1)
            log.append(("resumed", env.now))

        spawn(env, body)
        assert log == [("started", 0)]

        env.run()
        assert log == [("started", 0), ("resumed", 1)]

    def test_return_value(self, env):
        """A process succeeds with the generator's return value."""

        def body(env):
            yield env.timeout(3)
            return 42

        process = spawn(env, body)
        assert process.is_alive

        assert env.run(until=process) == 42
        assert not process.is_alive
        assert process.value == 42
        assert env.now == 3

    def test_wait_for_other_process(self, env):
        """Processes are events other processes can yield."""
        log = []

        def child(env):
            yield env.timeout(2)
            return "child done"

        def parent(env):
            result = yield spawn(env, child)
            log.append((env.now, result))

        spawn(env, parent)
        env.run()

        assert log == [(2, "child done")]

    def test_body_without_yield(self, env):
        """A body that finishes before its first yield still completes."""

        def body(env):
            return "instant"
            yield

        process = spawn(env, body)
        assert not process.is_alive
        env.run()
        assert process.value == "instant"

    def test_default_name(self, env):
        """Process names default to the generator function's name."""

        def ambulance(env):
            yield env.timeout(1)

        assert spawn(env, ambulance).name.startswith("ambulance#")
        assert env.process(ambulance(env), name="amb_1").name == "amb_1"

    def test_target(self, env):
        """target is the event the process is waiting for."""
        timeout = env.timeout(5)

        def body(env):
            yield timeout

        process = spawn(env, body)
        assert process.target is timeout
        env.run()
        assert process.target is None

    def test_active_process(self, env):
        """active_process is the process whose body is running."""
        seen = []

        def body(env):
            seen.append(env.active_process)
            yield env.timeout(1)
            seen.append(env.active_process)

        process = spawn(env, body)
        env.run()

        assert seen == [process, process]
        assert env.active_process is None

    def test_yield_processed_event_resumes_immediately(self, env):
        """Yielding an event that was already processed does not wait."""
        log = []

        def body(env):
            timeout = env.timeout(1, value="v")
            yield timeout
            value = yield timeout
            log.append((env.now, value))

        spawn(env, body)
        env.run()

        assert log == [(1, "v")]

    def test_logger_bound_to_process(self, env):
        """Each process gets its own logger handle unless one is given."""

        def body(env):
            yield env.timeout(1)

        process = spawn(env, body)
        assert process.logger is not env.logger

        sentinel = env.logger.bind(component="custom")
        custom = Process(env, body(env), logger=sentinel)
        assert custom.logger is sentinel


class TestProcessErrors:
    def test_non_generator(self, env):
        """Only generators can become processes."""
        with pytest.raises(ProtocolError):
            env.process(lambda: None)

    def test_yield_non_event(self, env):
        """Yielding something that is not an event is a protocol error."""

        def body(env):
            yield 5

        with pytest.raises(ProtocolError):
            spawn(env, body)

    def test_yield_non_event_later(self, env):
        """The protocol error surfaces from run() once the process resumes."""

        def body(env):
            yield env.timeout(1)
            yield "not an event"

        spawn(env, body)
        with pytest.raises(ProtocolError):
            env.run()

    def test_yield_event_from_other_environment(self, env):
        """Events of another environment cannot be awaited."""
        other = Environment()

        def body(env):
            yield other.timeout(1)

        with pytest.raises(ProtocolError):
            spawn(env, body)

    def test_yield_cancelled_event(self, env):
        """Cancelled events cannot be awaited."""
        event = env.event()
        event.cancel()

        def body(env):
            yield event

        with pytest.raises(ProtocolError):
            spawn(env, body)

    def test_failed_event_is_thrown_into_generator(self, env):
        """A failed event raises inside the waiting process."""
        caught = []

        def body(env):
            event = env.event()
            event.fail(ValueError("bad"))
            try:
                yield event
            except ValueError as exc:
                caught.append(str(exc))

        spawn(env, body)
        env.run()

        assert caught == ["bad"]

    def test_awaited_process_failure_is_handled(self, env):
        """A failing child does not crash the run when its parent handles it."""
        caught = []

        def child(env):
            yield env.timeout(1)
            raise ValueError("child failed")

        def parent(env):
            try:
                yield spawn(env, child)
            except ValueError as exc:
                caught.append((env.now, str(exc)))

        spawn(env, parent)
        env.run()

        assert caught == [(1, "child failed")]

    def test_processes_cannot_be_cancelled(self, env):
        """Processes are stopped by interrupts, not cancel()."""

        def body(env):
            yield env.timeout(1)

        with pytest.raises(ProtocolError):
            spawn(env, body).cancel()

    def test_stop_simulation_finishes_process(self, env):
        """A process raising StopSimulation is finished, and run() returns."""

        def body(env):
            yield env.timeout(2)
            env.exit("bye")

        process = spawn(env, body)
        assert env.run() == "bye"
        assert not process.is_alive


class TestInterrupt:
    def test_interrupt_waiting_process(self, env):
        """The interrupt is thrown in at the current time with its cause."""
        log = []

        def sleeper(env):
            try:
                yield env.timeout(10)
                log.append("woke up normally")
            except Interrupt as interrupt:
                log.append((env.now, interrupt.cause))

        def interrupter(env, victim):
            yield env.timeout(3)
            victim.interrupt("wake up")

        victim = spawn(env, sleeper)
        spawn(env, interrupter, victim)
        env.run()

        assert log == [(3, "wake up")]

    def test_interrupter_can_wait_for_interrupt(self, env):
        """Yielding the interrupt resumes the interrupter at the same time,
        after the interrupted process has handled it."""
        log = []

        def vehicle(env):
            try:
                yield env.timeout(10)
            except Interrupt as interrupt:
                log.append(("vehicle", env.now, interrupt.cause))
            yield env.timeout(1)
            log.append(("vehicle", env.now, "parked"))

        def driver(env, vehicle_proc):
            yield env.timeout(3)
            cause = yield vehicle_proc.interrupt("human")
            log.append(("driver", env.now, cause))

        vehicle_proc = spawn(env, vehicle)
        spawn(env, driver, vehicle_proc)
        env.run()

        assert log == [
            ("vehicle", 3, "human"),
            ("driver", 3, "human"),
            ("vehicle", 4, "parked"),
        ]

    def test_interrupted_process_can_continue(self, env):
        """After handling an interrupt the process can wait again."""
        log = []

        def worker(env):
            while True:
                try:
                    yield env.timeout(5)
                    log.append(("done", env.now))
                    return
                except Interrupt:
                    log.append(("interrupted", env.now))

        def interrupter(env, victim):
            yield env.timeout(2)
            victim.interrupt()

        victim = spawn(env, worker)
        spawn(env, interrupter, victim)
        env.run()

        assert log == [("interrupted", 2), ("done", 7)]

    def test_uncaught_interrupt_propagates(self, env):
        """An interrupt the process does not handle fails it."""

        def sleeper(env):
            yield env.timeout(10)

        def interrupter(env, victim):
            yield env.timeout(1)
            victim.interrupt("stop")

        victim = spawn(env, sleeper)
        spawn(env, interrupter, victim)

        with pytest.raises(Interrupt) as exc_info:
            env.run()
        assert exc_info.value.cause == "stop"
        assert not victim.is_alive

    def test_interrupt_terminated_process(self, env):
        """Terminated processes cannot be interrupted."""

        def body(env):
            yield env.timeout(1)

        process = spawn(env, body)
        env.run()

        with pytest.raises(ProtocolError):
            process.interrupt()

    def test_self_interrupt(self, env):
        """A process may not interrupt itself."""

        def body(env):
            yield env.timeout(1)
            env.active_process.interrupt()

        spawn(env, body)
        with pytest.raises(ProtocolError):
            env.run()

    def test_interrupt_cause_str(self):
        """Interrupt renders its cause."""
        assert str(Interrupt("reason")) == "Interrupt('reason')"
        assert Interrupt().cause is None

    def test_interrupted_target_stays_untouched(self, env):
        """The event the process was waiting for still fires for others."""

        def sleeper(env, timeout):
            try:
                yield timeout
            except Interrupt:
                pass

        timeout = env.timeout(5)
        victim = spawn(env, sleeper, timeout)
        env.run(until=1)
        victim.interrupt()
        env.run()

        assert timeout.state is EventState.PROCESSED
        assert env.now == 5
