"""Tests for Container."""

import pytest

from vtsim.core import spawn
from vtsim.exceptions import ProtocolError
from vtsim.resources import Container


class TestContainerConstruction:
    def test_defaults(self, env):
        """Unbounded and empty by default."""
        container = Container(env)
        assert container.capacity == float("inf")
        assert container.level == 0

    @pytest.mark.parametrize("capacity, init", [(0, 0), (-5, 0), (10, 11), (10, -1)])
    def test_invalid_arguments(self, env, capacity, init):
        """Capacity must be positive and init within [0, capacity]."""
        with pytest.raises(ValueError):
            Container(env, capacity=capacity, init=init)

    def test_amount_must_be_positive(self, env):
        """Zero or negative amounts are rejected."""
        container = Container(env, capacity=10, init=5)
        with pytest.raises(ValueError):
            container.put(0)
        with pytest.raises(ValueError):
            container.get(-1)


class TestContainerFlow:
    def test_immediate_get(self, env):
        """A get that can be served is granted at once with its amount."""
        container = Container(env, capacity=10, init=5)
        get = container.get(3)
        env.run()

        assert get.value == 3
        assert container.level == 2

    def test_get_waits_for_put(self, env):
        """A get blocks until enough has been put."""
        container = Container(env, capacity=10)
        get = container.get(4)
        assert get.pending

        container.put(5)
        assert get.triggered
        assert container.level == 1

    def test_put_waits_for_room(self, env):
        """A put blocks while it would overflow the container."""
        container = Container(env, capacity=10, init=8)
        put = container.put(5)
        assert put.pending

        container.get(4)
        assert put.triggered
        assert container.level == 9

    def test_no_partial_grants(self, env):
        """Requests are served in full or not at all."""
        container = Container(env, capacity=10, init=3)
        get = container.get(5)
        assert get.pending
        assert container.level == 3

    def test_head_of_line_blocking(self, env):
        """A large get at the head of the queue holds back smaller ones."""
        container = Container(env, capacity=10)
        big = container.get(5)
        small = container.get(1)

        container.put(2)
        assert big.pending and small.pending
        assert container.level == 2

        container.put(3)
        assert big.triggered
        assert small.pending
        assert container.level == 0

        container.put(1)
        assert small.triggered

    def test_get_larger_than_capacity_never_completes(self, env):
        """A get that cannot fit blocks its queue until cancelled."""
        container = Container(env, capacity=5)
        impossible = container.get(6)
        small = container.get(1)
        container.put(3)
        env.run()

        assert impossible.pending
        assert small.pending

        impossible.cancel()
        assert small.triggered
        assert container.level == 2

    def test_cancel_granted_request(self, env):
        """Granted puts cannot be cancelled."""
        container = Container(env, capacity=5)
        put = container.put(1)
        with pytest.raises(ProtocolError):
            container.cancel(put)

    def test_level_stays_within_bounds(self, env):
        """Producers and consumers never push the level outside [0, capacity]."""
        container = Container(env, capacity=10, init=5)
        levels = []

        def producer(env):
            for _ in range(20):
                yield container.put(3)
                levels.append(container.level)
                yield env.timeout(1)

        def consumer(env):
            for _ in range(20):
                yield container.get(3)
                levels.append(container.level)
                yield env.timeout(1.5)

        spawn(env, producer)
        spawn(env, consumer)
        env.run()

        assert levels
        assert all(0 <= level <= 10 for level in levels)
        assert container.level == 5

    def test_refueling(self, env):
        """Cars wait at an empty pump until the tanker refills it."""
        pump = Container(env, capacity=100, init=10)
        log = []

        def car(env, name, liters):
            yield pump.get(liters)
            log.append((name, env.now))

        def tanker(env):
            yield env.timeout(5)
            yield pump.put(90)

        spawn(env, car, "a", 10)
        spawn(env, car, "b", 30)
        spawn(env, tanker)
        env.run()

        assert log == [("a", 0), ("b", 5)]
        assert pump.level == 60
