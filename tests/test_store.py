"""Tests for Store."""

import pytest

from vtsim.core import spawn
from vtsim.exceptions import ProtocolError
from vtsim.resources import Store


class TestStore:
    def test_fifo_items(self, env):
        """Items come out in the order they went in."""
        store = Store(env)
        for item in "abc":
            store.put(item)
        gets = [store.get() for _ in range(3)]
        env.run()

        assert [g.value for g in gets] == ["a", "b", "c"]
        assert store.items == []

    def test_get_waits_for_put(self, env):
        """A get on an empty store blocks until an item arrives."""
        store = Store(env)
        log = []

        def consumer(env):
            item = yield store.get()
            log.append((item, env.now))

        def producer(env):
            yield env.timeout(4)
            yield store.put("parcel")

        spawn(env, consumer)
        spawn(env, producer)
        env.run()

        assert log == [("parcel", 4)]

    def test_pending_gets_served_in_order(self, env):
        """The oldest pending get is served first."""
        store = Store(env)
        first = store.get()
        second = store.get()
        store.put(1)

        assert first.triggered
        assert second.pending

    def test_matching_item_goes_to_first_predicate_get(self, env):
        """Two gets filtering on the same item: only the first one receives it."""
        store = Store(env)
        store.put("x")
        first = store.get(lambda v: v == "x")
        second = store.get(lambda v: v == "x")
        env.run()

        assert first.value == "x"
        assert second.pending
        assert store.items == []

    def test_predicate_get(self, env):
        """A predicate selects the first matching item."""
        store = Store(env)
        for item in [1, 2, 3, 4]:
            store.put(item)
        get = store.get(lambda x: x % 2 == 0)
        env.run()

        assert get.value == 2
        assert store.items == [1, 3, 4]

    def test_unmatched_get_does_not_block_others(self, env):
        """A get waiting for a specific item lets later gets through."""
        store = Store(env)
        wants_b = store.get(lambda x: x == "b")
        anything = store.get()

        store.put("a")
        assert anything.triggered
        assert wants_b.pending

        store.put("b")
        assert wants_b.triggered
        env.run()
        assert anything.value == "a"
        assert wants_b.value == "b"

    def test_capacity_blocks_puts(self, env):
        """Puts wait while the store is full."""
        store = Store(env, capacity=1)
        first = store.put("a")
        second = store.put("b")
        assert first.triggered
        assert second.pending

        get = store.get()
        assert second.triggered
        assert store.items == ["b"]
        env.run()
        assert get.value == "a"

    def test_non_callable_predicate(self, env):
        """Predicates must be callable."""
        store = Store(env)
        with pytest.raises(ProtocolError):
            store.get(5)

    @pytest.mark.parametrize("capacity", [0, -1])
    def test_invalid_capacity(self, env, capacity):
        """Capacity must be positive."""
        with pytest.raises(ValueError):
            Store(env, capacity=capacity)

    def test_cancel_pending_get(self, env):
        """A cancelled get no longer receives items."""
        store = Store(env)
        get = store.get()
        get.cancel()
        store.put("x")

        assert get.cancelled
        assert store.items == ["x"]

    def test_level_and_repr(self, env):
        """level counts the items held."""
        store = Store(env, capacity=3)
        store.put("a")
        store.put("b")
        assert store.level == 2
        assert "2/3 items" in repr(store)

    def test_wait_for_all_kinds(self, env):
        """AllOf over predicate gets waits for one item of each kind."""
        store = Store(env)
        log = []

        def assembler(env):
            gets = [store.get(lambda p, k=k: p == k) for k in ("nut", "bolt")]
            yield env.all_of(gets)
            log.append((env.now, [g.value for g in gets]))

        def supplier(env):
            yield env.timeout(1)
            yield store.put("bolt")
            yield env.timeout(2)
            yield store.put("nut")

        spawn(env, assembler)
        spawn(env, supplier)
        env.run()

        assert log == [(3, ["nut", "bolt"])]
