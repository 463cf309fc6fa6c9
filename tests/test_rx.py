"""Tests for layerstore.rx — reactivex adapter."""

from reactivex import operators as ops

from layerstore import create_store
from layerstore.rx import observe


class TestObserve:
    def test_emits_subsequent_states(self):
        store = create_store()
        received = []
        observe(store).subscribe(received.append)

        store.set_state("a")

        assert received == ["a"]

    def test_operators(self):
        store = create_store()
        received = []
        observe(store).pipe(ops.filter(lambda state: state != "a")).subscribe(received.append)

        store.set_state("a")
        store.set_state("b")
        store.set_state("a")

        assert received == ["b"]

    def test_fire_immediately(self):
        store = create_store().hydrate("x")
        received = []
        observe(store, fire_immediately=True).subscribe(received.append)
        store.hydrate("y")
        assert received == ["x", "y"]

    def test_dispose_unsubscribes(self):
        store = create_store()
        received = []
        disposable = observe(store).subscribe(received.append)

        store.hydrate(1)
        disposable.dispose()
        store.hydrate(2)

        assert received == [1]
        assert store._subscribers == []

    def test_errors_reach_on_error(self):
        def reducer(state, action):
            if action["type"] == "boom":
                raise ValueError("boom")
            return state

        store = create_store(reducer)
        errors = []
        observe(store).subscribe(on_next=lambda state: None, on_error=errors.append)

        store.dispatch({"type": "boom"})

        assert len(errors) == 1
        assert isinstance(errors[0], ValueError)
