"""Store — a single state container driven by a composable reducer tree.

A Store owns its current state, the diff tree compiled from the hierarchy
passed to use(), and its subscribers. dispatch() runs an action through the
reducer layer, then the effects layer, then notifies subscribers. Nested
stores are driven through their own dispatch() so their subscribers see every
action exactly once.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from enum import Enum
from typing import Any, Callable, NamedTuple

from layerstore import constants
from layerstore._detect import STORE_MARKER, detailed_typeof, is_plain_dict
from layerstore.errors import InvalidMetaChainError, ReentrancyError
from layerstore.hierarchy import (
    DiffNode,
    HierarchyType,
    destroy_diff_tree,
    find_delegate,
    hierarchy_to_diff_tree,
    iter_store_nodes,
)
from layerstore.meta import add_meta, get_meta_data, has_meta, remove_all_meta, remove_meta
from layerstore.nodes import NodeOptions, deep_merge
from layerstore.reduce import collect_effects, propagate_hydration, reduce_tree

logger = logging.getLogger("layerstore.store")


class DispatchResult:
    """Outcome of a dispatch. Reducer errors land in .error, never raised."""

    __slots__ = ("state", "error")

    def __init__(self, state: Any, error: BaseException | None = None) -> None:
        self.state = state
        self.error = error

    def __repr__(self) -> str:
        if self.error is None:
            return f"DispatchResult(state={self.state!r})"
        return f"DispatchResult(state={self.state!r}, error={self.error!r})"


class EffectsEvent(NamedTuple):
    """What effects subscribers receive once per dispatch."""

    action: dict | None
    effects: list
    error: BaseException | None
    new_state: Any
    old_state: Any
    store: Store


class Subscription:
    __slots__ = ("_remove",)

    def __init__(self, remove: Callable[[], None]) -> None:
        self._remove = remove

    def unsubscribe(self) -> None:
        """Stop receiving notifications. Safe to call more than once."""
        remove, self._remove = self._remove, None
        if remove is not None:
            remove()


class _Subscriber:
    __slots__ = ("next", "error", "effects")

    def __init__(self, subscriber: object) -> None:
        if callable(subscriber):
            fields = {"next": subscriber}
        elif is_plain_dict(subscriber):
            fields = subscriber
        else:
            raise TypeError(
                "Invalid subscriber. Expected a function or a dict with "
                f"next/error/effects functions. Received {detailed_typeof(subscriber)}"
            )

        for name in self.__slots__:
            handler = fields.get(name)
            if handler is not None and not callable(handler):
                raise TypeError(
                    f"Invalid subscriber. {name!r} must be a function. "
                    f"Received {detailed_typeof(handler)}"
                )
            setattr(self, name, handler)


class Status(Enum):
    IDLE = "idle"
    REDUCING = "reducing"


class Store:
    """Hierarchical state container.

    Usage:
        counter = create_store(lambda state, action: (state or 0) + 1)
        app = create_store({"counter": counter, "user": user_reducer})

        app.subscribe(lambda new, old: print(new))
        result = app.dispatch({"type": "increment"})
        if result.error is not None:
            ...
    """

    store_marker = STORE_MARKER

    def __init__(self) -> None:
        self._state: Any = None
        self._diff_tree = DiffNode(HierarchyType.NULL)
        self._subscribers: list[_Subscriber] = []
        self._options = NodeOptions()
        self._status = Status.IDLE

    # --- Reentrancy guard ---

    @contextmanager
    def _reducer_layer(self):
        """Hold the REDUCING status for the duration of a reducer-layer walk."""
        self._status = Status.REDUCING
        try:
            yield
        finally:
            self._status = Status.IDLE

    def _assert_idle(self, method: str) -> None:
        if self._status is Status.REDUCING:
            raise ReentrancyError(f"Store.{method}() cannot be called within a reducer")

    # --- Public API ---

    def dispatch(self, dispatchable: Any) -> DispatchResult:
        """Dispatch an action (optionally wrapped in meta nodes) or an inducer.

        Invalid input raises before anything changes. Errors raised while
        reducing are returned on the result instead.
        """
        self._assert_idle("dispatch")

        if callable(dispatchable):
            return self._dispatch_inducer(dispatchable)

        action = _validate_action(dispatchable)

        if has_meta(dispatchable, constants.DELEGATE):
            return self._delegate(dispatchable)

        return self._dispatch_action(dispatchable, action)

    def get_state(self) -> Any:
        self._assert_idle("get_state")
        return self._state

    def hydrate(self, new_state: Any = None) -> Store:
        """Replace the whole state. A no-op when new_state is the current state."""
        self._assert_idle("hydrate")
        if new_state is self._state:
            return self

        action = {"type": constants.HYDRATE, "payload": new_state}
        result = self._dispatch_action(action, action)
        if result.error is not None:
            raise result.error
        return self

    def set_state(self, partial_state: Any) -> DispatchResult:
        """Deep-merge partial_state into the current state."""
        self._assert_idle("set_state")
        if deep_merge(self._state, partial_state, self._options) is self._state:
            return DispatchResult(self._state)

        action = {"type": constants.PARTIAL_HYDRATE, "payload": partial_state}
        return self._dispatch_action(action, action)

    def use(self, hierarchy: Any = None) -> Store:
        """Replace the reducer hierarchy and recalculate the state.

        Unlike dispatch(), an error raised while recalculating is re-raised
        here, after the new hierarchy is in place.
        """
        self._assert_idle("use")

        registered = []

        def register(path, store):
            destroy = self._register_sub_store(path, store)
            registered.append(destroy)
            return destroy

        try:
            new_tree = hierarchy_to_diff_tree(hierarchy, register)
        except Exception:
            for destroy in registered:
                destroy()
            raise

        destroy_diff_tree(self._diff_tree)
        self._diff_tree = new_tree
        logger.info("Composed hierarchy with %d sub-store(s)", len(registered))

        action = {"type": constants.RECALCULATE}
        result = self._dispatch_action(action, action)
        if result.error is not None:
            raise result.error
        return self

    def set_node_options(self, options: dict[str, Callable]) -> Store:
        self._options = self._options.merged(options)
        return self

    def subscribe(self, subscriber: Any) -> Subscription:
        """Register a state subscriber.

        subscriber is either next(new_state, old_state) or a dict with any of
        next, error(err) and effects(event).
        """
        entry = _Subscriber(subscriber)
        self._subscribers.append(entry)

        def _remove() -> None:
            try:
                self._subscribers.remove(entry)
            except ValueError:
                pass

        return Subscription(_remove)

    def observable(self) -> Store:
        """Reactive-stream interop hook. See layerstore.rx.observe()."""
        return self

    def dispose(self) -> None:
        """Release every sub-store registration. The store stays usable."""
        destroy_diff_tree(self._diff_tree)
        self._diff_tree = DiffNode(HierarchyType.NULL)

    # --- Pipeline ---

    def _dispatch_action(self, chain: dict, action: dict) -> DispatchResult:
        old_state = self._state
        new_state = old_state
        error = None

        if not has_meta(chain, constants.SKIP_REDUCERS):
            try:
                with self._reducer_layer():
                    new_state = self._run_reducer_layer(action, old_state)
            except Exception as err:
                logger.debug("Reducer layer raised for %r", action["type"], exc_info=True)
                error = err
                new_state = old_state

        self._state = new_state

        effects = [{"effect_type": constants.DISPATCH, "payload": chain}]
        if error is None and not has_meta(chain, constants.SKIP_EFFECTS):
            try:
                effects = collect_effects(
                    self._diff_tree, new_state, action, self._options, list(effects)
                )
            except Exception as err:
                logger.debug("Effects layer raised for %r", action["type"], exc_info=True)
                error = err

        self._inform(EffectsEvent(chain, effects, error, new_state, old_state, self))
        return DispatchResult(new_state, error)

    def _run_reducer_layer(self, action: dict, state: Any) -> Any:
        if action["type"] == constants.HYDRATE:
            new_state = action.get("payload")
        elif action["type"] == constants.PARTIAL_HYDRATE:
            new_state = deep_merge(state, action.get("payload"), self._options)
        else:
            return reduce_tree(self._diff_tree, state, action, self._options)

        propagate_hydration(self._diff_tree, new_state, state, self._options)
        return new_state

    def _dispatch_inducer(self, inducer: Callable[[Any], Any]) -> DispatchResult:
        old_state = self._state
        new_state = old_state
        error = None

        try:
            with self._reducer_layer():
                new_state = inducer(old_state)
                propagate_hydration(self._diff_tree, new_state, old_state, self._options)
        except Exception as err:
            logger.debug("Inducer raised", exc_info=True)
            error = err
            new_state = old_state

        self._state = new_state
        self._inform(EffectsEvent(None, [], error, new_state, old_state, self))
        return DispatchResult(new_state, error)

    def _delegate(self, chain: dict) -> DispatchResult:
        path = get_meta_data(chain, constants.DELEGATE)
        store, rest = find_delegate(self._diff_tree, path)

        child_chain = remove_meta(chain, constants.DELEGATE)
        if rest:
            child_chain = add_meta(child_chain, constants.DELEGATE, list(rest))

        logger.debug("Delegating to sub-store at %r", path)
        result = store.dispatch(child_chain)
        return DispatchResult(self._state, result.error)

    def _inform(self, event: EffectsEvent) -> None:
        changed = event.new_state is not event.old_state
        for subscriber in list(self._subscribers):
            if event.error is not None and subscriber.error is not None:
                subscriber.error(event.error)
            if changed and subscriber.next is not None:
                subscriber.next(event.new_state, event.old_state)
            if subscriber.effects is not None:
                subscriber.effects(event)

    def _register_sub_store(self, path: tuple, store) -> Callable[[], None]:
        """Forward a nested store's own effects to this store's subscribers.

        Events for actions this store pushed down (tagged INHERIT) are skipped;
        this store already reported those dispatches itself.
        """

        def _forward(event: EffectsEvent) -> None:
            action = event.action
            if action is not None:
                if has_meta(action, constants.INHERIT):
                    return
                action = add_meta(action, constants.DELEGATE, list(path))

            forwarded = EffectsEvent(
                action, event.effects, event.error, self._state, self._state, self
            )
            for subscriber in list(self._subscribers):
                if subscriber.effects is not None:
                    subscriber.effects(forwarded)

        subscription = store.subscribe({"effects": _forward})

        def destroy() -> None:
            logger.debug("Tearing down sub-store registration at %r", list(path))
            subscription.unsubscribe()

        return destroy

    @property
    def sub_stores(self) -> list[Store]:
        """Stores currently composed into this store's hierarchy."""
        return [node.store for node in iter_store_nodes(self._diff_tree)]

    def __repr__(self) -> str:
        return f"Store(state={self._state!r}, sub_stores={len(self.sub_stores)})"


def _validate_action(dispatchable: Any) -> dict:
    if not is_plain_dict(dispatchable):
        raise TypeError(
            "Invalid action. Expected a dict or an inducer function. "
            f"Received {detailed_typeof(dispatchable)}"
        )

    action = remove_all_meta(dispatchable)
    if not is_plain_dict(action):
        raise TypeError(
            "Invalid action. Expected a dict at the end of the meta chain. "
            f"Received {detailed_typeof(action)}"
        )

    action_type = action.get("type")
    if action_type is not None and not isinstance(action_type, str):
        raise TypeError(
            f'Invalid action. "type" must be a string. Received {detailed_typeof(action_type)}'
        )
    if not action_type:
        raise InvalidMetaChainError(
            'Invalid meta chain. The dispatched action must have a non-empty "type" key'
        )
    return action


def create_store(hierarchy: Any = None, initial_state: Any = None) -> Store:
    """Create a Store, compose hierarchy, then hydrate it with initial_state.

    Hydrating last pushes each slice of initial_state into the nested stores.
    """
    store = Store()
    if hierarchy is not None:
        store.use(hierarchy)
    if initial_state is not None:
        store.hydrate(initial_state)
    return store
