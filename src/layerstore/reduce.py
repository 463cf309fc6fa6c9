"""Walks over a compiled diff tree: reducer layer, effects layer, hydration.

All three share the same shape. Branch nodes split the state by key through
the store's NodeOptions; the other node kinds act on their slice.
"""

from __future__ import annotations

from typing import Any

from layerstore import constants
from layerstore._detect import detailed_typeof, is_plain_dict
from layerstore.hierarchy import DiffNode, HierarchyType
from layerstore.nodes import NodeOptions


def _slice(state: Any, key: Any, options: NodeOptions) -> Any:
    return options.get(state, key) if options.is_node(state) else None


def reduce_tree(node: DiffNode, state: Any, action: dict, options: NodeOptions) -> Any:
    """Compute the next state for node's position.

    A branch returns its input state unless some child's result differs by
    identity, in which case it returns a clone with just those keys replaced.
    """
    if node.type is HierarchyType.NULL:
        return state

    if node.type is not HierarchyType.BRANCH:
        return node.reducer(state, action)

    source = state if options.is_node(state) else options.create()
    result = source

    for key, child in node.children.items():
        prev = options.get(source, key)
        new = reduce_tree(child, prev, action, options)
        if new is prev:
            continue
        if result is source:
            result = options.clone(source)
        result = options.set(result, key, new)

    return result


def collect_effects(
    node: DiffNode, state: Any, action: dict, options: NodeOptions, queued: list
) -> list:
    """Run every reducer's `effects` handler against the committed state.

    Each handler is called as effects(state, action, queued) with a copy of
    the effects queued so far, and its output is appended to queued, which is
    returned. Nested stores run their own effects layer during their
    dispatch, so store nodes contribute nothing here.
    """
    if node.type is HierarchyType.BRANCH:
        for key, child in node.children.items():
            collect_effects(child, _slice(state, key, options), action, options, queued)
        return queued

    if node.type is not HierarchyType.REDUCER:
        return queued

    handler = getattr(node.reducer, "effects", None)
    if handler is not None:
        queued.extend(_as_effect_list(handler(state, action, list(queued))))
    return queued


def _as_effect_list(produced: Any) -> list:
    if produced is None:
        return []
    effects = [produced] if is_plain_dict(produced) else list(produced)
    for effect in effects:
        effect_type = effect.get("effect_type") if is_plain_dict(effect) else None
        if not isinstance(effect_type, str) or not effect_type:
            raise TypeError(
                'Invalid effect. Effects must be dicts with a non-empty "effect_type". '
                f"Received {detailed_typeof(effect)}: {effect!r}"
            )
    return effects


def propagate_hydration(node: DiffNode, new: Any, old: Any, options: NodeOptions) -> None:
    """Push a hydrated state into every nested store whose slice changed."""
    if new is old:
        return

    if node.type is HierarchyType.STORE:
        node.reducer(new, {"type": constants.HYDRATE, "payload": new})
    elif node.type is HierarchyType.BRANCH:
        for key, child in node.children.items():
            propagate_hydration(
                child, _slice(new, key, options), _slice(old, key, options), options
            )
