"""Hierarchy descriptors and the diff trees compiled from them.

A hierarchy descriptor is whatever the user hands to Store.use():

    store.use({
        "todos": todos_reducer,      # reducer
        "filters": filter_store,     # nested store
        "ui": {"theme": theme_reducer, "legacy": None},  # branch, null
    })

hierarchy_to_diff_tree() turns it into DiffNodes. Nested stores are
registered with the parent through a callback so the parent can forward their
effects, and get a synthesized reducer that dispatches into them.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Iterator

from layerstore import constants
from layerstore._detect import detailed_typeof, is_plain_dict, is_store
from layerstore.meta import add_meta

Path = tuple
Destroy = Callable[[], None]
RegisterSubStore = Callable[[Path, Any], Destroy]


class HierarchyType(Enum):
    BRANCH = "branch"
    NULL = "null"
    REDUCER = "reducer"
    STORE = "store"


class DiffNode:
    """One compiled position in a hierarchy."""

    __slots__ = ("type", "children", "reducer", "store", "destroy")

    def __init__(
        self,
        type: HierarchyType,
        *,
        children: dict | None = None,
        reducer: Callable | None = None,
        store: Any = None,
        destroy: Destroy | None = None,
    ) -> None:
        self.type = type
        self.children = children
        self.reducer = reducer
        self.store = store
        self.destroy = destroy

    def __repr__(self) -> str:
        if self.type is HierarchyType.BRANCH:
            return f"DiffNode(branch, keys={list(self.children)!r})"
        return f"DiffNode({self.type.value})"


def get_hierarchy_type(descriptor: object) -> HierarchyType:
    """Classify a descriptor. Raises TypeError for anything unusable."""
    if callable(descriptor):
        return HierarchyType.REDUCER
    if is_store(descriptor):
        return HierarchyType.STORE
    if is_plain_dict(descriptor):
        return HierarchyType.BRANCH
    if descriptor is None:
        return HierarchyType.NULL
    raise TypeError(
        "Invalid hierarchy descriptor. Expected a reducer function, a store, "
        f"a dict or None. Received {detailed_typeof(descriptor)}"
    )


def hierarchy_to_diff_tree(
    hierarchy: object,
    register_sub_store: RegisterSubStore,
    path: Path = (),
) -> DiffNode:
    kind = get_hierarchy_type(hierarchy)

    if kind is HierarchyType.BRANCH:
        children = {
            key: hierarchy_to_diff_tree(value, register_sub_store, path + (key,))
            for key, value in hierarchy.items()
        }
        return DiffNode(kind, children=children)

    if kind is HierarchyType.NULL:
        return DiffNode(kind)

    if kind is HierarchyType.REDUCER:
        return DiffNode(kind, reducer=hierarchy)

    return DiffNode(
        kind,
        destroy=register_sub_store(path, hierarchy),
        reducer=wrap_store_in_reducer(hierarchy),
        store=hierarchy,
    )


def wrap_store_in_reducer(store) -> Callable:
    """Reducer that runs an action through a nested store.

    The action is tagged INHERIT so the child's effects subscribers (the
    parent's forwarding subscription among them) can tell it came from above.
    Hydration is rewritten to carry this position's slice of the parent state,
    never the parent-level payload.
    """

    def reducer(state, action):
        if action["type"] in (constants.HYDRATE, constants.PARTIAL_HYDRATE):
            action = {"type": constants.HYDRATE, "payload": state}

        result = store.dispatch(add_meta(action, constants.INHERIT))

        if result.error is not None:
            raise result.error

        return result.state

    return reducer


def iter_store_nodes(node: DiffNode) -> Iterator[DiffNode]:
    if node.type is HierarchyType.STORE:
        yield node
    elif node.type is HierarchyType.BRANCH:
        for child in node.children.values():
            yield from iter_store_nodes(child)


def destroy_diff_tree(node: DiffNode) -> None:
    """Release every sub-store registration in the tree."""
    for store_node in iter_store_nodes(node):
        store_node.destroy()


def find_delegate(node: DiffNode, path) -> tuple[Any, Path]:
    """Find the first store along path.

    Returns (store, remaining_path). The remaining keys address something
    inside that store's own hierarchy.
    """
    keys = tuple(path or ())
    for index, key in enumerate(keys):
        if node.type is not HierarchyType.BRANCH or key not in node.children:
            break
        node = node.children[key]
        if node.type is HierarchyType.STORE:
            return node.store, keys[index + 1:]

    raise ValueError(f"Invalid delegation. No store found along path {list(keys)!r}")
