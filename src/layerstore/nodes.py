"""Node options — how the engine reads and builds state containers.

Branch reducers and deep merges never touch state containers directly. They
go through a NodeOptions instance, so a store can hold state in something other
than plain dicts (frozen mappings, custom records) by swapping the strategies
with Store.set_node_options().
"""

from __future__ import annotations

from typing import Any, Callable

from layerstore._detect import detailed_typeof, is_plain_dict


def _set(node: dict, key: Any, value: Any) -> dict:
    node[key] = value
    return node


DEFAULTS: dict[str, Callable] = {
    "clone": dict,
    "create": dict,
    "get": lambda node, key: node.get(key),
    "is_node": is_plain_dict,
    "iterate": lambda node: node.items(),
    "set": _set,
}


class NodeOptions:
    """Strategies for cloning, creating, reading and writing state nodes.

    clone(node) -> copy          create() -> empty node
    get(node, key) -> value      is_node(thing) -> bool
    iterate(node) -> (key, value) pairs
    set(node, key, value) -> node (may mutate node, which is always a fresh copy)
    """

    __slots__ = tuple(DEFAULTS)

    def __init__(self, **overrides: Callable) -> None:
        validate(overrides)
        for key, default in DEFAULTS.items():
            setattr(self, key, overrides.get(key, default))

    def merged(self, overrides: dict[str, Callable]) -> NodeOptions:
        """A new NodeOptions with overrides applied on top of this one."""
        validate(overrides)
        current = {key: getattr(self, key) for key in DEFAULTS}
        current.update(overrides)
        return NodeOptions(**current)

    def __repr__(self) -> str:
        custom = [key for key in DEFAULTS if getattr(self, key) is not DEFAULTS[key]]
        return f"NodeOptions(custom={custom!r})"


def validate(options: object) -> None:
    if not is_plain_dict(options):
        raise TypeError(
            f"Node options must be a dict. Received {detailed_typeof(options)}"
        )
    for key, value in options.items():
        if key not in DEFAULTS:
            raise ValueError(
                f"Invalid node option {key!r}. Valid options: {', '.join(DEFAULTS)}"
            )
        if not callable(value):
            raise TypeError(
                f"Node option {key!r} must be a function. "
                f"Received {detailed_typeof(value)}"
            )


def deep_merge(old: Any, new: Any, options: NodeOptions) -> Any:
    """Merge new into old, keeping untouched subtrees of old by identity.

    Nodes merge key by key; anything else in new overwrites. A copy of old is
    made only once a key actually changes, so merging a subset of old's
    values returns old itself. An explicit None is still set on a key old
    doesn't have.
    """
    if not (options.is_node(old) and options.is_node(new)):
        return new

    result = old
    for key, value in list(options.iterate(new)):
        prev = options.get(old, key)
        merged = deep_merge(prev, value, options)
        if merged is prev and (prev is not None or _has_key(old, key, options)):
            continue
        if result is old:
            result = options.clone(old)
        result = options.set(result, key, merged)
    return result


def _has_key(node: Any, key: Any, options: NodeOptions) -> bool:
    # get() can't tell a missing key from a None value
    return any(k == key for k, _ in options.iterate(node))
