"""Meta chains — routing annotations wrapped around actions and effects.

A meta node is a dict with a "meta_type", an optional "meta_data" and a
"payload" that is either another meta node or the wrapped action/effect:

    {"meta_type": DELEGATE, "meta_data": ["todos"], "payload": {"type": "add"}}

Chains are never mutated. add_meta() prepends a node; remove_meta() copies the
nodes above the removed one and shares everything below it.
"""

from __future__ import annotations

from typing import Any

from layerstore.errors import InvalidMetaChainError

Chain = dict[str, Any]


def _is_meta_node(node: object) -> bool:
    return isinstance(node, dict) and "meta_type" in node


def _next_link(node: Chain) -> Chain:
    payload = node.get("payload")
    if not payload:
        raise InvalidMetaChainError(
            "Invalid meta chain. The last node in the chain must be either "
            'a valid action dict with a non-empty "type" key or an effect '
            'with a non-empty "effect_type" key'
        )
    return payload


def add_meta(chain: Chain, meta_type: str, meta_data: Any = None) -> Chain:
    """Wrap chain in a new meta node. Falsy meta_data is left out entirely."""
    node = {"meta_type": meta_type, "payload": chain}
    if meta_data:
        node["meta_data"] = meta_data
    return node


def get_meta_data(chain: Chain, meta_type: str) -> Any:
    """meta_data of the first node with meta_type, or None."""
    node = chain
    while _is_meta_node(node):
        if node["meta_type"] == meta_type:
            return node.get("meta_data")
        node = _next_link(node)
    return None


def has_meta(chain: Chain, meta_type: str) -> bool:
    node = chain
    while _is_meta_node(node):
        if node["meta_type"] == meta_type:
            return True
        node = _next_link(node)
    return False


def remove_all_meta(chain: Chain) -> Chain:
    """Strip every meta node and return the wrapped action or effect."""
    node = chain
    while _is_meta_node(node):
        node = _next_link(node)
    return node


def remove_meta(chain: Chain, meta_type: str) -> Chain:
    """Return a chain without the first node of meta_type.

    meta_type doesn't have to be present. When it isn't, every node is still
    copied on the way down before the copies are thrown away and the original
    chain is returned as-is.
    """
    node = chain
    root: Chain | None = None
    prev: Chain | None = None

    while _is_meta_node(node):
        if node["meta_type"] == meta_type:
            rest = _next_link(node)
            if prev is None:
                return rest
            prev["payload"] = rest
            return root

        copy = dict(node)
        if prev is None:
            root = copy
        else:
            prev["payload"] = copy
        prev = copy
        node = _next_link(node)

    return chain
