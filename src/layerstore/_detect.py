"""Type detection used for input validation and error messages.

Two checks drive composition: is_plain_dict() decides whether a descriptor or
state node is a branch, and is_store() decides whether a value satisfies the
store capability contract. detailed_typeof() exists so error messages can say
"received a list" instead of "received an object".
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

STORE_MARKER = "layerstore.store"


@runtime_checkable
class StoreLike(Protocol):
    """Capability contract every store satisfies."""

    store_marker: str

    def dispatch(self, dispatchable: Any) -> Any: ...

    def get_state(self) -> Any: ...

    def subscribe(self, subscriber: Any) -> Any: ...


def is_plain_dict(thing: object) -> bool:
    """Exactly a dict. Subclasses (OrderedDict, defaultdict, ...) are complex."""
    return type(thing) is dict


def is_store(thing: object) -> bool:
    if isinstance(thing, type):
        return False
    return isinstance(thing, StoreLike) and thing.store_marker == STORE_MARKER


def detailed_typeof(thing: object) -> str:
    """Describe thing's type more precisely than type(thing).__name__."""
    if thing is None:
        return "None"
    if isinstance(thing, type):
        return f"class {thing.__name__}"
    if callable(thing):
        return "function"
    if is_plain_dict(thing):
        return "dict"
    if isinstance(thing, Mapping):
        return f"complex mapping ({type(thing).__name__})"
    return type(thing).__name__
