"""layerstore: hierarchical, composable state containers for Python."""

from importlib.metadata import version as _version

__version__ = _version("layerstore")

from layerstore import constants
from layerstore.errors import InvalidMetaChainError, ReentrancyError
from layerstore.hierarchy import HierarchyType
from layerstore.meta import add_meta, get_meta_data, has_meta, remove_all_meta, remove_meta
from layerstore.store import DispatchResult, EffectsEvent, Store, Subscription, create_store
# rx and textual NOT auto-imported — opt-in only

__all__ = [
    "constants",
    "InvalidMetaChainError",
    "ReentrancyError",
    "HierarchyType",
    "add_meta",
    "get_meta_data",
    "has_meta",
    "remove_all_meta",
    "remove_meta",
    "DispatchResult",
    "EffectsEvent",
    "Store",
    "Subscription",
    "create_store",
]
