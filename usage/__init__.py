"""Used-item collection: which symbols each file of a project imports."""

from .builder import build_crate_map, list_used_items_in_cargo
from .collector import UsedItemResolver
from .model import CrateMap, UsedItem, UsedItemKind, UsedItemMap

__all__ = [
    "CrateMap",
    "UsedItem",
    "UsedItemKind",
    "UsedItemMap",
    "UsedItemResolver",
    "build_crate_map",
    "list_used_items_in_cargo",
]
