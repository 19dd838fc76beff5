"""Data model for imported symbols grouped by kind."""

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Iterator, List, Set, Tuple

from analysis.database import NavigationTarget
from analysis.syntax import SyntaxKind


class UsedItemKind(IntEnum):
    """Kind of an imported symbol. Declaration order is the sort order."""

    MODULE = 1
    TRAIT = 2
    STRUCT = 3
    ENUM = 4
    FN = 5
    CONST = 6
    MACRO = 7
    OTHER = 8

    @classmethod
    def from_syntax_kind(cls, syntax_kind: SyntaxKind) -> "UsedItemKind":
        """Classify a declaration category; anything unlisted is OTHER."""
        return SYNTAX_KIND_MAP.get(syntax_kind, cls.OTHER)

    @property
    def bucket(self) -> str:
        """Name of the per-file set holding this kind."""
        return KIND_BUCKETS[self]


SYNTAX_KIND_MAP: Dict[SyntaxKind, UsedItemKind] = {
    SyntaxKind.SOURCE_FILE: UsedItemKind.MODULE,
    SyntaxKind.MODULE: UsedItemKind.MODULE,
    SyntaxKind.TRAIT_DEF: UsedItemKind.TRAIT,
    SyntaxKind.STRUCT_DEF: UsedItemKind.STRUCT,
    SyntaxKind.ENUM_DEF: UsedItemKind.ENUM,
    SyntaxKind.FN_DEF: UsedItemKind.FN,
    SyntaxKind.CONST_DEF: UsedItemKind.CONST,
    SyntaxKind.MACRO_CALL: UsedItemKind.MACRO,
}

KIND_BUCKETS: Dict[UsedItemKind, str] = {
    UsedItemKind.MODULE: "modules",
    UsedItemKind.TRAIT: "traits",
    UsedItemKind.STRUCT: "structs",
    UsedItemKind.ENUM: "enums",
    UsedItemKind.FN: "fns",
    UsedItemKind.CONST: "consts",
    UsedItemKind.MACRO: "macros",
    UsedItemKind.OTHER: "others",
}


@dataclass(frozen=True, order=True)
class UsedItem:
    """An imported symbol. Ordered by name, then kind."""

    name: str
    kind: UsedItemKind

    @classmethod
    def from_navigation_target(cls, target: NavigationTarget) -> "UsedItem":
        return cls(name=target.name, kind=UsedItemKind.from_syntax_kind(target.kind))


class UsedItemMap:
    """
    The symbols one file imports, partitioned by kind.

    Every kind has its own set; inserting an item equal to one already
    present is a no-op, so a map never holds duplicates.
    """

    def __init__(self):
        self._items: Dict[UsedItemKind, Set[UsedItem]] = {kind: set() for kind in UsedItemKind}

    def insert(self, item: UsedItem) -> bool:
        """
        Add an item to the set of its kind.

        Returns:
            True if the item was not present yet.
        """
        bucket = self._items[item.kind]
        if item in bucket:
            return False
        bucket.add(item)
        return True

    def get(self, kind: UsedItemKind) -> List[UsedItem]:
        """Items of one kind in sorted order."""
        return sorted(self._items[kind])

    def names(self, kind: UsedItemKind) -> List[str]:
        return [item.name for item in self.get(kind)]

    def is_empty(self) -> bool:
        return not any(self._items.values())

    def to_dict(self) -> Dict[str, List[str]]:
        """Non-empty buckets in kind order, each a sorted list of names."""
        return {
            kind.bucket: self.names(kind)
            for kind in UsedItemKind
            if self._items[kind]
        }

    def __iter__(self) -> Iterator[UsedItem]:
        for kind in UsedItemKind:
            yield from self.get(kind)

    def __len__(self) -> int:
        return sum(len(items) for items in self._items.values())

    def __contains__(self, item: UsedItem) -> bool:
        return item in self._items[item.kind]

    def __eq__(self, other) -> bool:
        if not isinstance(other, UsedItemMap):
            return NotImplemented
        return self._items == other._items

    def __repr__(self) -> str:
        counts = ", ".join(f"{kind.bucket}={len(self._items[kind])}" for kind in UsedItemKind if self._items[kind])
        return f"UsedItemMap({counts})"


class CrateMap:
    """Per-file used items for a whole project, keyed by relative path."""

    def __init__(self):
        self._source_map: Dict[str, UsedItemMap] = {}

    @property
    def paths(self) -> List[str]:
        """All file paths in lexicographic order."""
        return sorted(self._source_map)

    def insert(self, path: str, used_items: UsedItemMap) -> None:
        self._source_map[path] = used_items

    def get(self, path: str) -> UsedItemMap:
        return self._source_map[path]

    def items(self) -> Iterator[Tuple[str, UsedItemMap]]:
        """Iterate over ``(path, used items)`` in path order."""
        for path in self.paths:
            yield path, self._source_map[path]

    def to_dict(self) -> Dict[str, Dict[str, List[str]]]:
        return {path: used_items.to_dict() for path, used_items in self.items()}

    def __len__(self) -> int:
        return len(self._source_map)

    def __contains__(self, path: str) -> bool:
        return path in self._source_map

    def __repr__(self) -> str:
        total = sum(len(m) for m in self._source_map.values())
        return f"CrateMap(files={len(self._source_map)}, items={total})"
