"""Syntax model for the parts of a Rust source file that matter for imports.

Only module-level items are kept. Inline module bodies are nested inside
their ``ModItem`` so the name resolver can walk them, but function bodies,
impl blocks and expressions are dropped entirely.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional, Tuple, Union


class SyntaxKind(Enum):
    """Declaration category of a definition site."""

    SOURCE_FILE = "source_file"
    MODULE = "module"
    TRAIT_DEF = "trait_def"
    STRUCT_DEF = "struct_def"
    ENUM_DEF = "enum_def"
    ENUM_VARIANT = "enum_variant"
    FN_DEF = "fn_def"
    CONST_DEF = "const_def"
    STATIC_DEF = "static_def"
    TYPE_ALIAS_DEF = "type_alias_def"
    UNION_DEF = "union_def"
    MACRO_CALL = "macro_call"
    EXTERN_CRATE_ITEM = "extern_crate_item"


@dataclass(frozen=True)
class TextRange:
    """Half-open byte range ``[start, end)`` inside a source file."""

    start: int
    end: int

    def contains(self, offset: int) -> bool:
        return self.start <= offset <= self.end


@dataclass(frozen=True)
class UseTree:
    """
    One node of a ``use`` declaration.

    A tree is either a leaf (``children is None``) naming a single path, or a
    group whose ``children`` are nested trees sharing ``path`` as a prefix,
    as in ``a::{b, c::{d, e}}``. A group may be empty.
    """

    range: TextRange
    path: Tuple[str, ...] = ()
    children: Optional[Tuple["UseTree", ...]] = None
    alias: Optional[str] = None
    is_glob: bool = False

    def use_tree_list(self) -> Optional[Tuple["UseTree", ...]]:
        """Return the nested trees of a group, or None for a leaf."""
        return self.children

    def leaves(self, prefix: Tuple[str, ...] = ()) -> Iterator[Tuple[Tuple[str, ...], "UseTree"]]:
        """Yield ``(full path, leaf)`` pairs in source order."""
        full = prefix + self.path
        if self.children is None:
            yield full, self
            return
        for child in self.children:
            yield from child.leaves(full)

    def local_name(self, full_path: Tuple[str, ...]) -> Optional[str]:
        """The name this leaf binds in its module, given its prefixed path."""
        if self.children is not None or self.is_glob:
            return None
        if self.alias is not None:
            return self.alias
        # `a::b::{self}` binds `b`
        segments = [s for s in full_path if s != "self"]
        return segments[-1] if segments else None


@dataclass(frozen=True)
class UseItem:
    range: TextRange
    use_tree: Optional[UseTree]


@dataclass(frozen=True)
class ModItem:
    """``mod name;`` (``items is None``) or ``mod name { ... }``."""

    range: TextRange
    name: str
    items: Optional[Tuple["Item", ...]] = None
    path_attr: Optional[str] = None


@dataclass(frozen=True)
class DefItem:
    """A named definition: struct, enum, fn, trait, const, macro_rules and so on."""

    range: TextRange
    name: str
    kind: SyntaxKind
    macro_export: bool = False
    variants: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ExternCrateItem:
    range: TextRange
    name: str
    alias: Optional[str] = None


Item = Union[UseItem, ModItem, DefItem, ExternCrateItem]


@dataclass(frozen=True)
class SourceFile:
    """Module-level items of one parsed file."""

    items: Tuple[Item, ...]
    length: int = 0
    has_errors: bool = False
