"""Tree-sitter parser turning Rust source into the syntax model."""

import logging
from functools import lru_cache
from typing import List, Optional, Tuple

import tree_sitter
import tree_sitter_rust

from .errors import ParseError
from .syntax import (
    DefItem,
    ExternCrateItem,
    Item,
    ModItem,
    SourceFile,
    SyntaxKind,
    TextRange,
    UseItem,
    UseTree,
)

logger = logging.getLogger(__name__)


# Tree-sitter node types of named definitions
DEFINITION_KINDS = {
    "struct_item": SyntaxKind.STRUCT_DEF,
    "enum_item": SyntaxKind.ENUM_DEF,
    "trait_item": SyntaxKind.TRAIT_DEF,
    "function_item": SyntaxKind.FN_DEF,
    "function_signature_item": SyntaxKind.FN_DEF,
    "const_item": SyntaxKind.CONST_DEF,
    "static_item": SyntaxKind.STATIC_DEF,
    "type_item": SyntaxKind.TYPE_ALIAS_DEF,
    "union_item": SyntaxKind.UNION_DEF,
    "macro_definition": SyntaxKind.MACRO_CALL,
}

# Node types that can appear as one clause of a `use` tree
USE_CLAUSE_TYPES = {
    "identifier",
    "scoped_identifier",
    "self",
    "super",
    "crate",
    "metavariable",
    "use_as_clause",
    "use_list",
    "scoped_use_list",
    "use_wildcard",
}

COMMENT_TYPES = {"line_comment", "block_comment"}


@lru_cache(maxsize=None)
def get_rust_parser() -> tree_sitter.Parser:
    """Get or create the shared tree-sitter Rust parser."""
    rust_lang = tree_sitter.Language(tree_sitter_rust.language())
    return tree_sitter.Parser(rust_lang)


def parse_source(content: bytes) -> SourceFile:
    """
    Parse Rust source bytes into a ``SourceFile``.

    Syntax errors do not fail the parse: tree-sitter recovers and the items
    it could still recognise are returned, with ``has_errors`` set.

    Raises:
        ParseError: If the content is not valid UTF-8.
    """
    try:
        content.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ParseError(f"source is not valid UTF-8: {e}") from e

    tree = get_rust_parser().parse(content)
    root = tree.root_node
    return SourceFile(
        items=_items(root, content),
        length=len(content),
        has_errors=root.has_error,
    )


def _items(container, source: bytes) -> Tuple[Item, ...]:
    """Collect the items directly inside a source file or a declaration list."""
    items: List[Item] = []
    attributes: List[Tuple[str, Optional[str]]] = []

    for node in container.named_children:
        if node.type in COMMENT_TYPES:
            continue
        if node.type == "attribute_item":
            attr = _attribute(node, source)
            if attr is not None:
                attributes.append(attr)
            continue

        item = _item(node, source, attributes)
        if item is not None:
            items.append(item)
        attributes = []

    return tuple(items)


def _item(node, source: bytes, attributes: List[Tuple[str, Optional[str]]]) -> Optional[Item]:
    text_range = TextRange(node.start_byte, node.end_byte)
    if node.type == "use_declaration":
        argument = node.child_by_field_name("argument")
        use_tree = _use_tree(argument, source) if argument is not None else None
        return UseItem(range=text_range, use_tree=use_tree)

    if node.type == "mod_item":
        name = _field_text(node, "name", source)
        if name is None:
            return None
        body = node.child_by_field_name("body")
        path_attr = None
        for attr_name, value in attributes:
            if attr_name == "path":
                path_attr = value
        return ModItem(
            range=text_range,
            name=name,
            items=_items(body, source) if body is not None else None,
            path_attr=path_attr,
        )

    if node.type == "extern_crate_declaration":
        name = _field_text(node, "name", source)
        if name is None:
            return None
        return ExternCrateItem(
            range=text_range,
            name=name,
            alias=_field_text(node, "alias", source),
        )

    kind = DEFINITION_KINDS.get(node.type)
    if kind is None:
        return None
    name = _field_text(node, "name", source)
    if name is None:
        return None

    variants: List[str] = []
    body = node.child_by_field_name("body")
    if kind is SyntaxKind.ENUM_DEF and body is not None:
        for variant in body.named_children:
            if variant.type != "enum_variant":
                continue
            variant_name = _field_text(variant, "name", source)
            if variant_name is not None:
                variants.append(variant_name)

    return DefItem(
        range=text_range,
        name=name,
        kind=kind,
        macro_export=any(attr_name == "macro_export" for attr_name, _ in attributes),
        variants=tuple(variants),
    )


def _use_tree(node, source: bytes) -> UseTree:
    """Convert one use clause node, recursing into groups."""
    text_range = TextRange(node.start_byte, node.end_byte)

    if node.type == "use_list":
        return UseTree(range=text_range, children=_use_list(node, source))

    if node.type == "scoped_use_list":
        path = node.child_by_field_name("path")
        use_list = node.child_by_field_name("list")
        return UseTree(
            range=text_range,
            path=_path_segments(path, source) if path is not None else ("",),
            children=_use_list(use_list, source) if use_list is not None else (),
        )

    if node.type == "use_as_clause":
        path = node.child_by_field_name("path")
        return UseTree(
            range=text_range,
            path=_path_segments(path, source) if path is not None else (),
            alias=_field_text(node, "alias", source),
        )

    if node.type == "use_wildcard":
        prefix = [child for child in node.named_children if child.type not in COMMENT_TYPES]
        return UseTree(
            range=text_range,
            path=_path_segments(prefix[0], source) if prefix else (),
            is_glob=True,
        )

    return UseTree(range=text_range, path=_path_segments(node, source))


def _use_list(node, source: bytes) -> Tuple[UseTree, ...]:
    return tuple(
        _use_tree(child, source)
        for child in node.named_children
        if child.type in USE_CLAUSE_TYPES
    )


def _path_segments(node, source: bytes) -> Tuple[str, ...]:
    """
    Split a path node into its segments.

    A leading ``::`` (as in ``::std::fmt``) is kept as an empty first segment.
    """
    if node.type == "scoped_identifier":
        path = node.child_by_field_name("path")
        name = node.child_by_field_name("name")
        prefix = _path_segments(path, source) if path is not None else ("",)
        if name is None:
            return prefix
        return prefix + (_identifier(name, source),)
    return (_identifier(node, source),)


def _attribute(node, source: bytes) -> Optional[Tuple[str, Optional[str]]]:
    """Return ``(name, string value)`` for ``#[name]`` or ``#[name = "value"]``."""
    attribute = next((c for c in node.named_children if c.type == "attribute"), None)
    if attribute is None or not attribute.named_children:
        return None
    name = _node_text(attribute.named_children[0], source)
    value_node = attribute.child_by_field_name("value")
    value = None
    if value_node is not None and value_node.type == "string_literal":
        value = _node_text(value_node, source)[1:-1]
    return name, value


def _field_text(node, field: str, source: bytes) -> Optional[str]:
    child = node.child_by_field_name(field)
    if child is None:
        return None
    return _identifier(child, source)


def _identifier(node, source: bytes) -> str:
    text = _node_text(node, source)
    # raw identifiers: r#type
    if text.startswith("r#"):
        return text[2:]
    return text


def _node_text(node, source: bytes) -> str:
    return source[node.start_byte:node.end_byte].decode("utf-8")
