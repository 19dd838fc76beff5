"""ASCII tree-style exporter for used-item maps."""

from typing import List, Tuple

from usage.model import CrateMap, UsedItemKind, UsedItemMap


# Unicode tree characters
UNICODE_BRANCH = "├── "
UNICODE_LAST = "└── "
UNICODE_VERTICAL = "│   "
UNICODE_SPACE = "    "

# ASCII fallback characters
ASCII_BRANCH = "|-- "
ASCII_LAST = "\\-- "
ASCII_VERTICAL = "|   "
ASCII_SPACE = "    "


def to_ascii(
    crate_map: CrateMap,
    style: str = "tree",
    show_empty: bool = True,
) -> str:
    """
    Convert a crate map to an ASCII tree.

    Each file is a root; its kind buckets are children and the imported
    names are leaves.

    Args:
        crate_map: The per-file used items to export.
        style: Output style - "tree" (Unicode) or "ascii" (pure ASCII).
        show_empty: If True, list files that import nothing.

    Returns:
        ASCII tree string.
    """
    if style == "ascii":
        chars = (ASCII_BRANCH, ASCII_LAST, ASCII_VERTICAL, ASCII_SPACE)
    else:
        chars = (UNICODE_BRANCH, UNICODE_LAST, UNICODE_VERTICAL, UNICODE_SPACE)

    files = [(path, used) for path, used in crate_map.items() if show_empty or not used.is_empty()]

    lines: List[str] = []
    for i, (path, used_items) in enumerate(files):
        lines.append(path)
        _render_file(used_items, chars, lines)

        # Add blank line between files (except after last)
        if i < len(files) - 1:
            lines.append("")

    return "\n".join(lines)


def _render_file(
    used_items: UsedItemMap,
    chars: Tuple[str, str, str, str],
    lines: List[str],
) -> None:
    """Render the kind buckets of one file and their names."""
    branch, last, vertical, space = chars

    kinds = [kind for kind in UsedItemKind if used_items.get(kind)]
    for kind_index, kind in enumerate(kinds):
        kind_is_last = kind_index == len(kinds) - 1
        lines.append(f"{last if kind_is_last else branch}{kind.bucket}")

        child_prefix = space if kind_is_last else vertical
        names = used_items.names(kind)
        for name_index, name in enumerate(names):
            connector = last if name_index == len(names) - 1 else branch
            lines.append(f"{child_prefix}{connector}{name}")
