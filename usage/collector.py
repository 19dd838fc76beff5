"""Expanding the ``use`` declarations of one file into classified used items."""

import logging
from typing import List, Optional

from analysis.database import FilePosition
from analysis.errors import ParseError, ResolutionError
from analysis.host import Analysis
from analysis.syntax import Item, UseItem, UseTree

from .model import UsedItem, UsedItemMap

logger = logging.getLogger(__name__)


class UsedItemResolver:
    """
    Collects the used items of a single file.

    Only top-level ``use`` declarations are considered. A file that cannot
    be parsed, and any import that cannot be resolved, contribute nothing
    rather than failing the run.
    """

    def __init__(self, analysis: Analysis, file_id: int):
        self.analysis = analysis
        self.file_id = file_id
        self.used_item_map = UsedItemMap()

    def used_items(self) -> UsedItemMap:
        """Run over the file and return its used items."""
        try:
            source_file = self.analysis.parse(self.file_id)
        except ParseError as e:
            logger.debug("Skipping file %s: %s", self.file_id, e)
            return UsedItemMap()

        for item in source_file.items:
            use_item = item_to_use_item(item)
            if use_item is None:
                continue
            imported_items = self.used_items_in_use_item(use_item)
            if imported_items is not None:
                self.add_imported_items(imported_items)

        return self.used_item_map

    def add_imported_items(self, used_items: List[UsedItem]) -> None:
        for item in used_items:
            self.used_item_map.insert(item)

    def used_items_in_use_item(self, use_item: UseItem) -> Optional[List[UsedItem]]:
        if use_item.use_tree is None:
            return None
        return self.used_items_in_use_tree(use_item.use_tree)

    def used_items_in_use_tree(self, use_tree: UseTree) -> Optional[List[UsedItem]]:
        """
        Expand a use tree, resolving each leaf in source order.

        Returns:
            The resolved items of every leaf, or None when the tree is a
            single leaf that resolves to nothing. A group always returns a
            list; branches that resolve to nothing are left out.
        """
        use_tree_list = use_tree.use_tree_list()
        if use_tree_list is not None:
            result: List[UsedItem] = []
            for child in use_tree_list:
                items = self.used_items_in_use_tree(child)
                if items is not None:
                    result.extend(items)
            return result

        return self.resolve_leaf(use_tree.range.end)

    def resolve_leaf(self, offset: int) -> Optional[List[UsedItem]]:
        """Resolve the leaf path ending at ``offset``; failures count as nothing resolved."""
        position = FilePosition(file_id=self.file_id, offset=offset)
        try:
            targets = self.analysis.goto_definition(position)
        except ResolutionError as e:
            logger.debug("Unresolved import at %s:%d: %s", self.file_id, offset, e)
            return None
        if not targets:
            return None
        return [UsedItem.from_navigation_target(target) for target in targets]


def item_to_use_item(item: Item) -> Optional[UseItem]:
    if isinstance(item, UseItem):
        return item
    return None
