"""Module trees and path resolution for ``use`` declarations."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple

from .database import CrateId, FileId, NavigationTarget, RootDatabase
from .errors import ParseError, ResolutionError
from .syntax import (
    DefItem,
    ExternCrateItem,
    Item,
    ModItem,
    SyntaxKind,
    TextRange,
    UseItem,
    UseTree,
)

logger = logging.getLogger(__name__)


MOD_RS_NAMES = {"mod.rs", "lib.rs", "main.rs"}


@dataclass
class ModuleData:
    id: int
    crate: Optional[CrateId]
    parent: Optional[int]
    file_id: FileId
    items: Tuple[Item, ...]
    child_dir: Optional[Path]
    target: NavigationTarget
    children: Optional[Dict[str, int]] = None

    @property
    def is_inline(self) -> bool:
        return self.target.kind is SyntaxKind.MODULE


@dataclass(frozen=True)
class ScopeDef:
    """A definition reachable by name, plus what it lets a path descend into."""

    target: NavigationTarget
    module: Optional[int] = None
    variants: Tuple[str, ...] = ()


class NameResolver:
    """
    Resolves import paths against lazily built per-crate module trees.

    Module trees grow on demand: a module's children are only looked up when
    a path walks into it, so resolving ``std::collections::HashMap`` parses a
    handful of files rather than the whole standard library.
    """

    def __init__(self, db: RootDatabase):
        self._db = db
        self._modules: List[ModuleData] = []
        self._crate_roots: Dict[CrateId, int] = {}
        self._file_modules: Dict[FileId, int] = {}
        self._built: Set[CrateId] = set()
        self._exported_macros: Dict[CrateId, Dict[str, List[ScopeDef]]] = {}

    def resolve_use_at(self, file_id: FileId, offset: int) -> List[NavigationTarget]:
        """
        Resolve the ``use`` leaf ending at ``offset`` to its definitions.

        Raises:
            ResolutionError: If the file cannot be parsed or no use path ends
                             at the offset.
        """
        try:
            source_file = self._db.parse(file_id)
        except ParseError as e:
            raise ResolutionError(str(e)) from e

        found = _find_leaf(source_file.items, offset, ())
        if found is None:
            raise ResolutionError(f"no use path ends at offset {offset}")
        inline_path, full_path, leaf = found
        if leaf.is_glob:
            return []

        module_id: Optional[int] = self.module_for_file(file_id)
        for name in inline_path:
            module_id = self.children(module_id).get(name)
            if module_id is None:
                return []

        defs = self.resolve_path(module_id, full_path, set())
        return _unique(d.target for d in defs)

    # Module tree

    def crate_root(self, crate_id: CrateId) -> int:
        module_id = self._crate_roots.get(crate_id)
        if module_id is None:
            crate = self._db.crates[crate_id]
            path = self._db.file_path(crate.root_file)
            module_id = self._new_file_module(crate_id, crate.name, None, crate.root_file, path.parent)
            self._crate_roots[crate_id] = module_id
        return module_id

    def module_for_file(self, file_id: FileId) -> int:
        """
        The module a file defines.

        Files no crate root reaches get a detached module that still belongs to
        the crate of their package, so ``crate::`` paths keep working.
        """
        module_id = self._file_modules.get(file_id)
        if module_id is not None:
            return module_id

        crates = self._db.crates_of_source_root(self._db.source_root_of(file_id))
        for crate in crates:
            self._build_crate(crate.id)
            module_id = self._file_modules.get(file_id)
            if module_id is not None:
                return module_id

        path = self._db.file_path(file_id)
        logger.debug("%s is not reachable from any crate root", path)
        crate_id = crates[0].id if crates else None
        return self._new_file_module(crate_id, path.stem, None, file_id, _child_dir(path, False))

    def children(self, module_id: int) -> Dict[str, int]:
        """Child modules by name, discovered on first call."""
        module = self._modules[module_id]
        if module.children is not None:
            return module.children

        children: Dict[str, int] = {}
        module.children = children
        for item in module.items:
            if not isinstance(item, ModItem) or item.name in children:
                continue
            if item.items is not None:
                children[item.name] = self._new_inline_module(module, item)
                continue

            file_path = self._module_file(module, item)
            if file_path is None:
                logger.debug("No file for `mod %s;` in %s", item.name, self._db.file_path(module.file_id))
                continue
            file_id = self._db.file_id(file_path)
            if file_id in self._ancestor_files(module_id):
                continue
            child_dir = _child_dir(file_path, item.path_attr is not None)
            children[item.name] = self._new_file_module(module.crate, item.name, module_id, file_id, child_dir)
        return children

    def _new_file_module(
        self,
        crate_id: Optional[CrateId],
        name: str,
        parent: Optional[int],
        file_id: FileId,
        child_dir: Optional[Path],
    ) -> int:
        try:
            source_file = self._db.parse(file_id)
            items, length = source_file.items, source_file.length
        except ParseError as e:
            logger.debug("Treating unparsable module as empty: %s", e)
            items, length = (), 0

        module_id = len(self._modules)
        self._modules.append(ModuleData(
            id=module_id,
            crate=crate_id,
            parent=parent,
            file_id=file_id,
            items=items,
            child_dir=child_dir,
            target=NavigationTarget(file_id, TextRange(0, length), name, SyntaxKind.SOURCE_FILE),
        ))
        self._file_modules.setdefault(file_id, module_id)
        return module_id

    def _new_inline_module(self, parent: ModuleData, item: ModItem) -> int:
        child_dir = None
        if parent.child_dir is not None:
            child_dir = parent.child_dir / (item.path_attr or item.name)
        module_id = len(self._modules)
        self._modules.append(ModuleData(
            id=module_id,
            crate=parent.crate,
            parent=parent.id,
            file_id=parent.file_id,
            items=item.items or (),
            child_dir=child_dir,
            target=NavigationTarget(parent.file_id, item.range, item.name, SyntaxKind.MODULE),
        ))
        return module_id

    def _module_file(self, module: ModuleData, item: ModItem) -> Optional[Path]:
        if item.path_attr is not None:
            if module.is_inline:
                base = module.child_dir
            else:
                base = self._db.file_path(module.file_id).parent
            if base is None:
                return None
            candidate = base / item.path_attr
            return candidate if candidate.is_file() else None

        if module.child_dir is None:
            return None
        for candidate in (module.child_dir / f"{item.name}.rs", module.child_dir / item.name / "mod.rs"):
            if candidate.is_file():
                return candidate
        return None

    def _ancestor_files(self, module_id: int) -> Set[FileId]:
        files = set()
        current: Optional[int] = module_id
        while current is not None:
            files.add(self._modules[current].file_id)
            current = self._modules[current].parent
        return files

    def _build_crate(self, crate_id: CrateId) -> None:
        """Expand the whole module tree of a crate."""
        if crate_id in self._built:
            return
        self._built.add(crate_id)
        pending = [self.crate_root(crate_id)]
        while pending:
            module_id = pending.pop()
            pending.extend(self.children(module_id).values())

    # Name resolution

    def resolve_path(self, module_id: int, segments: Tuple[str, ...], visited: Set[Tuple[int, str]]) -> List[ScopeDef]:
        """Resolve a full path as written inside ``module_id``."""
        if not segments:
            return []
        module = self._modules[module_id]
        first, rest = segments[0], segments[1:]

        if first == "crate":
            current = [self._module_def(self.crate_root(module.crate))] if module.crate is not None else []
        elif first == "self":
            current = [self._module_def(module_id)]
        elif first == "super":
            current = [self._module_def(module.parent)] if module.parent is not None else []
        elif first == "":
            # ::name is always an extern crate
            if not rest:
                return []
            current = self._extern_crate(module, rest[0])
            rest = rest[1:]
        else:
            current = self.lookup(module_id, first, visited)
            if not current and module.crate is not None and self._db.crates[module.crate].edition == "2015":
                # 2015 paths are relative to the crate root
                root = self.crate_root(module.crate)
                if root != module_id:
                    current = self.lookup(root, first, visited)
            if not current:
                current = self._extern_crate(module, first)

        for segment in rest:
            current = self._descend(current, segment, visited)
            if not current:
                break
        return current

    def _descend(self, defs: List[ScopeDef], segment: str, visited: Set[Tuple[int, str]]) -> List[ScopeDef]:
        result: List[ScopeDef] = []
        for scope_def in defs:
            if segment == "self":
                # `Enum::{self}` and `module::{self}` both name the prefix
                result.append(scope_def)
            elif scope_def.module is not None:
                if segment == "super":
                    parent = self._modules[scope_def.module].parent
                    if parent is not None:
                        result.append(self._module_def(parent))
                else:
                    result.extend(self.lookup(scope_def.module, segment, visited))
            elif segment in scope_def.variants:
                target = scope_def.target
                result.append(ScopeDef(
                    target=NavigationTarget(target.file_id, target.range, segment, SyntaxKind.ENUM_VARIANT),
                ))
        return _unique_defs(result)

    def lookup(self, module_id: int, name: str, visited: Set[Tuple[int, str]]) -> List[ScopeDef]:
        """
        Every definition ``name`` denotes inside a module, across namespaces.

        Direct items win over named imports, which win over glob imports.
        """
        key = (module_id, name)
        if key in visited:
            return []
        visited.add(key)

        module = self._modules[module_id]
        result: List[ScopeDef] = []
        children = self.children(module_id)

        for item in module.items:
            if isinstance(item, DefItem) and item.name == name:
                result.append(self._item_def(module, item))
            elif isinstance(item, ModItem) and item.name == name and name in children:
                result.append(self._module_def(children[name]))
            elif isinstance(item, ExternCrateItem) and (item.alias or item.name) == name:
                result.extend(self._extern_crate_item(module, item))

        if module.crate is not None and module_id == self._crate_roots.get(module.crate):
            result.extend(self._exported_macro(module.crate, name))
        if result:
            return _unique_defs(result)

        globs: List[Tuple[str, ...]] = []
        for item in module.items:
            if not isinstance(item, UseItem) or item.use_tree is None:
                continue
            for full_path, leaf in item.use_tree.leaves():
                if leaf.is_glob:
                    globs.append(full_path)
                elif leaf.local_name(full_path) == name:
                    result.extend(self.resolve_path(module_id, full_path, visited))
        if result:
            return _unique_defs(result)

        for prefix in globs:
            for scope_def in self.resolve_path(module_id, prefix, visited):
                if scope_def.module is not None:
                    result.extend(self.lookup(scope_def.module, name, visited))
                elif name in scope_def.variants:
                    result.extend(self._descend([scope_def], name, visited))
        return _unique_defs(result)

    def _module_def(self, module_id: int) -> ScopeDef:
        return ScopeDef(target=self._modules[module_id].target, module=module_id)

    def _item_def(self, module: ModuleData, item: DefItem) -> ScopeDef:
        return ScopeDef(
            target=NavigationTarget(module.file_id, item.range, item.name, item.kind),
            variants=item.variants,
        )

    def _extern_crate(self, module: ModuleData, name: str) -> List[ScopeDef]:
        if module.crate is None:
            return []
        dep = self._db.crates[module.crate].deps.get(name)
        if dep is None:
            return []
        return [self._module_def(self.crate_root(dep))]

    def _extern_crate_item(self, module: ModuleData, item: ExternCrateItem) -> List[ScopeDef]:
        if item.name == "self":
            if module.crate is None:
                return []
            return [self._module_def(self.crate_root(module.crate))]
        return self._extern_crate(module, item.name)

    def _exported_macro(self, crate_id: CrateId, name: str) -> List[ScopeDef]:
        """``#[macro_export]`` macros live at the crate root wherever they are defined."""
        table = self._exported_macros.get(crate_id)
        if table is None:
            self._build_crate(crate_id)
            table = {}
            for module in self._modules:
                if module.crate != crate_id:
                    continue
                for item in module.items:
                    if isinstance(item, DefItem) and item.macro_export:
                        table.setdefault(item.name, []).append(self._item_def(module, item))
            self._exported_macros[crate_id] = table
        return list(table.get(name, []))


def _find_leaf(
    items: Tuple[Item, ...],
    offset: int,
    inline_path: Tuple[str, ...],
) -> Optional[Tuple[Tuple[str, ...], Tuple[str, ...], UseTree]]:
    """Find the use leaf ending at ``offset``, with the inline modules around it."""
    for item in items:
        if not item.range.contains(offset):
            continue
        if isinstance(item, UseItem) and item.use_tree is not None:
            for full_path, leaf in item.use_tree.leaves():
                if leaf.range.end == offset:
                    return inline_path, full_path, leaf
        elif isinstance(item, ModItem) and item.items is not None:
            found = _find_leaf(item.items, offset, inline_path + (item.name,))
            if found is not None:
                return found
    return None


def _child_dir(file_path: Path, has_path_attr: bool) -> Path:
    """Directory holding the file modules declared inside ``file_path``."""
    if has_path_attr or file_path.name in MOD_RS_NAMES:
        return file_path.parent
    return file_path.parent / file_path.stem


def _unique(targets: Iterable[NavigationTarget]) -> List[NavigationTarget]:
    return list(dict.fromkeys(targets))


def _unique_defs(defs: Iterable[ScopeDef]) -> List[ScopeDef]:
    return list(dict.fromkeys(defs))
