"""Loading a Cargo project into an analysis database."""

import logging
from collections import deque
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

from .database import CrateId, PackageRoot, RootDatabase, SourceRoot, SourceRootId
from .discovery import MANIFEST_NAME, find_manifest
from .errors import ProjectLoadError
from .host import AnalysisHost
from .manifest import (
    Dependency,
    Package,
    find_workspace_manifest,
    load_workspace,
    locate_registry_package,
    read_lockfile,
    read_package,
)
from .sysroot import SYSROOT_CRATES, SYSROOT_EDITION, find_sysroot_library, sysroot_crate_roots

logger = logging.getLogger(__name__)


def load_cargo(
    root: Path,
    exclude_dirs: Optional[Set[str]] = None,
    load_sysroot: bool = True,
    cargo_home: Optional[Path] = None,
) -> Tuple[AnalysisHost, Dict[SourceRootId, PackageRoot]]:
    """
    Load the Cargo project containing ``root``.

    Member packages have all their files read up front. Dependencies (path,
    registry and, optionally, the standard library) are registered as
    non-member source roots whose files are only read when resolution needs
    them.

    Args:
        root: Directory inside the project; the nearest Cargo.toml wins.
        exclude_dirs: Directory names skipped when walking packages.
        load_sysroot: If True, make std, core and alloc resolvable when the
                      toolchain ships their sources.
        cargo_home: Override for Cargo's home directory (registry sources).

    Returns:
        The analysis host and a map from source root id to package root.

    Raises:
        ProjectLoadError: If no manifest is found or member files are unreadable.
    """
    root = Path(root)
    if not root.is_dir():
        raise ProjectLoadError(f"'{root}' is not a directory")

    manifest = find_manifest(root)
    if manifest is None:
        raise ProjectLoadError(f"could not find {MANIFEST_NAME} in '{root}' or any parent directory")

    workspace_root, members = load_workspace(find_workspace_manifest(manifest))
    locked = read_lockfile(workspace_root)
    packages, dep_dirs = _collect_packages(members, locked, cargo_home)

    db = RootDatabase(workspace_root)
    source_map: Dict[SourceRootId, PackageRoot] = {}
    lib_crates: Dict[Path, CrateId] = {}
    package_crates: List[Tuple[Package, List[CrateId]]] = []

    for package in packages:
        source_root = db.add_source_root(package.root, exclude_dirs, skip_unreadable=not package.is_member)
        source_map[source_root.id] = PackageRoot(path=package.root, is_member=package.is_member)

        if package.is_member:
            _read_member_files(db, source_root)

        crate_ids: List[CrateId] = []
        if package.lib_path is not None:
            crate = db.add_crate(package.lib_name, db.file_id(package.lib_path), source_root.id, package.edition)
            lib_crates[package.root] = crate.id
            crate_ids.append(crate.id)
        for bin_path in package.bin_paths:
            name = package.lib_name if bin_path.name == "main.rs" else bin_path.stem.replace("-", "_")
            crate_ids.append(db.add_crate(name, db.file_id(bin_path), source_root.id, package.edition).id)
        package_crates.append((package, crate_ids))

    for package, crate_ids in package_crates:
        lib_id = lib_crates.get(package.root)
        for crate_id in crate_ids:
            deps = db.crates[crate_id].deps
            if lib_id is not None and crate_id != lib_id:
                deps[package.lib_name] = lib_id
            for dependency in package.dependencies:
                dep_dir = dep_dirs.get((package.root, dependency.name))
                if dep_dir is not None and dep_dir in lib_crates:
                    deps[dependency.name] = lib_crates[dep_dir]

    if load_sysroot:
        _add_sysroot(db, source_map)

    member_count = sum(1 for package in packages if package.is_member)
    logger.info(
        "Loaded %d packages (%d members, %d crates) from %s",
        len(packages), member_count, len(db.crates), workspace_root,
    )
    return AnalysisHost(db), source_map


def _read_member_files(db: RootDatabase, source_root: SourceRoot) -> None:
    """Read every file of a member package up front; any failure is fatal."""
    try:
        file_ids = list(source_root.walk())
    except OSError as e:
        raise ProjectLoadError(f"cannot walk {source_root.path}: {e}") from e
    for file_id in file_ids:
        try:
            db.file_text(file_id)
        except OSError as e:
            raise ProjectLoadError(f"cannot read {db.file_path(file_id)}: {e}") from e


def _collect_packages(
    members: List[Package],
    locked: Dict[str, List[str]],
    cargo_home: Optional[Path],
) -> Tuple[List[Package], Dict[Tuple[Path, str], Path]]:
    """Breadth-first walk of the dependency graph starting at the members."""
    known: Dict[Path, Package] = {package.root: package for package in members}
    dep_dirs: Dict[Tuple[Path, str], Path] = {}
    ordered: List[Package] = []
    queue = deque(members)

    while queue:
        package = queue.popleft()
        ordered.append(package)
        for dependency in package.dependencies:
            dep_dir = _dependency_dir(dependency, locked, cargo_home)
            if dep_dir is None:
                logger.debug("Sources of %s (needed by %s) not found", dependency.package, package.name)
                continue
            dep_dirs[(package.root, dependency.name)] = dep_dir
            if dep_dir in known:
                continue
            try:
                dep_package = read_package(dep_dir / MANIFEST_NAME, False)
            except ProjectLoadError as e:
                logger.debug("Skipping dependency %s: %s", dependency.package, e)
                continue
            if dep_package is None:
                continue
            known[dep_dir] = dep_package
            queue.append(dep_package)

    return ordered, dep_dirs


def _dependency_dir(
    dependency: Dependency,
    locked: Dict[str, List[str]],
    cargo_home: Optional[Path],
) -> Optional[Path]:
    if dependency.path is not None:
        if (dependency.path / MANIFEST_NAME).is_file():
            return dependency.path.resolve()
        return None
    found = locate_registry_package(dependency.package, locked.get(dependency.package, []), cargo_home)
    return found.resolve() if found is not None else None


def _add_sysroot(db: RootDatabase, source_map: Dict[SourceRootId, PackageRoot]) -> None:
    library = find_sysroot_library()
    if library is None:
        return

    project_crates = list(db.crates)
    sysroot: Dict[str, CrateId] = {}
    for name, lib_rs in sysroot_crate_roots(library):
        source_root = db.add_source_root(lib_rs.parent.parent)
        source_map[source_root.id] = PackageRoot(path=source_root.path, is_member=False)
        sysroot[name] = db.add_crate(name, db.file_id(lib_rs), source_root.id, SYSROOT_EDITION).id

    for name, crate_id in sysroot.items():
        for dep_name in SYSROOT_CRATES[name]:
            if dep_name in sysroot:
                db.crates[crate_id].deps[dep_name] = sysroot[dep_name]

    for crate in project_crates:
        for name, crate_id in sysroot.items():
            crate.deps.setdefault(name, crate_id)
    logger.debug("Standard library sources loaded from %s", library)
