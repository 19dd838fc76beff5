"""Project walker that assembles the used items of every member file."""

import logging
from pathlib import Path
from typing import Dict, Optional, Set

from analysis.database import PackageRoot
from analysis.host import AnalysisHost
from analysis.loader import load_cargo

from .collector import UsedItemResolver
from .model import CrateMap

logger = logging.getLogger(__name__)


def list_used_items_in_cargo(
    root: Path,
    exclude_dirs: Optional[Set[str]] = None,
    load_sysroot: bool = True,
) -> CrateMap:
    """
    Load the Cargo project at ``root`` and list the used items of each file.

    Args:
        root: Project directory (the nearest Cargo.toml at or above it is used).
        exclude_dirs: Directory names to skip while walking packages.
        load_sysroot: If True, resolve imports into the standard library when
                      its sources are installed.

    Returns:
        CrateMap keyed by project-relative file path.

    Raises:
        ProjectLoadError: If the project cannot be loaded.
    """
    analysis_host, source_map = load_cargo(
        Path(root),
        exclude_dirs=exclude_dirs,
        load_sysroot=load_sysroot,
    )
    return build_crate_map(analysis_host, source_map)


def build_crate_map(analysis_host: AnalysisHost, source_map: Dict[int, PackageRoot]) -> CrateMap:
    """Run the per-file resolver over every file of every member package."""
    analysis = analysis_host.analysis()
    db = analysis_host.raw_database()
    crate_map = CrateMap()

    for source_root_id, package_root in sorted(source_map.items()):
        if not package_root.is_member:
            continue

        for file_id in db.source_root(source_root_id).walk():
            resolver = UsedItemResolver(analysis, file_id)
            path = db.file_relative_path(file_id)
            crate_map.insert(path, resolver.used_items())

    logger.info("Collected used items for %d files", len(crate_map))
    return crate_map
