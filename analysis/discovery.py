"""File discovery utilities for walking package source trees."""

from pathlib import Path
from typing import Iterator, Optional, Set


RUST_EXTENSIONS = {".rs"}
DEFAULT_EXCLUDE_DIRS = {
    ".git", ".hg", ".svn",
    "target", "node_modules", "__pycache__",
    "venv", ".venv",
    ".idea", ".vscode",
}

MANIFEST_NAME = "Cargo.toml"


def iter_files(
    root: Path,
    include_ext: Optional[Set[str]] = None,
    exclude_dirs: Optional[Set[str]] = None,
    skip_nested_packages: bool = True,
    skip_unreadable: bool = True,
) -> Iterator[Path]:
    """
    Iterate over source files of one package directory in sorted order.

    Args:
        root: Package directory to scan.
        include_ext: Set of file extensions to include. If None, uses
                    RUST_EXTENSIONS.
        exclude_dirs: Set of directory names to skip.
                     If None, uses DEFAULT_EXCLUDE_DIRS.
        skip_nested_packages: If True, do not descend into subdirectories
                              holding their own Cargo.toml (they are separate
                              packages with their own source root).
        skip_unreadable: If True, directories that cannot be listed are skipped;
                         otherwise the PermissionError propagates.

    Yields:
        Path objects for matching files.
    """
    if include_ext is None:
        include_ext = RUST_EXTENSIONS
    if exclude_dirs is None:
        exclude_dirs = DEFAULT_EXCLUDE_DIRS

    root = root.resolve()

    def _walk(current: Path) -> Iterator[Path]:
        try:
            entries = sorted(current.iterdir())
        except PermissionError:
            if not skip_unreadable:
                raise
            return

        for entry in entries:
            if entry.is_dir():
                if entry.name in exclude_dirs:
                    continue
                if skip_nested_packages and (entry / MANIFEST_NAME).is_file():
                    continue
                yield from _walk(entry)
            elif entry.is_file():
                if entry.suffix.lower() in include_ext:
                    yield entry

    yield from _walk(root)


def find_manifest(start: Path) -> Optional[Path]:
    """Return the nearest Cargo.toml at or above ``start``."""
    start = start.resolve()
    for directory in [start, *start.parents]:
        candidate = directory / MANIFEST_NAME
        if candidate.is_file():
            return candidate
    return None


def get_relative_path(file_path: Path, root: Path) -> Path:
    """Get the path relative to root, handling edge cases."""
    try:
        return file_path.resolve().relative_to(root.resolve())
    except ValueError:
        return file_path
