"""Cargo manifest and lockfile reading."""

import logging
import os
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .discovery import MANIFEST_NAME
from .errors import ProjectLoadError

logger = logging.getLogger(__name__)


DEPENDENCY_TABLES = ("dependencies", "dev-dependencies", "build-dependencies")
LOCKFILE_NAME = "Cargo.lock"


@dataclass(frozen=True)
class Dependency:
    """One entry of a ``[dependencies]``-like table."""

    name: str  # extern crate name as written in code
    package: str  # package name in the registry or the path manifest
    path: Optional[Path] = None
    version: Optional[str] = None


@dataclass
class Package:
    """A Cargo package and the crate roots it defines."""

    name: str
    root: Path
    is_member: bool
    lib_name: str
    lib_path: Optional[Path] = None
    bin_paths: List[Path] = field(default_factory=list)
    dependencies: List[Dependency] = field(default_factory=list)
    edition: str = "2015"


def read_manifest(path: Path) -> Dict[str, Any]:
    """
    Read and decode a TOML manifest.

    Raises:
        ProjectLoadError: If the file cannot be read or is not valid TOML.
    """
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except OSError as e:
        raise ProjectLoadError(f"cannot read {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ProjectLoadError(f"invalid manifest {path}: {e}") from e


def read_package(
    manifest_path: Path,
    is_member: bool,
    workspace_deps: Optional[Dict[str, Any]] = None,
    workspace_root: Optional[Path] = None,
) -> Optional[Package]:
    """
    Build a ``Package`` from a manifest.

    Returns None for virtual manifests (no ``[package]`` table).
    """
    data = read_manifest(manifest_path)
    package_table = data.get("package")
    if not isinstance(package_table, dict) or "name" not in package_table:
        return None

    root = manifest_path.parent.resolve()
    name = str(package_table["name"])

    lib_table = data.get("lib") or {}
    lib_name = str(lib_table.get("name", name)).replace("-", "_")
    lib_path: Optional[Path] = None
    if "path" in lib_table:
        lib_path = (root / lib_table["path"]).resolve()
    elif (root / "src" / "lib.rs").is_file():
        lib_path = root / "src" / "lib.rs"

    bin_paths: List[Path] = []
    for bin_table in data.get("bin") or []:
        if isinstance(bin_table, dict) and "path" in bin_table:
            bin_paths.append((root / bin_table["path"]).resolve())
    if not bin_paths:
        if (root / "src" / "main.rs").is_file():
            bin_paths.append(root / "src" / "main.rs")
        bin_dir = root / "src" / "bin"
        if bin_dir.is_dir():
            bin_paths.extend(sorted(p for p in bin_dir.glob("*.rs") if p.is_file()))

    edition = package_table.get("edition", "2015")
    if not isinstance(edition, str):
        edition = "2015"

    return Package(
        name=name,
        root=root,
        is_member=is_member,
        lib_name=lib_name,
        lib_path=lib_path,
        bin_paths=bin_paths,
        dependencies=list(_iter_dependencies(data, root, workspace_deps or {}, workspace_root or root)),
        edition=edition,
    )


def _iter_dependencies(
    data: Dict[str, Any],
    root: Path,
    workspace_deps: Dict[str, Any],
    workspace_root: Path,
) -> Iterator[Dependency]:
    tables: List[Dict[str, Any]] = [data.get(name) or {} for name in DEPENDENCY_TABLES]
    for target in (data.get("target") or {}).values():
        if isinstance(target, dict):
            tables.extend(target.get(name) or {} for name in DEPENDENCY_TABLES)

    seen = set()
    for table in tables:
        for key, spec in table.items():
            dependency = _dependency(key, spec, root, workspace_deps, workspace_root)
            if dependency is not None and dependency.name not in seen:
                seen.add(dependency.name)
                yield dependency


def _dependency(
    key: str,
    spec: Any,
    root: Path,
    workspace_deps: Dict[str, Any],
    workspace_root: Path,
) -> Optional[Dependency]:
    base = root
    if isinstance(spec, dict) and spec.get("workspace") is True:
        inherited = workspace_deps.get(key)
        if inherited is None:
            logger.debug("Dependency %s inherits from a workspace entry that does not exist", key)
            return None
        spec = inherited
        base = workspace_root

    if isinstance(spec, str):
        return Dependency(name=key.replace("-", "_"), package=key, version=spec)
    if not isinstance(spec, dict):
        return None

    path = (base / spec["path"]).resolve() if "path" in spec else None
    version = spec.get("version")
    return Dependency(
        name=key.replace("-", "_"),
        package=str(spec.get("package", key)),
        path=path,
        version=str(version) if version is not None else None,
    )


def find_workspace_manifest(manifest_path: Path) -> Path:
    """
    The manifest a project should be loaded from.

    A package inside a workspace is loaded through the workspace root, so
    every member and the ``[workspace.dependencies]`` table are seen. The
    first ``[workspace]`` found above the package decides; a package it does
    not list stays on its own.
    """
    manifest_path = manifest_path.resolve()
    if "workspace" in read_manifest(manifest_path):
        return manifest_path

    package_dir = manifest_path.parent
    for directory in package_dir.parents:
        candidate = directory / MANIFEST_NAME
        if not candidate.is_file():
            continue
        workspace = read_manifest(candidate).get("workspace")
        if not isinstance(workspace, dict):
            continue
        if package_dir in _member_dirs(directory, workspace):
            logger.debug("%s is a member of the workspace at %s", package_dir, directory)
            return candidate
        return manifest_path
    return manifest_path


def load_workspace(manifest_path: Path) -> Tuple[Path, List[Package]]:
    """
    Load the member packages of the project rooted at ``manifest_path``.

    Returns:
        ``(workspace root, member packages)``.

    Raises:
        ProjectLoadError: If a manifest is unreadable or no package is found.
    """
    data = read_manifest(manifest_path)
    root = manifest_path.parent.resolve()
    workspace = data.get("workspace") or {}
    workspace_deps = workspace.get("dependencies") or {}

    member_dirs: List[Path] = []
    if "package" in data:
        member_dirs.append(root)
    for directory in _member_dirs(root, workspace):
        if directory not in member_dirs:
            member_dirs.append(directory)

    members: List[Package] = []
    for directory in member_dirs:
        manifest = directory / MANIFEST_NAME
        if not manifest.is_file():
            raise ProjectLoadError(f"workspace member {directory} has no {MANIFEST_NAME}")
        package = read_package(manifest, True, workspace_deps, root)
        if package is not None:
            members.append(package)

    if not members:
        raise ProjectLoadError(f"no packages found in {manifest_path}")

    return root, members


def _member_dirs(root: Path, workspace: Dict[str, Any]) -> List[Path]:
    """Directories listed by ``[workspace] members``, minus ``exclude``."""
    excluded = {(root / pattern).resolve() for pattern in workspace.get("exclude") or []}
    member_dirs: List[Path] = []
    for pattern in workspace.get("members") or []:
        for directory in _expand_member_pattern(root, pattern):
            if directory not in excluded and directory not in member_dirs:
                member_dirs.append(directory)
    return member_dirs


def _expand_member_pattern(root: Path, pattern: str) -> List[Path]:
    if not any(ch in pattern for ch in "*?["):
        return [(root / pattern).resolve()]
    return sorted(
        p.resolve() for p in root.glob(pattern)
        if p.is_dir() and (p / MANIFEST_NAME).is_file()
    )


def read_lockfile(root: Path) -> Dict[str, List[str]]:
    """Map package names to the registry versions pinned in Cargo.lock."""
    lockfile = root / LOCKFILE_NAME
    if not lockfile.is_file():
        return {}
    try:
        data = read_manifest(lockfile)
    except ProjectLoadError as e:
        logger.warning("Ignoring unreadable lockfile: %s", e)
        return {}

    versions: Dict[str, List[str]] = {}
    for entry in data.get("package") or []:
        if not isinstance(entry, dict) or "source" not in entry:
            continue
        versions.setdefault(str(entry.get("name")), []).append(str(entry.get("version")))
    return versions


def cargo_home() -> Path:
    """Cargo's home directory, honouring ``CARGO_HOME``."""
    env = os.environ.get("CARGO_HOME")
    if env:
        return Path(env)
    return Path.home() / ".cargo"


def locate_registry_package(
    package: str,
    locked_versions: List[str],
    home: Optional[Path] = None,
) -> Optional[Path]:
    """
    Find the unpacked sources of a registry package.

    Locked versions win; otherwise the highest version present is used.
    """
    src = (home or cargo_home()) / "registry" / "src"
    if not src.is_dir():
        return None

    try:
        index_dirs = sorted(p for p in src.iterdir() if p.is_dir())
    except OSError:
        return None

    for version in locked_versions:
        for index_dir in index_dirs:
            candidate = index_dir / f"{package}-{version}"
            if (candidate / MANIFEST_NAME).is_file():
                return candidate

    pattern = re.compile(rf"^{re.escape(package)}-(\d[\w.+-]*)$")
    found: List[Tuple[Tuple[int, ...], Path]] = []
    for index_dir in index_dirs:
        for candidate in index_dir.glob(f"{package}-*"):
            match = pattern.match(candidate.name)
            if match and (candidate / MANIFEST_NAME).is_file():
                found.append((_version_key(match.group(1)), candidate))

    if not found:
        return None
    return max(found)[1]


def _version_key(version: str) -> Tuple[int, ...]:
    """Numeric sort key for ``major.minor.patch``; pre-release tags are ignored."""
    core = re.split(r"[-+]", version, maxsplit=1)[0]
    return tuple(int(part) if part.isdigit() else 0 for part in core.split("."))
