"""In-memory store of files, source roots and crates for one loaded project."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Set

from .discovery import get_relative_path, iter_files
from .errors import ParseError
from .parser import parse_source
from .syntax import SourceFile, SyntaxKind, TextRange

logger = logging.getLogger(__name__)

FileId = int
SourceRootId = int
CrateId = int


@dataclass(frozen=True)
class FilePosition:
    file_id: FileId
    offset: int


@dataclass(frozen=True)
class NavigationTarget:
    """A definition site returned by goto-definition."""

    file_id: FileId
    range: TextRange
    name: str
    kind: SyntaxKind


@dataclass(frozen=True)
class PackageRoot:
    """Where a source root lives and whether it belongs to the project itself."""

    path: Path
    is_member: bool


@dataclass
class CrateData:
    id: CrateId
    name: str
    root_file: FileId
    source_root: Optional[SourceRootId]
    edition: str = "2015"
    deps: Dict[str, CrateId] = field(default_factory=dict)


class SourceRoot:
    """The set of source files of one package directory."""

    def __init__(self, db: "RootDatabase", root_id: SourceRootId, path: Path,
                 exclude_dirs: Optional[Set[str]] = None, skip_unreadable: bool = True):
        self.id = root_id
        self.path = path
        self._db = db
        self._exclude_dirs = exclude_dirs
        self._skip_unreadable = skip_unreadable
        self._files: Optional[List[FileId]] = None

    def walk(self) -> Iterator[FileId]:
        """
        Iterate over the file ids of this root in path order.

        Raises:
            OSError: If a directory cannot be listed and the root does not
                     skip unreadable directories.
        """
        if self._files is None:
            self._files = [
                self._db.file_id(path)
                for path in iter_files(
                    self.path,
                    exclude_dirs=self._exclude_dirs,
                    skip_unreadable=self._skip_unreadable,
                )
            ]
        return iter(self._files)

    def __repr__(self) -> str:
        return f"SourceRoot(id={self.id}, path={self.path})"


class RootDatabase:
    """
    Files, source roots and the crate graph of a loaded project.

    File contents are read on first use and parsed files are memoized, so a
    database is cheap to query repeatedly once warm.
    """

    def __init__(self, project_root: Path):
        self.project_root = project_root.resolve()
        self._paths: List[Path] = []
        self._ids: Dict[Path, FileId] = {}
        self._texts: Dict[FileId, bytes] = {}
        self._parsed: Dict[FileId, SourceFile] = {}
        self._source_roots: Dict[SourceRootId, SourceRoot] = {}
        self._file_roots: Dict[FileId, Optional[SourceRootId]] = {}
        self.crates: List[CrateData] = []

    def file_id(self, path: Path) -> FileId:
        """Return the id of ``path``, registering it on first sight."""
        path = path.resolve()
        file_id = self._ids.get(path)
        if file_id is None:
            file_id = len(self._paths)
            self._paths.append(path)
            self._ids[path] = file_id
        return file_id

    def file_path(self, file_id: FileId) -> Path:
        return self._paths[file_id]

    def file_relative_path(self, file_id: FileId) -> str:
        """Path of the file relative to the project root, with forward slashes."""
        return get_relative_path(self._paths[file_id], self.project_root).as_posix()

    def file_text(self, file_id: FileId) -> bytes:
        """
        Contents of a file, read from disk on first access.

        Raises:
            OSError: If the file cannot be read.
        """
        text = self._texts.get(file_id)
        if text is None:
            text = self._paths[file_id].read_bytes()
            self._texts[file_id] = text
        return text

    def parse(self, file_id: FileId) -> SourceFile:
        """
        Parse a file, memoizing the result.

        Raises:
            ParseError: If the file cannot be read or decoded.
        """
        parsed = self._parsed.get(file_id)
        if parsed is not None:
            return parsed
        try:
            text = self.file_text(file_id)
        except OSError as e:
            raise ParseError(f"cannot read {self._paths[file_id]}: {e}") from e
        parsed = parse_source(text)
        if parsed.has_errors:
            logger.debug("Syntax errors in %s; using the recovered items", self._paths[file_id])
        self._parsed[file_id] = parsed
        return parsed

    def add_source_root(
        self,
        path: Path,
        exclude_dirs: Optional[Set[str]] = None,
        skip_unreadable: bool = True,
    ) -> SourceRoot:
        root_id = len(self._source_roots)
        source_root = SourceRoot(self, root_id, path.resolve(), exclude_dirs, skip_unreadable)
        self._source_roots[root_id] = source_root
        self._file_roots.clear()
        return source_root

    def source_root(self, root_id: SourceRootId) -> SourceRoot:
        return self._source_roots[root_id]

    def source_root_of(self, file_id: FileId) -> Optional[SourceRootId]:
        """The most specific source root containing the file, if any."""
        if file_id in self._file_roots:
            return self._file_roots[file_id]
        path = self._paths[file_id]
        best: Optional[SourceRoot] = None
        for source_root in self._source_roots.values():
            if path.is_relative_to(source_root.path):
                if best is None or len(source_root.path.parts) > len(best.path.parts):
                    best = source_root
        root_id = best.id if best is not None else None
        self._file_roots[file_id] = root_id
        return root_id

    def add_crate(
        self,
        name: str,
        root_file: FileId,
        source_root: Optional[SourceRootId],
        edition: str = "2015",
    ) -> CrateData:
        crate = CrateData(
            id=len(self.crates),
            name=name,
            root_file=root_file,
            source_root=source_root,
            edition=edition,
        )
        self.crates.append(crate)
        return crate

    def crates_of_source_root(self, root_id: Optional[SourceRootId]) -> List[CrateData]:
        return [crate for crate in self.crates if crate.source_root == root_id]
