"""Query entry points over a loaded project."""

from typing import List

from .database import FileId, FilePosition, NavigationTarget, RootDatabase
from .resolver import NameResolver
from .syntax import SourceFile


class Analysis:
    """
    Read-only view over a project snapshot.

    The snapshot memoizes parses and module trees, so one instance should be
    shared by every query of a run.
    """

    def __init__(self, db: RootDatabase):
        self._db = db
        self._resolver = NameResolver(db)

    def parse(self, file_id: FileId) -> SourceFile:
        """
        Return the syntax tree of a file.

        Raises:
            ParseError: If the file cannot be read or decoded.
        """
        return self._db.parse(file_id)

    def goto_definition(self, position: FilePosition) -> List[NavigationTarget]:
        """
        Resolve the import path ending at ``position`` to its definition sites.

        Raises:
            ResolutionError: If nothing at the position can be resolved.
        """
        return self._resolver.resolve_use_at(position.file_id, position.offset)


class AnalysisHost:
    """Owns the project database and hands out the analysis snapshot."""

    def __init__(self, db: RootDatabase):
        self._db = db
        self._analysis = Analysis(db)

    def analysis(self) -> Analysis:
        return self._analysis

    def raw_database(self) -> RootDatabase:
        return self._db
