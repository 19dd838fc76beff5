"""Analysis layer: Cargo loading, Rust parsing and import resolution."""

from .database import FilePosition, NavigationTarget, PackageRoot, RootDatabase
from .errors import AnalysisError, ParseError, ProjectLoadError, ResolutionError
from .host import Analysis, AnalysisHost
from .loader import load_cargo
from .parser import parse_source
from .syntax import SourceFile, SyntaxKind, UseItem, UseTree

__all__ = [
    "Analysis",
    "AnalysisError",
    "AnalysisHost",
    "FilePosition",
    "NavigationTarget",
    "PackageRoot",
    "ParseError",
    "ProjectLoadError",
    "ResolutionError",
    "RootDatabase",
    "SourceFile",
    "SyntaxKind",
    "UseItem",
    "UseTree",
    "load_cargo",
    "parse_source",
]
