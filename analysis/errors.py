"""Exceptions raised by the analysis layer."""


class AnalysisError(Exception):
    """Base class for every error raised while analysing a Cargo project."""


class ProjectLoadError(AnalysisError):
    """The project could not be loaded at all (missing or broken manifest, unreadable files)."""


class ParseError(AnalysisError):
    """A single source file could not be turned into a syntax tree."""


class ResolutionError(AnalysisError):
    """A position in a source file could not be resolved to a definition."""
