"""Exceptions raised by docgraph."""

from __future__ import annotations


class DocgraphError(Exception):
    """Base exception for docgraph operations."""

    pass


class ConfigError(DocgraphError):
    """Raised when the project configuration cannot be read or validated."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class SourceError(DocgraphError):
    """Raised when a source file cannot be read or parsed."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class UnresolvedSymbolError(DocgraphError):
    """Raised when a parameter binding has no symbol.

    Member and declaration sites skip unresolvable symbols; parameters do not.
    """

    pass
