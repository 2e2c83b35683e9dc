"""Extract a cross-referenced documentation graph from typed source modules."""

__version__ = "0.1.0"

from .assembler import build_program, generate_documentation
from .config import ProjectConfig, load_config
from .errors import ConfigError, DocgraphError, SourceError, UnresolvedSymbolError
from .models import (
    ClassEntry,
    DocumentGraph,
    Entry,
    FileEntry,
    FunctionEntry,
    InterfaceEntry,
    MethodEntry,
    ParameterEntry,
    PropertyEntry,
    ThrowsInfo,
    VariableEntry,
    exclude_members,
    exclude_privates,
    sort_entries_by_name,
)

__all__ = [
    "ClassEntry",
    "ConfigError",
    "DocgraphError",
    "DocumentGraph",
    "Entry",
    "FileEntry",
    "FunctionEntry",
    "InterfaceEntry",
    "MethodEntry",
    "ParameterEntry",
    "ProjectConfig",
    "PropertyEntry",
    "SourceError",
    "ThrowsInfo",
    "UnresolvedSymbolError",
    "VariableEntry",
    "build_program",
    "exclude_members",
    "exclude_privates",
    "generate_documentation",
    "load_config",
    "sort_entries_by_name",
]
