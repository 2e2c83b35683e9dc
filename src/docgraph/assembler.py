"""Drive the extraction pass over a whole program."""

from __future__ import annotations

import logging

from .config import ProjectConfig
from .dispatcher import DocumentAccumulator, document_module, relative_path
from .models import DocumentGraph, exclude_members, sort_entries_by_name
from .provider import Program
from .pysource import PythonProgram
from .sqlsource import SqlProgram

log = logging.getLogger(__name__)


def build_program(config: ProjectConfig) -> Program:
    """Create the provider program for the configured source language."""
    if config.language == "sql":
        return SqlProgram(config.source)
    return PythonProgram(config.source)


def excluded_access(config: ProjectConfig) -> tuple[str, ...]:
    """Access levels to drop. Excluding protected members excludes private ones too."""
    if config.exclude_protected:
        return ("private", "protected")
    if config.exclude_private:
        return ("private",)
    return ()


def generate_documentation(program: Program, config: ProjectConfig) -> DocumentGraph:
    """Extract the sorted document graph of every module in ``program``."""
    checker = program.type_checker()
    accumulator = DocumentAccumulator()

    log.info("parsing source files")
    for source_file in program.source_files():
        if source_file.is_declaration_file:
            continue
        log.debug("parsing %s", relative_path(source_file.file_name, program.root))
        document_module(
            source_file,
            program,
            checker,
            config.module_name,
            accumulator,
            entry_file=config.entry_file,
        )

    graph = accumulator.to_graph()

    excluded = excluded_access(config)
    if excluded:
        graph.docs = exclude_members(graph.docs, excluded)

    sort_entries_by_name(graph.docs)
    sort_entries_by_name(graph.files)
    return graph
