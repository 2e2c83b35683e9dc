"""Route declarations to their builders and walk each module's exports."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

from .builders import build_class, build_function, build_interface, build_variable
from .docblock import get_documentation
from .models import DocumentGraph, Entry, FileEntry, sort_entries_by_name
from .provider import Declaration, DeclarationKind, Program, SourceFile, TypeChecker

log = logging.getLogger(__name__)

Builder = Callable[[Declaration, TypeChecker], Entry | None]

BUILDERS: dict[DeclarationKind, Builder] = {
    DeclarationKind.CLASS: build_class,
    DeclarationKind.FUNCTION: build_function,
    DeclarationKind.INTERFACE: build_interface,
    DeclarationKind.VARIABLE: build_variable,
}


@dataclass
class DocumentAccumulator:
    """Collects the entries of one extraction pass."""

    docs: list[Entry] = field(default_factory=list)
    files: list[FileEntry] = field(default_factory=list)

    def add_export(self, file: FileEntry, entry: Entry) -> None:
        file.exports.append(entry)
        self.docs.append(entry)

    def add_file(self, file: FileEntry) -> None:
        self.files.append(file)

    def to_graph(self) -> DocumentGraph:
        return DocumentGraph(docs=self.docs, files=self.files)


def is_supported(kind: DeclarationKind) -> bool:
    return kind in BUILDERS


def classify(declaration: Declaration, checker: TypeChecker) -> Entry | None:
    """Build the entry for a declaration, or None for unsupported kinds."""
    builder = BUILDERS.get(declaration.kind)
    if builder is None:
        # Enumerations and type aliases have no builder yet
        log.debug("unsupported %s declaration %s", declaration.kind.value, declaration.name)
        return None
    return builder(declaration, checker)


def relative_path(path: Path, root: Path) -> str:
    """Convert absolute path to relative from the source root."""
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()


def module_name_for(relative: str, module_name: str, entry_file: str) -> str:
    """``mylib`` for the root entry file, ``mylib/utils`` for ``utils.py``."""
    if relative == entry_file:
        return module_name
    return f"{module_name}/{PurePosixPath(relative).with_suffix('')}"


def id_prefix_for(module_name: str) -> str:
    return module_name.replace("/", "-") + "-"


def document_module(
    source_file: SourceFile,
    program: Program,
    checker: TypeChecker,
    module_name: str,
    accumulator: DocumentAccumulator,
    entry_file: str | None = None,
) -> FileEntry | None:
    """Document every export of one module and add it to the accumulator."""
    module_symbol = checker.module_symbol(source_file)
    if module_symbol is None:
        log.debug("no module symbol for %s", source_file.file_name)
        return None

    relative = relative_path(source_file.file_name, program.root)
    doc = get_documentation(module_symbol, checker)
    file_entry = FileEntry(
        **doc.fields(),
        file_name=relative,
        module_name=module_name_for(relative, module_name, entry_file or program.entry_file),
    )
    id_prefix = id_prefix_for(file_entry.module_name)

    for export in checker.exports_of_module(module_symbol):
        if export.value_declaration is not None:
            declarations = [export.value_declaration]
        else:
            declarations = export.declarations

        export_name = checker.symbol_to_string(export)
        for declaration in declarations:
            entry = classify(declaration, checker)
            if entry is None:
                continue
            entry.source_file = file_entry.file_name
            entry.export_name = export_name
            entry.id = f"{id_prefix}{export_name}"
            accumulator.add_export(file_entry, entry)

    sort_entries_by_name(file_entry.exports)
    accumulator.add_file(file_entry)
    return file_entry
