"""Markdown output for the document graph."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from .config import ProjectConfig
from .models import (
    CompoundEntry,
    DocumentGraph,
    Entry,
    FileEntry,
    FunctionEntry,
    MethodEntry,
    PropertyEntry,
    VariableEntry,
)

log = logging.getLogger(__name__)

HEADER = "<!-- AUTO-GENERATED. DO NOT EDIT. Run `docgraph` to regenerate. -->"


def page_name(file: FileEntry) -> str:
    """``mylib/utils`` is written to ``mylib-utils.md``."""
    return file.module_name.replace("/", "-") + ".md"


def _cell(text: str) -> str:
    """Escape pipes so provider text such as ``int | None`` stays in one cell."""
    return text.replace("|", "\\|")


def _brief(text: str) -> str:
    """First line of a description, safe for a table cell."""
    first = text.strip().split("\n")[0] if text.strip() else ""
    return _cell(first)


def generate_index(graph: DocumentGraph, config: ProjectConfig) -> str:
    """Generate README.md with one row per module."""
    lines = [
        HEADER,
        "",
        f"# {config.title}",
        "",
        "## Modules",
        "",
        "| Module | Exports | Description |",
        "|--------|---------|-------------|",
    ]

    for file in graph.files:
        lines.append(
            f"| [`{_cell(file.module_name)}`]({page_name(file)}) "
            f"| {len(file.exports)} | {_brief(file.description)} |"
        )

    lines.append("")
    return "\n".join(lines)


def _callable_lines(entry: FunctionEntry, language: str) -> list[str]:
    lines = [f"```{language}", f"{entry.name}{entry.signature}", "```", ""]
    if entry.description:
        lines.extend([entry.description, ""])
    if entry.parameters:
        lines.append("**Parameters:**")
        for p in entry.parameters:
            default = f" = `{p.default}`" if p.default is not None else ""
            desc = f": {p.description}" if p.description else ""
            lines.append(f"- `{p.name}` (`{p.type}`){default}{desc}")
        lines.append("")
    if entry.return_type:
        lines.extend([f"**Returns:** `{entry.return_type}`", ""])
    return lines


def _properties_table(properties: list[PropertyEntry]) -> list[str]:
    lines = [
        "| Property | Type | Access | Description |",
        "|----------|------|--------|-------------|",
    ]
    for p in properties:
        access = f"{p.access} static" if p.static else p.access
        readonly = " (readonly)" if p.readonly else ""
        lines.append(
            f"| `{_cell(p.name)}` | `{_cell(p.type)}` | {access}{readonly} "
            f"| {_brief(p.description)} |"
        )
    lines.append("")
    return lines


def _method_markers(method: MethodEntry) -> str:
    """``protected static`` style qualifiers; empty for plain public methods."""
    markers = [] if method.access == "public" else [method.access]
    if method.static:
        markers.append("static")
    if method.abstract:
        markers.append("abstract")
    return " ".join(markers)


def _tag_lines(entry: Entry, language: str) -> list[str]:
    lines: list[str] = []
    if entry.throws:
        lines.append("**Throws:**")
        for t in entry.throws:
            desc = f": {t.description}" if t.description else ""
            lines.append(f"- `{t.type}`{desc}")
        lines.append("")
    if entry.since:
        lines.extend([f"*Since {entry.since}*", ""])
    if entry.see:
        lines.append("**See:** " + ", ".join(entry.see))
        lines.append("")
    if entry.examples:
        lines.append("**Example:**")
        for ex in entry.examples:
            lines.extend([f"```{language}", ex, "```"])
        lines.append("")
    return lines


def _entry_lines(entry: Entry, language: str) -> list[str]:
    lines = [f'<a id="{entry.id}"></a>', "", f"### {entry.export_name or entry.name}", ""]

    if isinstance(entry, FunctionEntry):
        lines.extend(_callable_lines(entry, language))
    elif isinstance(entry, CompoundEntry):
        lines.extend([f"*{entry.doc_kind}* `{entry.name}`", ""])
        if entry.description:
            lines.extend([entry.description, ""])
        if entry.properties:
            lines.extend(_properties_table(entry.properties))
        for method in entry.methods:
            lines.extend([f"#### {method.name}", ""])
            markers = _method_markers(method)
            if markers:
                lines.extend([f"*{markers}*", ""])
            lines.extend(_callable_lines(method, language))
            lines.extend(_tag_lines(method, language))
    elif isinstance(entry, VariableEntry):
        lines.extend([f"```{language}", f"{entry.name}: {entry.type}", "```", ""])
        if entry.description:
            lines.extend([entry.description, ""])

    lines.extend(_tag_lines(entry, language))
    lines.extend(["---", ""])
    return lines


def generate_module_page(file: FileEntry, config: ProjectConfig) -> str:
    """Generate the reference page of one module."""
    lines = [HEADER, "", f"# {file.module_name}", ""]
    if file.description:
        lines.extend([file.description, ""])

    if not file.exports:
        lines.extend(["*This module has no documented exports.*", ""])
        return "\n".join(lines)

    for entry in file.exports:
        lines.extend(_entry_lines(entry, config.language))

    lines.append(f"*Source: {file.file_name}*")
    lines.append("")
    return "\n".join(lines)


def write_docs(graph: DocumentGraph, config: ProjectConfig) -> list[Path]:
    """Clear the destination and write the index and module pages."""
    destination = config.destination
    log.info("clearing %s", destination)
    if destination.exists():
        shutil.rmtree(destination)
    destination.mkdir(parents=True)

    pages = {"README.md": generate_index(graph, config)}
    for file in graph.files:
        pages[page_name(file)] = generate_module_page(file, config)

    written = []
    for name, content in pages.items():
        path = destination / name
        log.debug("rendering %s", name)
        path.write_text(content, encoding="utf-8")
        written.append(path)
    return written
