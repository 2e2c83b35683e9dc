"""Data models for the extracted documentation graph."""

from __future__ import annotations

from collections.abc import Collection, Iterable
from dataclasses import dataclass, field
from typing import ClassVar, Literal, TypeVar

Access = Literal["public", "protected", "private"]

E = TypeVar("E", bound="Entry")

MEMBER_KINDS = frozenset({"method", "property"})


@dataclass(kw_only=True)
class ThrowsInfo:
    """One @throws tag."""

    type: str = "any"
    description: str = ""


@dataclass(kw_only=True)
class Entry:
    """A documented unit. ``doc_kind`` is fixed per subclass."""

    doc_kind: ClassVar[str] = ""

    name: str
    description: str = ""
    since: str | None = None
    see: list[str] = field(default_factory=list)
    examples: list[str] = field(default_factory=list)
    throws: list[ThrowsInfo] = field(default_factory=list)
    id: str | None = None
    export_name: str | None = None
    source_file: str | None = None  # FileEntry.file_name of the owning module


@dataclass(kw_only=True)
class ParameterEntry(Entry):
    doc_kind: ClassVar[str] = "parameter"

    type: str
    default: str | None = None
    variadic: bool = False


@dataclass(kw_only=True)
class FunctionEntry(Entry):
    doc_kind: ClassVar[str] = "function"

    parameters: list[ParameterEntry] = field(default_factory=list)
    return_type: str  # Return type of this declaration site
    signature: str  # Full callable type, e.g. "[T](x: T) -> T"


@dataclass(kw_only=True)
class MethodEntry(FunctionEntry):
    doc_kind: ClassVar[str] = "method"

    access: Access = "public"
    static: bool = False
    abstract: bool = False


@dataclass(kw_only=True)
class PropertyEntry(Entry):
    doc_kind: ClassVar[str] = "property"

    type: str
    readonly: bool = False
    access: Access = "public"
    static: bool = False  # Class-level attribute, e.g. ClassVar


@dataclass(kw_only=True)
class CompoundEntry(Entry):
    """An entry owning name-sorted methods and properties."""

    methods: list[MethodEntry] = field(default_factory=list)
    properties: list[PropertyEntry] = field(default_factory=list)


@dataclass(kw_only=True)
class ClassEntry(CompoundEntry):
    doc_kind: ClassVar[str] = "class"


@dataclass(kw_only=True)
class InterfaceEntry(CompoundEntry):
    doc_kind: ClassVar[str] = "interface"


@dataclass(kw_only=True)
class VariableEntry(Entry):
    doc_kind: ClassVar[str] = "variable"

    type: str


@dataclass(kw_only=True)
class FileEntry(Entry):
    doc_kind: ClassVar[str] = "file"

    file_name: str  # Relative to the source root
    module_name: str  # "mylib" | "mylib/utils"
    exports: list[Entry] = field(default_factory=list)


@dataclass
class DocumentGraph:
    """Output of one extraction pass, handed to the renderer."""

    docs: list[Entry] = field(default_factory=list)
    files: list[FileEntry] = field(default_factory=list)

    def file_of(self, entry: Entry) -> FileEntry | None:
        """Resolve an entry's back-reference to its owning file."""
        if entry.source_file is None:
            return None
        for file in self.files:
            if file.file_name == entry.source_file:
                return file
        return None

    def find(self, entry_id: str) -> Entry | None:
        for entry in self.docs:
            if entry.id == entry_id:
                return entry
        return None


def sort_entries_by_name(entries: list[E]) -> list[E]:
    """Sort entries by name in place.

    The sort is stable, so entries with equal names keep their insertion order.
    """
    entries.sort(key=lambda e: e.name)
    return entries


def is_member_entry(entry: Entry) -> bool:
    return entry.doc_kind in MEMBER_KINDS


def exclude_members(
    entries: Iterable[E], access: Collection[str] = ("private",)
) -> list[E]:
    """Drop member entries whose access is in ``access``.

    Classes and interfaces are kept and their methods and properties are
    filtered in place. Top-level entries are never dropped.
    """
    kept: list[E] = []
    for entry in entries:
        if is_member_entry(entry) and getattr(entry, "access", "public") in access:
            continue
        if isinstance(entry, CompoundEntry):
            entry.methods = exclude_members(entry.methods, access)
            entry.properties = exclude_members(entry.properties, access)
        kept.append(entry)
    return kept


def exclude_privates(entries: Iterable[E]) -> list[E]:
    return exclude_members(entries, ("private",))
