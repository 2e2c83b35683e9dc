"""Type-introspection provider interface.

A provider parses a set of source modules into an immutable program snapshot
and answers symbol and type queries about it. The extraction core only talks
to providers through :class:`Program` and :class:`TypeChecker`.
"""

from __future__ import annotations

import inspect
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum, Flag, auto
from pathlib import Path
from typing import Any

_TAG_LINE = re.compile(r"^@(\w+)\s*(.*)$")


class DeclarationKind(Enum):
    CLASS = "class"
    FUNCTION = "function"
    INTERFACE = "interface"
    VARIABLE = "variable"
    ENUM = "enum"
    TYPE_ALIAS = "type_alias"
    METHOD = "method"
    PROPERTY = "property"
    GET_ACCESSOR = "get_accessor"
    SET_ACCESSOR = "set_accessor"
    PARAMETER = "parameter"


class Modifier(Flag):
    NONE = 0
    PROTECTED = auto()
    PRIVATE = auto()
    READONLY = auto()
    STATIC = auto()
    ABSTRACT = auto()


@dataclass(frozen=True)
class Tag:
    """A raw ``@name text`` tag of a documentation comment."""

    name: str
    text: str = ""


@dataclass(eq=False)
class Declaration:
    """A syntactic construct introducing a name.

    ``node`` is the provider's own syntax node. Declarations hash by identity.
    """

    kind: DeclarationKind
    name: str | None
    node: Any = None
    modifiers: Modifier = Modifier.NONE
    members: list[Declaration] = field(default_factory=list)
    parameters: list[Declaration] = field(default_factory=list)


@dataclass(eq=False)
class Symbol:
    """The resolved identity a declaration binds to."""

    name: str
    declarations: list[Declaration] = field(default_factory=list)
    value_declaration: Declaration | None = None
    documentation: list[str] = field(default_factory=list)
    tags: list[Tag] = field(default_factory=list)


@dataclass(frozen=True)
class Signature:
    """Call signature of a single declaration site."""

    return_type: str


@dataclass(frozen=True)
class SourceFile:
    file_name: Path
    is_declaration_file: bool = False


class TypeChecker(ABC):
    """Answers symbol and type queries against one program snapshot."""

    def __init__(self) -> None:
        self._bindings: dict[Declaration, Symbol] = {}

    def bind(self, declaration: Declaration, symbol: Symbol) -> None:
        self._bindings[declaration] = symbol

    def symbol_at(self, declaration: Declaration) -> Symbol | None:
        """Return the symbol bound at ``declaration``, or None if unresolvable."""
        return self._bindings.get(declaration)

    def symbol_to_string(self, symbol: Symbol) -> str:
        return symbol.name

    @abstractmethod
    def module_symbol(self, source_file: SourceFile) -> Symbol | None:
        """Return the symbol of a module."""

    @abstractmethod
    def exports_of_module(self, module: Symbol) -> list[Symbol]:
        """Return the symbols a module exports, in declaration order."""

    @abstractmethod
    def type_of_symbol(self, symbol: Symbol) -> str:
        """Render the type of a symbol's value.

        For callables this is the full callable type, overloads and generic
        parameters included.
        """

    @abstractmethod
    def declared_type_of_symbol(self, symbol: Symbol) -> str:
        """Render the type a class-like symbol declares, e.g. ``Box[T]``."""

    @abstractmethod
    def signature_of(self, declaration: Declaration) -> Signature | None:
        """Return the call signature of one callable declaration site."""

    def initializer_of(self, declaration: Declaration) -> str | None:
        """Render the default value of a parameter, if it has one."""
        return None


class Program(ABC):
    """An immutable, fully parsed set of source modules."""

    entry_file: str = ""

    def __init__(self, root: Path) -> None:
        self.root = root

    @abstractmethod
    def source_files(self) -> list[SourceFile]:
        """Return the program's source files in enumeration order."""

    @abstractmethod
    def type_checker(self) -> TypeChecker:
        pass


def split_doc_comment(text: str | None) -> tuple[str, list[Tag]]:
    """Split a documentation comment into its description and raw tags.

    The description is the text before the first ``@tag`` line. Each tag runs
    until the next tag line; continuation lines keep their relative indent.
    """
    if not text:
        return "", []

    lines = inspect.cleandoc(text).split("\n")
    description: list[str] = []
    tags: list[tuple[str, list[str]]] = []
    tag_indent = 0

    for line in lines:
        indent = len(line) - len(line.lstrip())
        match = _TAG_LINE.match(line.strip())
        # Example code may contain decorators indented under the tag
        in_example = bool(tags) and tags[-1][0] == "example" and indent > tag_indent
        if match and not in_example:
            tags.append((match.group(1), [match.group(2)]))
            tag_indent = indent
        elif tags:
            tags[-1][1].append(line)
        else:
            description.append(line)

    return "\n".join(description).strip(), [
        Tag(name, _dedent_block("\n".join(body))) for name, body in tags
    ]


def _dedent_block(text: str) -> str:
    """Dedent a block of text, preserving relative indentation."""
    lines = text.split("\n")
    if len(lines) == 1:
        return text.strip()
    # The first line follows the tag name, so only the rest decides the indent
    rest = [line for line in lines[1:] if line.strip()]
    min_indent = min((len(line) - len(line.lstrip()) for line in rest), default=0)
    dedented = [lines[0].strip()] + [line[min_indent:] for line in lines[1:]]
    return "\n".join(dedented).strip()


def param_docs(tags: list[Tag]) -> dict[str, str]:
    """Map parameter names to their ``@param name description`` text."""
    docs: dict[str, str] = {}
    for tag in tags:
        if tag.name != "param":
            continue
        name, _, desc = tag.text.partition(" ")
        docs[name.rstrip(":").lstrip("*")] = desc.strip()
    return docs
