"""SQL schema provider built on the pglast parser.

Documentation comments are the ``--`` lines directly above a statement:

    -- @brief Check if a subject has a permission on a resource
    -- @param p_resource Resource identifier
    -- @since 1.2
    CREATE FUNCTION authz.check(p_resource text) RETURNS boolean ...
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

import pglast
from pglast.enums import ConstrType, FunctionParameterMode
from pglast.stream import RawStream

from .errors import SourceError
from .provider import (
    Declaration,
    DeclarationKind,
    Modifier,
    Program,
    Signature,
    SourceFile,
    Symbol,
    Tag,
    TypeChecker,
    param_docs,
    split_doc_comment,
)

log = logging.getLogger(__name__)

_COMMENT_MARKER = re.compile(r"^\s*--\s?")
_RESULT_MODES = (FunctionParameterMode.FUNC_PARAM_OUT, FunctionParameterMode.FUNC_PARAM_TABLE)


@dataclass
class _SqlFunction:
    stmt: pglast.ast.CreateFunctionStmt
    parameters: list[tuple[str, pglast.ast.FunctionParameter]]
    return_type: str


def _type_name_to_str(tn) -> str:
    """Convert pglast TypeName to string."""
    if tn is None:
        return "void"
    names = [n.sval for n in tn.names]
    # Skip common schema prefixes for cleaner output
    if names and names[0] in ("pg_catalog", "public"):
        names = names[1:]
    base = ".".join(names)
    if tn.arrayBounds:
        base += "[]"
    if tn.setof:
        return f"setof {base}"
    return base


def _relation_name(rv) -> str:
    return ".".join(part for part in (rv.schemaname, rv.relname) if part)


def _is_internal(name: str) -> bool:
    """Internal objects are not exported (e.g. ``authz._resolve``)."""
    return "._" in name or name.startswith("_")


def _first_token(content: str, location: int) -> int:
    """Skip whitespace and comments from ``location`` to the statement's first token."""
    i = location
    while i < len(content):
        if content[i].isspace():
            i += 1
        elif content.startswith("--", i):
            end = content.find("\n", i)
            i = len(content) if end < 0 else end + 1
        elif content.startswith("/*", i):
            end = content.find("*/", i)
            i = len(content) if end < 0 else end + 2
        else:
            break
    return i


def _strip_markers(lines: list[str]) -> str:
    return "\n".join(_COMMENT_MARKER.sub("", line) for line in lines)


def _leading_comment(content: str, location: int) -> str | None:
    """Return the ``--`` block directly above the statement at ``location``."""
    lines = content[: _first_token(content, location)].split("\n")
    if lines[-1].strip():
        return None
    block: list[str] = []
    for line in reversed(lines[:-1]):
        if not line.strip().startswith("--"):
            break
        block.append(line)
    if not block:
        return None
    return _strip_markers(block[::-1])


def _header_comment(content: str) -> str | None:
    """Return the file's header block: leading ``--`` lines followed by a blank line."""
    lines = content.lstrip("\n").split("\n")
    block: list[str] = []
    for line in lines:
        if not line.strip().startswith("--"):
            break
        block.append(line)
    if not block or len(block) == len(lines) or lines[len(block)].strip():
        return None
    return _strip_markers(block)


def _trailing_comment(
    content: str, location: int | None, next_location: int | None = None
) -> str:
    """Return the ``-- comment`` after a column definition on the same line.

    The comment belongs to the last column on its line, so a column followed
    by another one on the same line gets none.
    """
    if location is None or location < 0:
        return ""
    end = content.find("\n", location)
    same_line = next_location is not None and location < next_location
    if same_line and (end < 0 or next_location < end):
        return ""
    line = content[location : end if end >= 0 else len(content)]
    marker = line.find("--")
    return line[marker + 2 :].strip() if marker >= 0 else ""


def _is_overload_of(symbol: Symbol | None, decl: Declaration) -> bool:
    return (
        symbol is not None
        and decl.kind is DeclarationKind.FUNCTION
        and symbol.value_declaration is not None
        and symbol.value_declaration.kind is DeclarationKind.FUNCTION
    )


def _documentation(comment: str | None) -> tuple[list[str], list[Tag]]:
    """Split a comment block; ``@brief`` text belongs to the description."""
    description, tags = split_doc_comment(comment)
    fragments = [description] if description else []
    for tag in tags:
        if tag.name == "brief":
            fragments.append(tag.text)
    return ["\n".join(fragments)], [t for t in tags if t.name != "brief"]


class SqlTypeChecker(TypeChecker):
    """Symbol and type queries over a set of parsed SQL files."""

    def __init__(self, root: Path, source_files: list[SourceFile]) -> None:
        super().__init__()
        self.root = root
        self._modules: dict[Path, Symbol] = {}
        self._exports: dict[Symbol, dict[str, Symbol]] = {}

        for source_file in source_files:
            self._parse(source_file)

    def _parse(self, source_file: SourceFile) -> None:
        path = source_file.file_name
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise SourceError(f"Cannot read {path}: {e}", str(path)) from e
        try:
            stmts = pglast.parse_sql(content)
        except pglast.Error as e:
            raise SourceError(f"Failed to parse {path.name}: {e}", str(path)) from e

        documentation, tags = _documentation(_header_comment(content))
        module = Symbol(
            name=path.relative_to(self.root).with_suffix("").as_posix(),
            documentation=documentation,
            tags=tags,
        )
        exports: dict[str, Symbol] = {}

        for raw in stmts:
            decl = self._declaration(raw.stmt, content)
            if decl is None:
                continue
            doc = _leading_comment(content, raw.stmt_location or 0)
            symbol = exports.get(decl.name)
            if not _is_overload_of(symbol, decl):
                documentation, tags = _documentation(doc)
                symbol = Symbol(
                    name=decl.name,
                    value_declaration=decl,
                    documentation=documentation,
                    tags=tags,
                )
                if not _is_internal(decl.name):
                    exports[decl.name] = symbol
            # Repeated CREATE FUNCTION with one name are overloads
            symbol.declarations.append(decl)
            self.bind(decl, symbol)
            if decl.kind is DeclarationKind.FUNCTION:
                self._bind_parameters(decl, _documentation(doc)[1])

        self._modules[path] = module
        self._exports[module] = exports
        log.debug("parsed %s: %d exports", path.name, len(exports))

    def _declaration(self, stmt, content: str) -> Declaration | None:
        if isinstance(stmt, pglast.ast.CreateFunctionStmt):
            return self._function(stmt)
        if isinstance(stmt, pglast.ast.CreateStmt):
            return Declaration(
                DeclarationKind.CLASS,
                _relation_name(stmt.relation),
                node=stmt,
                members=self._columns(stmt.tableElts, content),
            )
        if isinstance(stmt, pglast.ast.CompositeTypeStmt):
            return Declaration(
                DeclarationKind.INTERFACE,
                _relation_name(stmt.typevar),
                node=stmt,
                members=self._columns(stmt.coldeflist, content),
            )
        if isinstance(stmt, pglast.ast.CreateEnumStmt):
            name = ".".join(n.sval for n in stmt.typeName)
            return Declaration(DeclarationKind.ENUM, name, node=stmt)
        return None

    def _function(self, stmt) -> Declaration:
        name = ".".join(n.sval for n in stmt.funcname)
        inputs: list[tuple[str, pglast.ast.FunctionParameter]] = []
        result_cols: list[str] = []
        modes: set = set()

        for p in stmt.parameters or ():
            param_type = _type_name_to_str(p.argType)
            if p.mode in _RESULT_MODES:
                modes.add(p.mode)
                result_cols.append(f"{p.name}: {param_type}")
            else:
                inputs.append((p.name or f"${len(inputs) + 1}", p))

        if FunctionParameterMode.FUNC_PARAM_TABLE in modes:
            return_type = f"table({', '.join(result_cols)})"
        elif result_cols:
            return_type = f"record({', '.join(result_cols)})"
        else:
            return_type = _type_name_to_str(stmt.returnType)

        return Declaration(
            DeclarationKind.FUNCTION,
            name,
            node=_SqlFunction(stmt, inputs, return_type),
            parameters=[
                Declaration(DeclarationKind.PARAMETER, param_name, node=p)
                for param_name, p in inputs
            ],
        )

    def _bind_parameters(self, decl: Declaration, tags: list[Tag]) -> None:
        documented = param_docs(tags)
        for param in decl.parameters:
            self.bind(param, Symbol(
                name=param.name,
                declarations=[param],
                value_declaration=param,
                documentation=[documented.get(param.name, "")],
            ))

    def _columns(self, elements, content: str) -> list[Declaration]:
        members: list[Declaration] = []
        columns = [e for e in elements or () if isinstance(e, pglast.ast.ColumnDef)]
        locations = [getattr(e, "location", None) for e in columns] + [None]
        for index, element in enumerate(columns):
            modifiers = Modifier.NONE
            if any(
                getattr(c, "contype", None) == ConstrType.CONSTR_GENERATED
                for c in element.constraints or ()
            ):
                modifiers |= Modifier.READONLY
            decl = Declaration(
                DeclarationKind.PROPERTY, element.colname, node=element, modifiers=modifiers
            )
            comment = _trailing_comment(content, locations[index], locations[index + 1])
            self.bind(decl, Symbol(
                name=element.colname,
                declarations=[decl],
                value_declaration=decl,
                documentation=[comment],
            ))
            members.append(decl)
        return members

    # Queries

    def module_symbol(self, source_file: SourceFile) -> Symbol | None:
        return self._modules.get(source_file.file_name)

    def exports_of_module(self, module: Symbol) -> list[Symbol]:
        return list(self._exports.get(module, {}).values())

    def type_of_symbol(self, symbol: Symbol) -> str:
        decl = symbol.value_declaration
        if decl is None:
            return "any"
        if decl.kind is DeclarationKind.FUNCTION:
            rendered = [self._render_callable(d) for d in symbol.declarations]
            if len(rendered) == 1:
                return rendered[0]
            return "{ " + "; ".join(rendered) + " }"
        if decl.kind is DeclarationKind.PROPERTY:
            return _type_name_to_str(decl.node.typeName)
        if decl.kind is DeclarationKind.PARAMETER:
            return _type_name_to_str(decl.node.argType)
        return symbol.name

    def declared_type_of_symbol(self, symbol: Symbol) -> str:
        return symbol.name

    def _render_parameters(self, decl: Declaration) -> str:
        parts = []
        for param in decl.parameters:
            part = f"{param.name}: {_type_name_to_str(param.node.argType)}"
            default = self.initializer_of(param)
            if default is not None:
                part += f" = {default}"
            parts.append(part)
        return f"({', '.join(parts)})"

    def _render_callable(self, decl: Declaration) -> str:
        return f"{self._render_parameters(decl)} -> {decl.node.return_type}"

    def signature_of(self, declaration: Declaration) -> Signature | None:
        if not isinstance(declaration.node, _SqlFunction):
            return None
        return Signature(return_type=declaration.node.return_type)

    def initializer_of(self, declaration: Declaration) -> str | None:
        node = declaration.node
        if isinstance(node, pglast.ast.FunctionParameter) and node.defexpr is not None:
            return RawStream()(node.defexpr)
        return None


class SqlProgram(Program):
    """All SQL files below a source root."""

    entry_file = "index.sql"

    def __init__(self, root: Path | str) -> None:
        super().__init__(Path(root))
        self._files: list[SourceFile] | None = None
        self._checker: SqlTypeChecker | None = None

    def source_files(self) -> list[SourceFile]:
        if self._files is None:
            if not self.root.is_dir():
                raise SourceError(f"Source root not found: {self.root}", str(self.root))
            self._files = [SourceFile(p) for p in sorted(self.root.rglob("*.sql"))]
            log.debug("found %d sql files under %s", len(self._files), self.root)
        return list(self._files)

    def type_checker(self) -> SqlTypeChecker:
        if self._checker is None:
            self._checker = SqlTypeChecker(self.root, self.source_files())
        return self._checker
