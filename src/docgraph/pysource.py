"""Python source provider.

Parses ``*.py`` modules with the ``ast`` module, without importing them.
``*.pyi`` stubs are declaration-only files and are not parsed.
"""

from __future__ import annotations

import ast
import logging
from dataclasses import dataclass, field
from pathlib import Path

from .errors import SourceError
from .provider import (
    Declaration,
    DeclarationKind,
    Modifier,
    Program,
    Signature,
    SourceFile,
    Symbol,
    TypeChecker,
    param_docs,
    split_doc_comment,
)

log = logging.getLogger(__name__)

ModuleKey = tuple[str, ...]

_ENUM_BASES = frozenset({"Enum", "IntEnum", "StrEnum", "Flag", "IntFlag", "ReprEnum"})
_INTERFACE_BASES = frozenset({"Protocol", "TypedDict"})
_GENERIC_BASES = frozenset({"Generic", "Protocol"})
_PROPERTY_DECORATORS = frozenset({"property", "cached_property"})
_QUALIFIERS = frozenset(
    {"Final", "ReadOnly", "ClassVar", "Required", "NotRequired", "Annotated"}
)
_NESTED_SCOPES = (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef, ast.Lambda)
_FunctionNode = ast.FunctionDef | ast.AsyncFunctionDef


@dataclass
class _ParameterNode:
    arg: ast.arg
    default: ast.expr | None
    star: str = ""  # "*" | "**"


@dataclass
class _Module:
    key: ModuleKey
    source_file: SourceFile
    tree: ast.Module
    symbol: Symbol
    locals: dict[str, Symbol] = field(default_factory=dict)
    imports: dict[str, tuple[ModuleKey, str]] = field(default_factory=dict)
    star_imports: list[ModuleKey] = field(default_factory=list)
    reexports: list[str] = field(default_factory=list)
    all_names: list[str] | None = None


def _base_name(node: ast.expr) -> str:
    """Return the trailing name of ``x``, ``a.x``, ``x[...]`` or ``x(...)``."""
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return node.attr
    if isinstance(node, ast.Subscript):
        return _base_name(node.value)
    if isinstance(node, ast.Call):
        return _base_name(node.func)
    return ""


def _decorator_names(node: _FunctionNode | ast.ClassDef) -> list[str]:
    return [_base_name(d) for d in node.decorator_list]


def _is_overload(declaration: Declaration) -> bool:
    node = declaration.node
    return isinstance(node, _FunctionNode) and "overload" in _decorator_names(node)


def _name_modifiers(name: str) -> Modifier:
    if name.startswith("__") and name.endswith("__"):
        return Modifier.NONE
    if name.startswith("__"):
        return Modifier.PRIVATE
    if name.startswith("_"):
        return Modifier.PROTECTED
    return Modifier.NONE


def _docstring_after(body: list[ast.stmt], index: int) -> str | None:
    """Return the attribute docstring following ``body[index]``, if any."""
    if index + 1 >= len(body):
        return None
    nxt = body[index + 1]
    if (
        isinstance(nxt, ast.Expr)
        and isinstance(nxt.value, ast.Constant)
        and isinstance(nxt.value.value, str)
    ):
        return nxt.value.value
    return None


def _unwrap_annotation(
    annotation: ast.expr | None,
) -> tuple[ast.expr | None, set[str]]:
    """Strip type qualifiers such as ``Final[...]`` from an annotation."""
    qualifiers: set[str] = set()
    while annotation is not None:
        name = _base_name(annotation)
        if name not in _QUALIFIERS:
            break
        qualifiers.add(name)
        if not isinstance(annotation, ast.Subscript):
            annotation = None
            break
        inner = annotation.slice
        if name == "Annotated" and isinstance(inner, ast.Tuple):
            inner = inner.elts[0]
        annotation = inner
    return annotation, qualifiers


def _infer_type(value: ast.expr | None) -> str:
    if isinstance(value, ast.UnaryOp):
        value = value.operand
    if isinstance(value, ast.Constant):
        if value.value is None:
            return "None"
        if value.value is Ellipsis:
            return "Any"
        return type(value.value).__name__
    if isinstance(value, ast.JoinedStr):
        return "str"
    if isinstance(value, (ast.List, ast.ListComp)):
        return "list"
    if isinstance(value, (ast.Tuple)):
        return "tuple"
    if isinstance(value, (ast.Dict, ast.DictComp)):
        return "dict"
    if isinstance(value, (ast.Set, ast.SetComp)):
        return "set"
    if isinstance(value, ast.GeneratorExp):
        return "Generator"
    if isinstance(value, ast.Lambda):
        return "Callable[..., Any]"
    if isinstance(value, ast.Call):
        name = _base_name(value.func)
        # Calling a class instantiates it
        if name[:1].isupper():
            return name
    return "Any"


def _walk_scope(node: ast.AST):
    """Yield the nodes of a function body without entering nested scopes."""
    stack = list(ast.iter_child_nodes(node))
    while stack:
        child = stack.pop()
        yield child
        if not isinstance(child, _NESTED_SCOPES):
            stack.extend(ast.iter_child_nodes(child))


def _return_type(node: _FunctionNode) -> str:
    if node.returns is not None:
        return ast.unparse(node.returns)
    returns_value = False
    for child in _walk_scope(node):
        if isinstance(child, (ast.Yield, ast.YieldFrom)):
            if isinstance(node, ast.AsyncFunctionDef):
                return "AsyncGenerator"
            return "Generator"
        if isinstance(child, ast.Return) and child.value is not None:
            returns_value = True
    return "Any" if returns_value else "None"


def _type_params(node: ast.AST) -> list[ast.AST]:
    # PEP 695 type parameters exist on Python 3.12+
    return list(getattr(node, "type_params", None) or [])


def _render_type_params(node: ast.AST) -> str:
    params = _type_params(node)
    if not params:
        return ""
    return "[" + ", ".join(ast.unparse(p) for p in params) + "]"


def _render_arg(arg: ast.arg, default: ast.expr | None) -> str:
    text = arg.arg
    if arg.annotation is not None:
        text += f": {ast.unparse(arg.annotation)}"
        if default is not None:
            text += f" = {ast.unparse(default)}"
    elif default is not None:
        text += f"={ast.unparse(default)}"
    return text


def _positional(args: ast.arguments) -> list[tuple[ast.arg, ast.expr | None]]:
    positional = [*args.posonlyargs, *args.args]
    defaults: list[ast.expr | None] = [None] * (len(positional) - len(args.defaults))
    defaults.extend(args.defaults)
    return list(zip(positional, defaults))


def _render_parameters(args: ast.arguments, drop_first: bool) -> str:
    parts: list[str] = []
    for index, (arg, default) in enumerate(_positional(args)):
        if drop_first and index == 0:
            continue
        parts.append(_render_arg(arg, default))
        if parts and index == len(args.posonlyargs) - 1:
            parts.append("/")
    if args.vararg is not None:
        parts.append("*" + _render_arg(args.vararg, None))
    elif args.kwonlyargs:
        parts.append("*")
    for arg, default in zip(args.kwonlyargs, args.kw_defaults):
        parts.append(_render_arg(arg, default))
    if args.kwarg is not None:
        parts.append("**" + _render_arg(args.kwarg, None))
    return "(" + ", ".join(parts) + ")"


def _parameter_nodes(args: ast.arguments, drop_first: bool) -> list[_ParameterNode]:
    nodes = [_ParameterNode(arg, default) for arg, default in _positional(args)]
    if drop_first:
        nodes = nodes[1:]
    if args.vararg is not None:
        nodes.append(_ParameterNode(args.vararg, None, "*"))
    nodes.extend(
        _ParameterNode(arg, default)
        for arg, default in zip(args.kwonlyargs, args.kw_defaults)
    )
    if args.kwarg is not None:
        nodes.append(_ParameterNode(args.kwarg, None, "**"))
    return nodes


class PythonTypeChecker(TypeChecker):
    """Symbol and type queries over a set of parsed Python modules."""

    def __init__(self, root: Path, source_files: list[SourceFile]) -> None:
        super().__init__()
        self.root = root
        self._modules: dict[ModuleKey, _Module] = {}
        self._by_file: dict[Path, _Module] = {}
        self._by_symbol: dict[Symbol, _Module] = {}
        self._bound_methods: set[Declaration] = set()

        for source_file in source_files:
            if source_file.is_declaration_file:
                continue
            module = self._parse(source_file)
            self._modules[module.key] = module
            self._by_file[source_file.file_name] = module
            self._by_symbol[module.symbol] = module

    # Parsing

    def _module_key(self, path: Path) -> ModuleKey:
        parts = path.relative_to(self.root).with_suffix("").parts
        if parts and parts[-1] == "__init__":
            parts = parts[:-1]
        return tuple(parts)

    def _parse(self, source_file: SourceFile) -> _Module:
        path = source_file.file_name
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise SourceError(f"Cannot read {path}: {e}", str(path)) from e
        try:
            tree = ast.parse(text, filename=str(path))
        except SyntaxError as e:
            raise SourceError(f"Cannot parse {path}: {e}", str(path)) from e

        relative = path.relative_to(self.root).with_suffix("").as_posix()
        description, tags = split_doc_comment(ast.get_docstring(tree, clean=False))
        symbol = Symbol(name=relative, documentation=[description], tags=tags)
        module = _Module(
            key=self._module_key(path),
            source_file=source_file,
            tree=tree,
            symbol=symbol,
        )
        self._collect(module)
        return module

    def _collect(self, module: _Module) -> None:
        body = module.tree.body
        for index, stmt in enumerate(body):
            if isinstance(stmt, ast.ClassDef):
                self._bind(module.locals, self._class(stmt), ast.get_docstring(stmt, clean=False))
            elif isinstance(stmt, _FunctionNode):
                self._function(module.locals, stmt, DeclarationKind.FUNCTION, Modifier.NONE)
            elif isinstance(stmt, ast.AnnAssign) and isinstance(stmt.target, ast.Name):
                if stmt.target.id == "__all__":
                    module.all_names = _string_list(stmt.value)
                    continue
                decl = Declaration(DeclarationKind.VARIABLE, stmt.target.id, node=stmt)
                self._bind(module.locals, decl, _docstring_after(body, index))
            elif isinstance(stmt, ast.Assign):
                self._module_assign(module, stmt, _docstring_after(body, index))
            elif isinstance(stmt, ast.AugAssign):
                if _target_name(stmt.target) == "__all__" and module.all_names is not None:
                    module.all_names.extend(_string_list(stmt.value))
            elif isinstance(stmt, ast.ImportFrom):
                self._import_from(module, stmt)
            elif type(stmt).__name__ == "TypeAlias":
                decl = Declaration(DeclarationKind.TYPE_ALIAS, stmt.name.id, node=stmt)
                self._bind(module.locals, decl, _docstring_after(body, index))

    def _module_assign(self, module: _Module, stmt: ast.Assign, doc: str | None) -> None:
        for target in stmt.targets:
            if isinstance(target, ast.Name):
                if target.id == "__all__":
                    module.all_names = _string_list(stmt.value)
                    continue
                decl = Declaration(DeclarationKind.VARIABLE, target.id, node=stmt)
                self._bind(module.locals, decl, doc)
            elif isinstance(target, (ast.Tuple, ast.List)):
                for elt in target.elts:
                    if isinstance(elt, ast.Name):
                        decl = Declaration(DeclarationKind.VARIABLE, elt.id, node=elt)
                        self._bind(module.locals, decl, None)

    def _import_from(self, module: _Module, stmt: ast.ImportFrom) -> None:
        target = self._import_target(module, stmt)
        if target is None:
            return
        for alias in stmt.names:
            if alias.name == "*":
                module.star_imports.append(target)
            else:
                module.imports[alias.asname or alias.name] = (target, alias.name)
                # "from x import y as y" marks an explicit re-export
                if alias.asname == alias.name:
                    module.reexports.append(alias.name)

    def _import_target(self, module: _Module, stmt: ast.ImportFrom) -> ModuleKey | None:
        names = tuple(stmt.module.split(".")) if stmt.module else ()
        if stmt.level == 0:
            if names[:1] == (self.root.name,):
                return names[1:]
            return names
        package = module.key
        if not module.source_file.file_name.name == "__init__.py":
            package = package[:-1]
        up = stmt.level - 1
        if up > len(package):
            return None
        return package[: len(package) - up] + names

    def _class(self, node: ast.ClassDef) -> Declaration:
        bases = {_base_name(b) for b in node.bases}
        if bases & _ENUM_BASES:
            kind = DeclarationKind.ENUM
        elif bases & _INTERFACE_BASES:
            kind = DeclarationKind.INTERFACE
        else:
            kind = DeclarationKind.CLASS
        return Declaration(kind, node.name, node=node, members=self._members(node))

    def _members(self, node: ast.ClassDef) -> list[Declaration]:
        table: dict[str, Symbol] = {}
        members: list[Declaration] = []
        setters = {
            d.value.id
            for stmt in node.body
            if isinstance(stmt, _FunctionNode)
            for d in stmt.decorator_list
            if isinstance(d, ast.Attribute)
            and d.attr == "setter"
            and isinstance(d.value, ast.Name)
        }

        for index, stmt in enumerate(node.body):
            doc = _docstring_after(node.body, index)
            if isinstance(stmt, _FunctionNode):
                members.append(self._method(table, stmt, setters))
            elif isinstance(stmt, ast.AnnAssign) and isinstance(stmt.target, ast.Name):
                _, qualifiers = _unwrap_annotation(stmt.annotation)
                modifiers = _name_modifiers(stmt.target.id)
                if qualifiers & {"Final", "ReadOnly"}:
                    modifiers |= Modifier.READONLY
                if "ClassVar" in qualifiers:
                    modifiers |= Modifier.STATIC
                decl = Declaration(
                    DeclarationKind.PROPERTY, stmt.target.id, node=stmt, modifiers=modifiers
                )
                self._bind(table, decl, doc)
                members.append(decl)
            elif isinstance(stmt, ast.Assign):
                for target in stmt.targets:
                    if isinstance(target, ast.Name):
                        decl = Declaration(
                            DeclarationKind.PROPERTY,
                            target.id,
                            node=stmt,
                            modifiers=_name_modifiers(target.id),
                        )
                        self._bind(table, decl, doc)
                    else:
                        # Unpacking binds no single name
                        decl = Declaration(DeclarationKind.PROPERTY, None, node=stmt)
                    members.append(decl)
        return members

    def _method(
        self, table: dict[str, Symbol], node: _FunctionNode, setters: set[str]
    ) -> Declaration:
        decorators = _decorator_names(node)
        modifiers = _name_modifiers(node.name)
        if any(
            isinstance(d, ast.Attribute) and d.attr in ("setter", "deleter")
            for d in node.decorator_list
        ):
            kind = DeclarationKind.SET_ACCESSOR
        elif _PROPERTY_DECORATORS.intersection(decorators):
            kind = DeclarationKind.GET_ACCESSOR
            if node.name not in setters:
                modifiers |= Modifier.READONLY
        else:
            kind = DeclarationKind.METHOD
            if "staticmethod" in decorators or "classmethod" in decorators:
                modifiers |= Modifier.STATIC
            if "abstractmethod" in decorators:
                modifiers |= Modifier.ABSTRACT
        return self._function(table, node, kind, modifiers, bound="staticmethod" not in decorators)

    def _function(
        self,
        table: dict[str, Symbol],
        node: _FunctionNode,
        kind: DeclarationKind,
        modifiers: Modifier,
        bound: bool = False,
    ) -> Declaration:
        decl = Declaration(kind, node.name, node=node, modifiers=modifiers)
        docstring = ast.get_docstring(node, clean=False)
        self._bind(table, decl, docstring)
        if kind in (DeclarationKind.FUNCTION, DeclarationKind.METHOD):
            if bound and kind is DeclarationKind.METHOD:
                self._bound_methods.add(decl)
            documented = param_docs(split_doc_comment(docstring)[1])
            for param in _parameter_nodes(node.args, decl in self._bound_methods):
                param_decl = Declaration(DeclarationKind.PARAMETER, param.arg.arg, node=param)
                desc = documented.get(param.arg.arg, "")
                self.bind(param_decl, Symbol(
                    name=param.arg.arg,
                    declarations=[param_decl],
                    value_declaration=param_decl,
                    documentation=[desc],
                ))
                decl.parameters.append(param_decl)
        return decl

    def _bind(self, table: dict[str, Symbol], decl: Declaration, docstring: str | None) -> Symbol:
        symbol = table.get(decl.name)
        if symbol is None or not _shares_symbol(symbol, decl):
            symbol = Symbol(name=decl.name, value_declaration=decl)
            table[decl.name] = symbol
        symbol.declarations.append(decl)
        if docstring and not any(symbol.documentation) and not symbol.tags:
            description, tags = split_doc_comment(docstring)
            symbol.documentation = [description]
            symbol.tags = tags
        self.bind(decl, symbol)
        return symbol

    # Queries

    def module_symbol(self, source_file: SourceFile) -> Symbol | None:
        module = self._by_file.get(source_file.file_name)
        return module.symbol if module else None

    def exports_of_module(self, module: Symbol) -> list[Symbol]:
        info = self._by_symbol.get(module)
        if info is None:
            return []
        return self._exports(info, frozenset())

    def _exports(self, module: _Module, visiting: frozenset) -> list[Symbol]:
        if module.key in visiting:
            return []
        visiting = visiting | {module.key}

        if module.all_names is not None:
            names = list(module.all_names)
        else:
            names = [name for name in module.locals if not name.startswith("_")]
            names.extend(module.reexports)

        exports: list[Symbol] = []
        seen: set[str] = set()
        for name in names:
            symbol = self._resolve(module, name, visiting)
            if symbol is not None and name not in seen:
                seen.add(name)
                exports.append(symbol)

        if module.all_names is None:
            for key in module.star_imports:
                target = self._modules.get(key)
                if target is None:
                    continue
                for symbol in self._exports(target, visiting):
                    if symbol.name not in seen:
                        seen.add(symbol.name)
                        exports.append(symbol)
        return exports

    def _resolve(self, module: _Module, name: str, visiting: frozenset) -> Symbol | None:
        if name in module.locals:
            return module.locals[name]
        if name in module.imports:
            key, target_name = module.imports[name]
            target = self._modules.get(key)
            if target is None or target.key in visiting:
                return None
            resolved = self._resolve(target, target_name, visiting | {target.key})
            if resolved is None or resolved.name == name:
                return resolved
            return Symbol(
                name=name,
                declarations=resolved.declarations,
                value_declaration=resolved.value_declaration,
                documentation=resolved.documentation,
                tags=resolved.tags,
            )
        for key in module.star_imports:
            target = self._modules.get(key)
            if target is None:
                continue
            for symbol in self._exports(target, visiting):
                if symbol.name == name:
                    return symbol
        return None

    def type_of_symbol(self, symbol: Symbol) -> str:
        decl = symbol.value_declaration
        if decl is None:
            return "Any"
        kind = decl.kind
        if kind in (DeclarationKind.FUNCTION, DeclarationKind.METHOD):
            return self._callable_type(symbol)
        if kind is DeclarationKind.GET_ACCESSOR:
            return _return_type(decl.node)
        if kind in (DeclarationKind.VARIABLE, DeclarationKind.PROPERTY):
            return _variable_type(decl.node)
        if kind is DeclarationKind.PARAMETER:
            return _parameter_type(decl.node)
        if kind in (DeclarationKind.CLASS, DeclarationKind.INTERFACE, DeclarationKind.ENUM):
            return f"type[{self.declared_type_of_symbol(symbol)}]"
        if kind is DeclarationKind.TYPE_ALIAS:
            return "TypeAlias"
        return "Any"

    def _callable_type(self, symbol: Symbol) -> str:
        declarations = [d for d in symbol.declarations if _is_overload(d)]
        if not declarations:
            declarations = [symbol.value_declaration]
        rendered = [self._render_callable(d) for d in declarations]
        if len(rendered) == 1:
            return rendered[0]
        return "{ " + "; ".join(rendered) + " }"

    def _render_callable(self, decl: Declaration) -> str:
        node = decl.node
        prefix = "async " if isinstance(node, ast.AsyncFunctionDef) else ""
        params = _render_parameters(node.args, decl in self._bound_methods)
        return f"{prefix}{_render_type_params(node)}{params} -> {_return_type(node)}"

    def declared_type_of_symbol(self, symbol: Symbol) -> str:
        decl = symbol.value_declaration
        if decl is None or not isinstance(decl.node, ast.ClassDef):
            return symbol.name
        node = decl.node
        params = [p.name for p in _type_params(node)]
        if not params:
            for base in node.bases:
                if isinstance(base, ast.Subscript) and _base_name(base) in _GENERIC_BASES:
                    inner = base.slice
                    elts = inner.elts if isinstance(inner, ast.Tuple) else [inner]
                    params = [ast.unparse(e) for e in elts]
                    break
        if not params:
            return node.name
        return f"{node.name}[{', '.join(params)}]"

    def signature_of(self, declaration: Declaration) -> Signature | None:
        node = declaration.node
        if not isinstance(node, _FunctionNode):
            return None
        return Signature(return_type=_return_type(node))

    def initializer_of(self, declaration: Declaration) -> str | None:
        node = declaration.node
        if isinstance(node, _ParameterNode) and node.default is not None:
            return ast.unparse(node.default)
        return None


def _shares_symbol(symbol: Symbol, decl: Declaration) -> bool:
    """Overloads and property accessors extend an existing symbol."""
    last = symbol.declarations[-1]
    if decl.kind is DeclarationKind.SET_ACCESSOR:
        return last.kind in (DeclarationKind.GET_ACCESSOR, DeclarationKind.SET_ACCESSOR)
    return last.kind is decl.kind and _is_overload(last)


def _target_name(node: ast.expr) -> str | None:
    return node.id if isinstance(node, ast.Name) else None


def _string_list(node: ast.expr) -> list[str]:
    if not isinstance(node, (ast.List, ast.Tuple)):
        return []
    return [
        e.value for e in node.elts if isinstance(e, ast.Constant) and isinstance(e.value, str)
    ]


def _variable_type(node: ast.AST) -> str:
    if isinstance(node, ast.AnnAssign):
        annotation, _ = _unwrap_annotation(node.annotation)
        if annotation is not None:
            return ast.unparse(annotation)
        return _infer_type(node.value)
    if isinstance(node, ast.Assign):
        return _infer_type(node.value)
    return "Any"


def _parameter_type(node: _ParameterNode) -> str:
    annotation = ast.unparse(node.arg.annotation) if node.arg.annotation else "Any"
    if node.star == "*":
        return f"tuple[{annotation}, ...]"
    if node.star == "**":
        return f"dict[str, {annotation}]"
    return annotation


class PythonProgram(Program):
    """All Python modules below a source root."""

    entry_file = "__init__.py"

    def __init__(self, root: Path | str) -> None:
        super().__init__(Path(root))
        self._files: list[SourceFile] | None = None
        self._checker: PythonTypeChecker | None = None

    def source_files(self) -> list[SourceFile]:
        if self._files is None:
            if not self.root.is_dir():
                raise SourceError(f"Source root not found: {self.root}", str(self.root))
            paths = sorted(
                p
                for p in self.root.rglob("*")
                if p.suffix in (".py", ".pyi")
                and p.is_file()
                and "__pycache__" not in p.parts
            )
            self._files = [
                SourceFile(p, is_declaration_file=p.suffix == ".pyi") for p in paths
            ]
            log.debug("found %d python files under %s", len(paths), self.root)
        return list(self._files)

    def type_checker(self) -> PythonTypeChecker:
        if self._checker is None:
            self._checker = PythonTypeChecker(self.root, self.source_files())
        return self._checker
