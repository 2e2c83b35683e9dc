"""Entry builders, one per supported declaration kind.

Each builder turns one declaration into a fully constructed entry, or returns
None when the declaration's own symbol cannot be resolved.
"""

from __future__ import annotations

import logging

from .docblock import get_documentation
from .errors import UnresolvedSymbolError
from .models import (
    Access,
    ClassEntry,
    FunctionEntry,
    InterfaceEntry,
    MethodEntry,
    ParameterEntry,
    PropertyEntry,
    VariableEntry,
    sort_entries_by_name,
)
from .provider import Declaration, DeclarationKind, Modifier, Symbol, TypeChecker

log = logging.getLogger(__name__)

_PROPERTY_KINDS = (DeclarationKind.PROPERTY, DeclarationKind.GET_ACCESSOR)


def access_of(modifiers: Modifier) -> Access:
    if modifiers & Modifier.PROTECTED:
        return "protected"
    if modifiers & Modifier.PRIVATE:
        return "private"
    return "public"


def build_parameters(declaration: Declaration, checker: TypeChecker) -> list[ParameterEntry]:
    """Build parameter entries in declaration order."""
    parameters = []
    for parameter in declaration.parameters:
        symbol = checker.symbol_at(parameter)
        if symbol is None:
            raise UnresolvedSymbolError(
                f"Parameter {parameter.name!r} of {declaration.name!r} has no symbol"
            )
        doc = get_documentation(symbol, checker)
        parameters.append(
            ParameterEntry(
                **doc.fields(),
                type=checker.type_of_symbol(symbol),
                default=checker.initializer_of(parameter),
                # Rest parameters are not detected
                variadic=False,
            )
        )
    return parameters


def _callable_fields(declaration: Declaration, symbol: Symbol, checker: TypeChecker) -> dict:
    # Return type of this declaration site, not of the overload set
    signature = checker.signature_of(declaration)
    doc = get_documentation(symbol, checker)
    return {
        **doc.fields(),
        "signature": checker.type_of_symbol(symbol),
        "return_type": signature.return_type if signature is not None else "",
        "parameters": build_parameters(declaration, checker),
    }


def build_function(declaration: Declaration, checker: TypeChecker) -> FunctionEntry | None:
    symbol = checker.symbol_at(declaration)
    if symbol is None:
        return None
    return FunctionEntry(**_callable_fields(declaration, symbol, checker))


def build_variable(declaration: Declaration, checker: TypeChecker) -> VariableEntry | None:
    symbol = checker.symbol_at(declaration)
    if symbol is None:
        return None
    doc = get_documentation(symbol, checker)
    return VariableEntry(**doc.fields(), type=checker.type_of_symbol(symbol))


def extract_members(
    declaration: Declaration, checker: TypeChecker
) -> tuple[list[MethodEntry], list[PropertyEntry]]:
    """Build the own methods and properties of a class or interface.

    Members whose symbol cannot be resolved are skipped. Overloaded methods
    share one symbol and yield a single entry. Both lists are sorted by name.
    """
    methods: list[MethodEntry] = []
    properties: list[PropertyEntry] = []
    seen: set[Symbol] = set()

    for member in declaration.members:
        symbol = checker.symbol_at(member)
        if symbol is None:
            log.debug("skipping unresolvable member of %s", declaration.name)
            continue
        if member.kind is DeclarationKind.METHOD and symbol in seen:
            continue

        access = access_of(member.modifiers)
        static = bool(member.modifiers & Modifier.STATIC)

        if member.kind is DeclarationKind.METHOD:
            seen.add(symbol)
            methods.append(
                MethodEntry(
                    **_callable_fields(member, symbol, checker),
                    access=access,
                    static=static,
                    abstract=bool(member.modifiers & Modifier.ABSTRACT),
                )
            )
        elif member.kind in _PROPERTY_KINDS:
            doc = get_documentation(symbol, checker)
            properties.append(
                PropertyEntry(
                    **doc.fields(),
                    type=checker.type_of_symbol(symbol),
                    readonly=bool(member.modifiers & Modifier.READONLY),
                    access=access,
                    static=static,
                )
            )

    sort_entries_by_name(methods)
    sort_entries_by_name(properties)
    return methods, properties


def _compound_fields(declaration: Declaration, checker: TypeChecker) -> dict | None:
    symbol = checker.symbol_at(declaration)
    if symbol is None:
        return None
    doc = get_documentation(symbol, checker)
    methods, properties = extract_members(declaration, checker)
    return {
        **doc.fields(),
        # Display form includes generic parameters, e.g. "Box[T]"
        "name": checker.declared_type_of_symbol(symbol),
        "methods": methods,
        "properties": properties,
    }


def build_class(declaration: Declaration, checker: TypeChecker) -> ClassEntry | None:
    fields = _compound_fields(declaration, checker)
    return ClassEntry(**fields) if fields is not None else None


def build_interface(declaration: Declaration, checker: TypeChecker) -> InterfaceEntry | None:
    fields = _compound_fields(declaration, checker)
    return InterfaceEntry(**fields) if fields is not None else None
