"""Tests for the ast-based Python provider."""

import sys

import pytest

from docgraph.errors import SourceError
from docgraph.provider import DeclarationKind
from docgraph.pysource import PythonProgram


def _load(root):
    program = PythonProgram(root)
    return program, program.type_checker()


def _exports(root, relative="__init__.py"):
    program, checker = _load(root)
    source = next(f for f in program.source_files() if f.file_name == root / relative)
    return checker, checker.exports_of_module(checker.module_symbol(source))


def _export(root, name, relative="__init__.py"):
    checker, exports = _exports(root, relative)
    return checker, next(s for s in exports if s.name == name)


class TestProgram:
    def test_source_files_sorted_and_stubs_flagged(self, source_tree):
        root = source_tree({
            "b.py": "",
            "a.py": "",
            "stubs.pyi": "",
            "__pycache__/cached.py": "",
            "notes.txt": "",
        })
        files = PythonProgram(root).source_files()
        assert [f.file_name.name for f in files] == ["a.py", "b.py", "stubs.pyi"]
        assert [f.is_declaration_file for f in files] == [False, False, True]

    def test_missing_root(self, tmp_path):
        with pytest.raises(SourceError):
            PythonProgram(tmp_path / "missing").source_files()

    def test_syntax_error(self, source_tree):
        """Unparseable modules raise SourceError naming the file."""
        root = source_tree({"broken.py": "def (:\n"})
        with pytest.raises(SourceError) as exc_info:
            PythonProgram(root).type_checker()
        assert exc_info.value.path.endswith("broken.py")

    def test_stub_files_not_parsed(self, source_tree):
        root = source_tree({"stub.pyi": "def (:\n"})
        program, checker = _load(root)
        assert checker.module_symbol(program.source_files()[0]) is None

    def test_module_symbol(self, source_tree):
        root = source_tree({
            "utils.py": '"""Helpers.\n\n@since 1.0\n"""\n',
            "pkg/__init__.py": "",
        })
        program, checker = _load(root)
        symbols = [checker.module_symbol(f) for f in program.source_files()]
        assert [s.name for s in symbols] == ["pkg/__init__", "utils"]
        assert symbols[1].documentation == ["Helpers."]
        assert symbols[1].tags[0].name == "since"


class TestExports:
    def test_dunder_all(self, source_tree):
        root = source_tree({
            "__init__.py": """
                __all__ = ["a"]

                def a():
                    pass

                def b():
                    pass
            """,
        })
        _, exports = _exports(root)
        assert [s.name for s in exports] == ["a"]

    def test_dunder_all_extended(self, source_tree):
        root = source_tree({
            "__init__.py": """
                __all__ = ["a"]
                __all__ += ["b"]

                def a():
                    pass

                def b():
                    pass
            """,
        })
        _, exports = _exports(root)
        assert [s.name for s in exports] == ["a", "b"]

    def test_unknown_names_in_dunder_all_skipped(self, source_tree):
        root = source_tree({"__init__.py": "__all__ = ['missing', 'a']\n\nA = 1\na = 2\n"})
        _, exports = _exports(root)
        assert [s.name for s in exports] == ["a"]

    def test_public_locals_without_dunder_all(self, source_tree):
        root = source_tree({
            "__init__.py": """
                import os
                from os import path

                def a():
                    pass

                def _b():
                    pass

                X = 1
            """,
        })
        _, exports = _exports(root)
        assert [s.name for s in exports] == ["a", "X"]

    def test_explicit_reexport(self, source_tree):
        root = source_tree({
            "__init__.py": "from .utils import clamp as clamp\nfrom .utils import other\n",
            "utils.py": "def clamp():\n    pass\n\ndef other():\n    pass\n",
        })
        _, exports = _exports(root)
        assert [s.name for s in exports] == ["clamp"]

    def test_renamed_export(self, source_tree):
        """An alias exports under its new name but keeps the aliased declaration."""
        root = source_tree({
            "__init__.py": 'from .shapes import Circle as Round\n\n__all__ = ["Round"]\n',
            "shapes.py": 'class Circle:\n    """A circle."""\n',
        })
        _, symbol = _export(root, "Round")
        assert symbol.value_declaration.name == "Circle"
        assert symbol.documentation == ["A circle."]

    def test_absolute_import_of_own_package(self, source_tree):
        root = source_tree({
            "__init__.py": 'from mylib.utils import clamp\n\n__all__ = ["clamp"]\n',
            "utils.py": "def clamp():\n    pass\n",
        })
        _, exports = _exports(root)
        assert [s.value_declaration.kind for s in exports] == [DeclarationKind.FUNCTION]

    def test_star_import(self, source_tree):
        root = source_tree({
            "__init__.py": "from .utils import *\n\nVERSION = '1'\n",
            "utils.py": "def clamp():\n    pass\n\ndef _hidden():\n    pass\n",
        })
        _, exports = _exports(root)
        assert [s.name for s in exports] == ["VERSION", "clamp"]

    def test_circular_star_imports(self, source_tree):
        root = source_tree({
            "a.py": "from .b import *\n\ndef fa():\n    pass\n",
            "b.py": "from .a import *\n\ndef fb():\n    pass\n",
        })
        _, exports = _exports(root, "a.py")
        assert [s.name for s in exports] == ["fa", "fb"]

    def test_attribute_docstring(self, source_tree):
        root = source_tree({"__init__.py": 'VERSION = "1.0"\n"""Package version."""\n'})
        _, symbol = _export(root, "VERSION")
        assert symbol.documentation == ["Package version."]


class TestTypes:
    def test_function_signature(self, source_tree):
        root = source_tree({
            "__init__.py": "def compute(a, b: int = 1, *args: str, key: bool, **extra) -> None:\n    pass\n",
        })
        checker, symbol = _export(root, "compute")
        assert checker.type_of_symbol(symbol) == (
            "(a, b: int = 1, *args: str, key: bool, **extra) -> None"
        )
        params = symbol.value_declaration.parameters
        assert [checker.type_of_symbol(checker.symbol_at(p)) for p in params] == [
            "Any",
            "int",
            "tuple[str, ...]",
            "bool",
            "dict[str, Any]",
        ]
        assert [checker.initializer_of(p) for p in params] == [None, "1", None, None, None]

    def test_positional_and_keyword_markers(self, source_tree):
        root = source_tree({
            "__init__.py": "def f(x, /, y):\n    pass\n\ndef g(*, flag=False):\n    pass\n",
        })
        checker, exports = _exports(root)
        types = [checker.type_of_symbol(s) for s in exports]
        assert types == ["(x, /, y) -> None", "(*, flag=False) -> None"]

    def test_inferred_return_types(self, source_tree):
        root = source_tree({
            "__init__.py": """
                def value():
                    return 1

                def gen():
                    yield 1

                async def agen():
                    yield 1

                def nothing():
                    def inner():
                        return 1
            """,
        })
        checker, exports = _exports(root)
        types = {s.name: checker.type_of_symbol(s) for s in exports}
        assert types == {
            "value": "() -> Any",
            "gen": "() -> Generator",
            "agen": "async () -> AsyncGenerator",
            "nothing": "() -> None",
        }

    def test_variable_types(self, source_tree):
        root = source_tree({
            "__init__.py": """
                from typing import Final

                COUNT = 3
                NAME: str = "x"
                LIMIT: Final = 10
                ITEMS = []
                RATIO = -0.5
                client = Client()
            """,
        })
        checker, exports = _exports(root)
        types = {s.name: checker.type_of_symbol(s) for s in exports}
        assert types == {
            "COUNT": "int",
            "NAME": "str",
            "LIMIT": "int",
            "ITEMS": "list",
            "RATIO": "float",
            "client": "Client",
        }

    def test_generic_class_name(self, source_tree):
        root = source_tree({
            "__init__.py": """
                from typing import Generic, TypeVar

                K = TypeVar("K")
                V = TypeVar("V")

                class Pair(Generic[K, V]):
                    pass
            """,
        })
        checker, symbol = _export(root, "Pair")
        assert checker.declared_type_of_symbol(symbol) == "Pair[K, V]"
        assert checker.type_of_symbol(symbol) == "type[Pair[K, V]]"

    @pytest.mark.skipif(sys.version_info < (3, 12), reason="PEP 695 syntax")
    def test_type_parameter_syntax(self, source_tree):
        root = source_tree({
            "__init__.py": """
                def first[T](items: list[T]) -> T:
                    return items[0]

                class Box[T]:
                    pass
            """,
        })
        checker, (first, box) = _exports(root)
        assert checker.type_of_symbol(first) == "[T](items: list[T]) -> T"
        assert checker.declared_type_of_symbol(box) == "Box[T]"

    def test_overloads(self, source_tree):
        root = source_tree({
            "__init__.py": """
                from typing import overload

                @overload
                def parse(value: int) -> int: ...
                @overload
                def parse(value: str) -> str: ...
                def parse(value):
                    \"\"\"Parse a value.\"\"\"
                    return value
            """,
        })
        checker, exports = _exports(root)
        assert len(exports) == 1
        symbol = exports[0]
        assert len(symbol.declarations) == 3
        assert checker.type_of_symbol(symbol) == "{ (value: int) -> int; (value: str) -> str }"
        assert symbol.documentation == ["Parse a value."]


class TestClassification:
    def test_class_kinds(self, source_tree):
        root = source_tree({
            "__init__.py": """
                from enum import Enum
                from typing import Protocol, TypedDict

                class Color(Enum):
                    RED = 1

                class Shape(Protocol):
                    def area(self) -> float: ...

                class Movie(TypedDict):
                    title: str

                class Widget:
                    pass
            """,
        })
        _, exports = _exports(root)
        kinds = {s.name: s.value_declaration.kind for s in exports}
        assert kinds == {
            "Color": DeclarationKind.ENUM,
            "Shape": DeclarationKind.INTERFACE,
            "Movie": DeclarationKind.INTERFACE,
            "Widget": DeclarationKind.CLASS,
        }

    def test_member_kinds(self, source_tree):
        root = source_tree({
            "__init__.py": """
                class Temp:
                    scale: str = "C"

                    @property
                    def celsius(self) -> float:
                        return self._c

                    @celsius.setter
                    def celsius(self, value: float) -> None:
                        self._c = value

                    def reset(self):
                        pass
            """,
        })
        _, symbol = _export(root, "Temp")
        members = symbol.value_declaration.members
        assert [(m.name, m.kind) for m in members] == [
            ("scale", DeclarationKind.PROPERTY),
            ("celsius", DeclarationKind.GET_ACCESSOR),
            ("celsius", DeclarationKind.SET_ACCESSOR),
            ("reset", DeclarationKind.METHOD),
        ]
