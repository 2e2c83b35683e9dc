"""Shared pytest fixtures for docgraph tests."""

import textwrap
from pathlib import Path

import pytest

from docgraph.assembler import build_program, generate_documentation
from docgraph.config import ProjectConfig


def write_tree(root: Path, files: dict[str, str]) -> Path:
    """Write ``{relative path: source}`` below root."""
    for name, content in files.items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(content).lstrip("\n"))
    return root


@pytest.fixture
def source_tree(tmp_path):
    """
    Write a source tree below tmp_path/mylib and return its root.

    Example:
        root = source_tree({"__init__.py": "VERSION = '1'"})
    """
    root = tmp_path / "mylib"
    root.mkdir()

    def _write(files: dict[str, str]) -> Path:
        return write_tree(root, files)

    return _write


@pytest.fixture
def make_config(tmp_path):
    """Build a ProjectConfig for module ``mylib``."""

    def _make(source: Path, **overrides) -> ProjectConfig:
        return ProjectConfig(
            module_name="mylib",
            source=source,
            destination=tmp_path / "out",
            **overrides,
        )

    return _make


@pytest.fixture
def extract(source_tree, make_config):
    """Write a source tree and return its document graph."""

    def _extract(files: dict[str, str], **overrides):
        config = make_config(source_tree(files), **overrides)
        return generate_documentation(build_program(config), config)

    return _extract
