"""Project configuration."""

from __future__ import annotations

import json
import logging
import tomllib
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .errors import ConfigError

log = logging.getLogger(__name__)

DEFAULT_DESTINATION = "docs/api"


class ProjectConfig(BaseModel):
    """Resolved configuration of one documentation run."""

    model_config = ConfigDict(extra="forbid")

    module_name: str = Field(min_length=1)
    title: str | None = None
    source: Path
    destination: Path = Path(DEFAULT_DESTINATION)
    language: Literal["python", "sql"] = "python"
    entry_file: str | None = None  # Defaults to the provider's, e.g. "__init__.py"
    exclude_private: bool = False
    exclude_protected: bool = False

    @model_validator(mode="after")
    def _default_title(self) -> ProjectConfig:
        if self.title is None:
            self.title = self.module_name
        return self


def _read_toml(path: Path) -> dict[str, Any]:
    if not path.is_file():
        return {}
    log.debug("reading %s", path)
    return tomllib.loads(path.read_text(encoding="utf-8"))


def load_config(path: Path | str) -> ProjectConfig:
    """Load a ``docgraph.json`` file or the ``[tool.docgraph]`` table of a pyproject.

    ``module_name`` defaults to the pyproject's ``[project].name``. Relative
    paths are resolved against the config file's directory.
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}", str(path))

    base_path = path.resolve().parent
    log.debug("reading %s", path)
    try:
        if path.suffix == ".toml":
            pyproject = _read_toml(path)
            data = pyproject.get("tool", {}).get("docgraph", {})
        else:
            data = json.loads(path.read_text(encoding="utf-8"))
            pyproject = _read_toml(base_path / "pyproject.toml")
    except (OSError, ValueError) as e:
        raise ConfigError(f"Failed to read {path}: {e}", str(path)) from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config in {path} must be a table/object", str(path))

    data = dict(data)
    project_name = pyproject.get("project", {}).get("name")
    if project_name and "module_name" not in data:
        data["module_name"] = project_name
    data.setdefault("destination", DEFAULT_DESTINATION)

    for key in ("source", "destination"):
        value = data.get(key)
        if isinstance(value, str) and not Path(value).is_absolute():
            data[key] = str(base_path / value)

    try:
        return ProjectConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config {path}: {e}", str(path)) from e
