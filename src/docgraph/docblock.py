"""Interpret documentation comments and their tags."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from .models import ThrowsInfo
from .provider import Symbol, TypeChecker

_THROWS = re.compile(r"^\s*(?:\{(.*)\})?\s*(.*)$", re.DOTALL)


@dataclass
class Documentation:
    """Normalized description and tags of one symbol."""

    name: str
    description: str = ""
    since: str | None = None
    examples: list[str] = field(default_factory=list)
    throws: list[ThrowsInfo] = field(default_factory=list)
    see: list[str] = field(default_factory=list)

    def fields(self) -> dict:
        """Keyword arguments shared by every entry."""
        return {
            "name": self.name,
            "description": self.description,
            "since": self.since,
            "examples": self.examples,
            "throws": self.throws,
            "see": self.see,
        }


def parse_throws(text: str) -> ThrowsInfo:
    """Parse ``{Type} description``. The type is optional and defaults to any."""
    match = _THROWS.match(text or "")
    if match is None:
        return ThrowsInfo(description=text)
    return ThrowsInfo(type=match.group(1) or "any", description=match.group(2))


def get_documentation(symbol: Symbol, checker: TypeChecker) -> Documentation:
    """Build the description and tag bundle of a symbol. Never fails."""
    doc = Documentation(name=checker.symbol_to_string(symbol))
    doc.description = "".join(symbol.documentation)

    for tag in symbol.tags:
        if tag.name == "example":
            doc.examples.append(tag.text)
        elif tag.name in ("description", "desc"):
            doc.description += tag.text
        elif tag.name == "since":
            doc.since = tag.text
        elif tag.name in ("throws", "throw", "raises"):
            doc.throws.append(parse_throws(tag.text))
        elif tag.name == "see":
            doc.see.append(tag.text)

    return doc
