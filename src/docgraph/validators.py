"""Documentation validation and quality checks."""

from __future__ import annotations

from dataclasses import dataclass, field

from .models import CompoundEntry, DocumentGraph, FunctionEntry


@dataclass
class ValidationResult:
    """Results from documentation validation."""

    errors: list[str] = field(default_factory=list)  # Build fails if non-empty
    warnings: list[str] = field(default_factory=list)  # Printed but allowed


def _undescribed_parameters(entry: FunctionEntry) -> list[str]:
    return [p.name for p in entry.parameters if not p.description.strip()]


def validate_docs(graph: DocumentGraph, strict: bool = False) -> ValidationResult:
    """Check every export of the graph for missing descriptions.

    Undocumented exports are warnings, or errors when ``strict`` is set.
    Documented exports only ever produce warnings: for parameters without
    ``@param`` text and for undocumented public members.
    """
    result = ValidationResult()

    for entry in graph.docs:
        if not entry.description.strip():
            msg = f"{entry.id}: missing description (undocumented)"
            (result.errors if strict else result.warnings).append(msg)
            continue

        if isinstance(entry, FunctionEntry):
            missing = _undescribed_parameters(entry)
            if missing:
                result.warnings.append(
                    f"{entry.id}: documented but missing @param for {', '.join(missing)}"
                )
        elif isinstance(entry, CompoundEntry):
            for member in [*entry.methods, *entry.properties]:
                if member.access == "public" and not member.description.strip():
                    result.warnings.append(f"{entry.id}: member {member.name} is undocumented")

    return result


def compute_coverage(graph: DocumentGraph) -> float:
    """Share of exports with a description, from 0.0 to 1.0."""
    if not graph.docs:
        return 1.0
    documented = sum(1 for e in graph.docs if e.description.strip())
    return documented / len(graph.docs)
