"""Tests for documentation validation and coverage."""

from docgraph.models import (
    ClassEntry,
    DocumentGraph,
    FunctionEntry,
    MethodEntry,
    ParameterEntry,
    PropertyEntry,
    VariableEntry,
)
from docgraph.validators import compute_coverage, validate_docs


def _graph():
    documented = ClassEntry(
        name="Circle",
        description="A circle.",
        id="mylib-Circle",
        methods=[
            MethodEntry(name="scale", return_type="None", signature="() -> None"),
            MethodEntry(name="_grow", access="protected", return_type="None", signature="() -> None"),
        ],
        properties=[PropertyEntry(name="radius", type="float", description="Radius.")],
    )
    undocumented = VariableEntry(name="VERSION", type="str", id="mylib-VERSION")
    return DocumentGraph(docs=[documented, undocumented])


def test_missing_description_warns():
    result = validate_docs(_graph())
    assert result.errors == []
    assert "mylib-VERSION: missing description (undocumented)" in result.warnings


def test_strict_mode_errors():
    result = validate_docs(_graph(), strict=True)
    assert result.errors == ["mylib-VERSION: missing description (undocumented)"]


def test_undocumented_public_members_warn():
    """Only public members are reported."""
    result = validate_docs(_graph())
    assert "mylib-Circle: member scale is undocumented" in result.warnings
    assert not any("_grow" in w for w in result.warnings)


def test_documented_function_missing_params_warns():
    clamp = FunctionEntry(
        name="clamp",
        description="Clamp a value.",
        id="mylib-clamp",
        parameters=[
            ParameterEntry(name="value", type="int", description="The value"),
            ParameterEntry(name="low", type="int"),
            ParameterEntry(name="high", type="int"),
        ],
        return_type="int",
        signature="(value: int, low: int, high: int) -> int",
    )
    result = validate_docs(DocumentGraph(docs=[clamp]), strict=True)
    assert result.errors == []
    assert result.warnings == ["mylib-clamp: documented but missing @param for low, high"]


def test_coverage():
    assert compute_coverage(_graph()) == 0.5
    assert compute_coverage(DocumentGraph()) == 1.0
