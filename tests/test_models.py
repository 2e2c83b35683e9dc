"""Tests for entry sorting, member filtering and graph lookups."""

from docgraph.models import (
    ClassEntry,
    DocumentGraph,
    FileEntry,
    FunctionEntry,
    InterfaceEntry,
    MethodEntry,
    PropertyEntry,
    VariableEntry,
    exclude_members,
    exclude_privates,
    sort_entries_by_name,
)


def _method(name, access="public"):
    return MethodEntry(name=name, return_type="None", signature="() -> None", access=access)


def _property(name, access="public"):
    return PropertyEntry(name=name, type="int", access=access)


class TestSortEntriesByName:
    def test_sorts_ascending(self):
        entries = [
            VariableEntry(name="b", type="int"),
            VariableEntry(name="a", type="int"),
            VariableEntry(name="c", type="int"),
        ]
        sort_entries_by_name(entries)
        assert [e.name for e in entries] == ["a", "b", "c"]

    def test_sorts_in_place_and_returns_list(self):
        entries = [VariableEntry(name="b", type="int"), VariableEntry(name="a", type="int")]
        assert sort_entries_by_name(entries) is entries

    def test_ties_keep_insertion_order(self):
        """Equal names stay in the order they were added."""
        first = FunctionEntry(name="clamp", return_type="int", signature="() -> int", id="mylib-clamp")
        second = FunctionEntry(
            name="clamp", return_type="int", signature="() -> int", id="mylib-utils-clamp"
        )
        entries = [second, VariableEntry(name="a", type="int"), first]
        sort_entries_by_name(entries)
        assert [e.id for e in entries] == [None, "mylib-utils-clamp", "mylib-clamp"]

    def test_code_point_order(self):
        entries = [_method("scale"), _method("_grow"), _method("Reset")]
        sort_entries_by_name(entries)
        assert [e.name for e in entries] == ["Reset", "_grow", "scale"]


class TestExcludeMembers:
    def test_private_method_dropped(self):
        cls = ClassEntry(name="Widget", methods=[_method("m1"), _method("m2", "private")])
        result = exclude_privates([cls])
        assert result == [cls]
        assert [m.name for m in cls.methods] == ["m1"]

    def test_methods_and_properties_filtered_independently(self):
        cls = ClassEntry(
            name="Widget",
            methods=[_method("m1", "private"), _method("m2")],
            properties=[_property("p1"), _property("p2", "private")],
        )
        exclude_privates([cls])
        assert [m.name for m in cls.methods] == ["m2"]
        assert [p.name for p in cls.properties] == ["p1"]

    def test_interfaces_filtered(self):
        iface = InterfaceEntry(name="Shape", properties=[_property("p", "private")])
        exclude_privates([iface])
        assert iface.properties == []

    def test_protected_kept_by_default(self):
        cls = ClassEntry(name="Widget", methods=[_method("m", "protected")])
        exclude_privates([cls])
        assert len(cls.methods) == 1

    def test_protected_dropped_when_requested(self):
        cls = ClassEntry(
            name="Widget",
            methods=[_method("a", "protected"), _method("b", "private"), _method("c")],
        )
        exclude_members([cls], ("private", "protected"))
        assert [m.name for m in cls.methods] == ["c"]

    def test_top_level_never_dropped(self):
        entries = [
            FunctionEntry(name="_helper", return_type="None", signature="() -> None"),
            VariableEntry(name="__secret", type="int"),
            ClassEntry(name="_Hidden"),
        ]
        assert exclude_privates(entries) == entries

    def test_top_level_members_dropped(self):
        """A bare member entry in the list is filtered like any other member."""
        entries = [_method("a", "private"), _property("b")]
        assert [e.name for e in exclude_privates(entries)] == ["b"]

    def test_idempotent(self):
        cls = ClassEntry(
            name="Widget",
            methods=[_method("m1"), _method("m2", "private")],
            properties=[_property("p", "private")],
        )
        once = exclude_privates([cls])
        methods = list(cls.methods)
        twice = exclude_privates(once)
        assert once == twice
        assert cls.methods == methods


class TestDocumentGraph:
    def test_file_of_resolves_back_reference(self):
        entry = VariableEntry(name="VERSION", type="str", source_file="utils.py")
        file = FileEntry(name="utils", file_name="utils.py", module_name="mylib/utils", exports=[entry])
        graph = DocumentGraph(docs=[entry], files=[file])
        assert graph.file_of(entry) is file

    def test_file_of_unknown(self):
        graph = DocumentGraph()
        assert graph.file_of(VariableEntry(name="x", type="int")) is None
        assert graph.file_of(VariableEntry(name="x", type="int", source_file="gone.py")) is None

    def test_find_by_id(self):
        entry = VariableEntry(name="VERSION", type="str", id="mylib-VERSION")
        graph = DocumentGraph(docs=[entry])
        assert graph.find("mylib-VERSION") is entry
        assert graph.find("mylib-missing") is None
