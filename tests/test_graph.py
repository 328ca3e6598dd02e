"""
Tests for the object graph.
"""

import pytest

from xcscaffold.errors import DanglingReference
from xcscaffold.generators.xcode.graph import ObjectGraph
from xcscaffold.generators.xcode.model import (
    PBXBuildFile,
    PBXFileReference,
    PBXGroup,
    PBXSourcesBuildPhase,
    Reference,
    SourceTree,
)


@pytest.fixture
def graph() -> ObjectGraph:
    return ObjectGraph()


def add_file(graph: ObjectGraph, path: str):
    return graph.create_node(PBXFileReference, path=path, sourceTree=SourceTree.GROUP)


class TestNodes:
    def test_create_assigns_id(self, graph):
        id = add_file(graph, "main.cpp")
        node = graph.resolve(id)
        assert node.id == id
        assert id in graph
        assert len(graph) == 1

    def test_resolve_unknown(self, graph):
        with pytest.raises(DanglingReference) as exc:
            graph.resolve("0123456789ABCDEF01234567", "PBXGroup.children")
        assert exc.value.id == "0123456789ABCDEF01234567"
        assert "PBXGroup.children" in str(exc.value)

    def test_get_checks_kind(self, graph):
        id = add_file(graph, "main.cpp")
        assert isinstance(graph.get(id, PBXFileReference), PBXFileReference)
        with pytest.raises(TypeError):
            graph.get(id, PBXGroup)

    def test_nodes_filters_by_kind(self, graph):
        add_file(graph, "a.cpp")
        graph.create_node(PBXGroup, children=[], sourceTree=SourceTree.GROUP)
        assert [n.path for n in graph.nodes(PBXFileReference)] == ["a.cpp"]
        assert len(list(graph.nodes())) == 2

    def test_project_requires_root(self, graph):
        with pytest.raises(DanglingReference):
            graph.project


class TestEdges:
    def test_add_edge_appends_in_order(self, graph):
        group = graph.create_node(PBXGroup, children=[], sourceTree=SourceTree.GROUP)
        a = add_file(graph, "a.cpp")
        b = add_file(graph, "b.cpp")
        graph.add_edge(group, "children", a)
        graph.add_edge(group, "children", b)
        assert [r.id for r in graph.get(group, PBXGroup).children] == [a, b]

    def test_add_edge_at_index(self, graph):
        group = graph.create_node(PBXGroup, children=[], sourceTree=SourceTree.GROUP)
        a = add_file(graph, "a.cpp")
        b = add_file(graph, "b.cpp")
        graph.add_edge(group, "children", a)
        graph.add_edge(group, "children", b, index=0)
        assert [r.id for r in graph.get(group, PBXGroup).children] == [b, a]

    def test_add_edge_to_missing_node(self, graph):
        group = graph.create_node(PBXGroup, children=[], sourceTree=SourceTree.GROUP)
        with pytest.raises(DanglingReference):
            graph.add_edge(group, "children", "0123456789ABCDEF01234567")

    def test_add_edge_unknown_field(self, graph):
        group = graph.create_node(PBXGroup, children=[], sourceTree=SourceTree.GROUP)
        a = add_file(graph, "a.cpp")
        with pytest.raises(AttributeError):
            graph.add_edge(group, "files", a)

    def test_scalar_edge_rejects_index(self, graph):
        a = add_file(graph, "a.cpp")
        build_file = graph.create_node(PBXBuildFile, fileRef=Reference(a))
        with pytest.raises(ValueError):
            graph.add_edge(build_file, "fileRef", a, index=0)

    def test_dependents(self, graph):
        a = add_file(graph, "a.cpp")
        build_file = graph.create_node(PBXBuildFile, fileRef=Reference(a))
        assert [n.id for n in graph.dependents(a)] == [build_file]


class TestRemoveNode:
    def test_cascades_through_required_references(self, graph):
        a = add_file(graph, "a.cpp")
        build_file = graph.create_node(PBXBuildFile, fileRef=Reference(a))
        phase = graph.create_node(PBXSourcesBuildPhase, files=[Reference(build_file)])

        removed = graph.remove_node(a)

        assert set(removed) == {a, build_file}
        assert a not in graph
        assert build_file not in graph
        assert graph.get(phase, PBXSourcesBuildPhase).files == []

    def test_drops_list_references(self, graph):
        a = add_file(graph, "a.cpp")
        b = add_file(graph, "b.cpp")
        group = graph.create_node(
            PBXGroup, children=[Reference(a), Reference(b)], sourceTree=SourceTree.GROUP
        )
        graph.remove_node(a)
        assert [r.id for r in graph.get(group, PBXGroup).children] == [b]
        assert group in graph

    def test_no_dangling_references_remain(self, graph):
        a = add_file(graph, "a.cpp")
        build_file = graph.create_node(PBXBuildFile, fileRef=Reference(a))
        graph.create_node(PBXSourcesBuildPhase, files=[Reference(build_file)])
        graph.remove_node(a)
        for node in graph.nodes():
            for _, _, ref in graph.references(node):
                assert ref.id in graph

    def test_remove_unknown(self, graph):
        with pytest.raises(DanglingReference):
            graph.remove_node("0123456789ABCDEF01234567")
