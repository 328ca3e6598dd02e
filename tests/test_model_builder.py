"""
Tests for building a project graph from a configuration.
"""

import itertools

import pytest

from conftest import build_graph, make_config
from xcscaffold.config import LibraryLink
from xcscaffold.errors import ConfigurationError
from xcscaffold.generators.xcode.formatter import format_project
from xcscaffold.generators.xcode.graph import ObjectGraph
from xcscaffold.generators.xcode.model import (
    DstSubfolderSpec,
    FileType,
    PBXBuildFile,
    PBXCopyFilesBuildPhase,
    PBXFileReference,
    PBXFrameworksBuildPhase,
    PBXGroup,
    PBXNativeTarget,
    PBXResourcesBuildPhase,
    PBXShellScriptBuildPhase,
    PBXSourcesBuildPhase,
    SourceTree,
    XCBuildConfiguration,
    XCConfigurationList,
)
from xcscaffold.generators.xcode.model_builder import (
    ProjectBuilder,
    file_reference,
    is_compilable,
    requirements_for,
)
from xcscaffold.generators.xcode.validator import validate_project


def phases_of(graph: ObjectGraph):
    target = next(graph.nodes(PBXNativeTarget))
    return [graph.resolve(ref.id) for ref in target.buildPhases]


def phase_files(graph: ObjectGraph, phase):
    return [
        graph.get(graph.get(ref.id, PBXBuildFile).fileRef.id, PBXFileReference).path
        for ref in phase.files
    ]


class TestHelpers:
    @pytest.mark.parametrize(
        "path,expected",
        [
            ("main.cpp", True),
            ("src/view.MM", True),
            ("lib.swift", True),
            ("a.h", False),
            ("Info.plist", False),
        ],
    )
    def test_is_compilable(self, path, expected):
        assert is_compilable(path) is expected

    def test_file_reference_name_for_nested_path(self):
        ref = file_reference("src/app/main.cpp")
        assert ref.name == "main.cpp"
        assert ref.lastKnownFileType is FileType.CPP
        assert file_reference("main.cpp").name is None

    def test_requirements(self, ios_prebuilt_config, source_library_config):
        ios = requirements_for(ios_prebuilt_config)
        assert ios.embeds_artifacts and not ios.needs_pre_link
        source = requirements_for(source_library_config)
        assert source.needs_pre_link and not source.embeds_artifacts
        assert not requirements_for(make_config(sources=["a.h"])).has_sources


class TestMacosProject:
    def test_two_sources_in_one_phase(self, macos_config):
        graph = build_graph(macos_config)
        sources = [p for p in phases_of(graph) if isinstance(p, PBXSourcesBuildPhase)]
        assert len(sources) == 1
        assert phase_files(graph, sources[0]) == ["a.cpp", "b.cpp"]

    def test_phase_order(self, macos_config):
        kinds = [type(p) for p in phases_of(build_graph(macos_config))]
        assert kinds == [PBXSourcesBuildPhase, PBXFrameworksBuildPhase]

    def test_no_embed_phase(self, macos_config):
        graph = build_graph(macos_config)
        assert not list(graph.nodes(PBXCopyFilesBuildPhase))

    def test_links_cocoa(self, macos_config):
        graph = build_graph(macos_config)
        frameworks = next(p for p in phases_of(graph) if isinstance(p, PBXFrameworksBuildPhase))
        assert phase_files(graph, frameworks) == ["System/Library/Frameworks/Cocoa.framework"]

    def test_project_structure(self, macos_config):
        graph = build_graph(macos_config)
        project = graph.project
        target = next(graph.nodes(PBXNativeTarget))
        assert [ref.id for ref in project.targets] == [target.id]
        product = graph.get(target.productReference.id, PBXFileReference)
        assert product.path == "Demo.app"
        assert product.sourceTree is SourceTree.BUILT_PRODUCTS_DIR
        products = graph.get(project.productRefGroup.id, PBXGroup)
        assert [ref.id for ref in products.children] == [product.id]
        main_group = graph.get(project.mainGroup.id, PBXGroup)
        assert products.id in [ref.id for ref in main_group.children]
        assert project.attributes["TargetAttributes"][target.id]["CreatedOnToolsVersion"]

    def test_configuration_lists(self, macos_config):
        graph = build_graph(macos_config)
        assert len(list(graph.nodes(XCConfigurationList))) == 2
        configurations = list(graph.nodes(XCBuildConfiguration))
        assert sorted(c.name for c in configurations) == ["Debug", "Debug", "Release", "Release"]
        for config_list in graph.nodes(XCConfigurationList):
            assert config_list.defaultConfigurationName == "Release"

    def test_resources_phase(self):
        graph = build_graph(make_config(resources=["Assets.xcassets"], icon="App.icon"))
        resources = next(p for p in phases_of(graph) if isinstance(p, PBXResourcesBuildPhase))
        assert phase_files(graph, resources) == ["Assets.xcassets", "App.icon"]
        assert isinstance(phases_of(graph)[-1], PBXResourcesBuildPhase)

    def test_headers_are_referenced_not_compiled(self):
        graph = build_graph(make_config(sources=["main.cpp", "main.h"]))
        paths = {ref.path for ref in graph.nodes(PBXFileReference)}
        assert "main.h" in paths
        sources = next(p for p in phases_of(graph) if isinstance(p, PBXSourcesBuildPhase))
        assert phase_files(graph, sources) == ["main.cpp"]

    def test_team_id_in_target_attributes(self):
        graph = build_graph(make_config(team_id="ABCDE12345"))
        target = next(graph.nodes(PBXNativeTarget))
        assert graph.project.attributes["TargetAttributes"][target.id]["DevelopmentTeam"] == (
            "ABCDE12345"
        )


class TestIosProject:
    def test_exactly_one_embed_phase_after_frameworks(self, ios_prebuilt_config):
        phases = phases_of(build_graph(ios_prebuilt_config))
        embeds = [
            i
            for i, p in enumerate(phases)
            if isinstance(p, PBXCopyFilesBuildPhase)
            and p.dstSubfolderSpec is DstSubfolderSpec.FRAMEWORKS
        ]
        frameworks = [i for i, p in enumerate(phases) if isinstance(p, PBXFrameworksBuildPhase)]
        assert len(embeds) == 1
        assert len(frameworks) == 1
        assert embeds[0] > frameworks[0]

    def test_framework_linked_and_embedded(self, ios_prebuilt_config):
        graph = build_graph(ios_prebuilt_config)
        phases = phases_of(graph)
        frameworks = next(p for p in phases if isinstance(p, PBXFrameworksBuildPhase))
        embed = next(p for p in phases if isinstance(p, PBXCopyFilesBuildPhase))
        assert "../Vendor/Engine.xcframework" in phase_files(graph, frameworks)
        assert phase_files(graph, embed) == ["../Vendor/Engine.xcframework"]
        build_file = graph.get(embed.files[0].id, PBXBuildFile)
        assert build_file.settings == {"ATTRIBUTES": ["CodeSignOnCopy", "RemoveHeadersOnCopy"]}

    def test_uikit_linked(self, ios_prebuilt_config):
        graph = build_graph(ios_prebuilt_config)
        paths = {ref.path for ref in graph.nodes(PBXFileReference)}
        assert "System/Library/Frameworks/UIKit.framework" in paths

    def test_macos_prebuilt_does_not_embed(self):
        graph = build_graph(make_config(library=LibraryLink(path="Engine.framework")))
        assert not list(graph.nodes(PBXCopyFilesBuildPhase))


class TestSourceLibrary:
    def test_pre_link_script_before_frameworks(self, source_library_config):
        phases = phases_of(build_graph(source_library_config))
        kinds = [type(p) for p in phases]
        assert kinds.index(PBXShellScriptBuildPhase) < kinds.index(PBXFrameworksBuildPhase)
        script = phases[kinds.index(PBXShellScriptBuildPhase)]
        assert script.name == "Build Library"
        assert 'cd "$SRCROOT/../engine"' in script.shellScript

    def test_library_not_in_frameworks_group(self, source_library_config):
        graph = build_graph(source_library_config)
        paths = {ref.path for ref in graph.nodes(PBXFileReference)}
        assert "../engine" not in paths


class TestErrors:
    def test_mandatory_library_without_path_leaves_graph_empty(self):
        graph = ObjectGraph()
        config = make_config(library=LibraryLink(path=None), require_library=True)
        with pytest.raises(ConfigurationError) as exc:
            ProjectBuilder(config, graph).build()
        assert exc.value.field == "library.path"
        assert len(graph) == 0

    def test_required_library_missing(self):
        graph = ObjectGraph()
        with pytest.raises(ConfigurationError):
            ProjectBuilder(make_config(require_library=True), graph).build()
        assert len(graph) == 0


class TestDeterminism:
    def test_same_config_same_document(self, ios_prebuilt_config):
        assert format_project(build_graph(ios_prebuilt_config)) == format_project(
            build_graph(ios_prebuilt_config)
        )

    def test_different_names_different_ids(self):
        first = {n.id for n in build_graph(make_config(name="One")).nodes()}
        second = {n.id for n in build_graph(make_config(name="Two")).nodes()}
        assert not first & second


LIBRARIES = [
    None,
    {"path": "Engine.framework"},
    {"path": "../Vendor/Engine.xcframework"},
    {"path": "../engine", "mode": "source"},
]


@pytest.mark.parametrize(
    "platforms,library,sources,resources",
    list(
        itertools.product(
            [["macos"], ["ios"], ["macos", "ios"]],
            LIBRARIES,
            [["main.cpp"], ["a.c", "b.mm", "c.h"], ["only.h"]],
            [[], ["Assets.xcassets"]],
        )
    ),
)
def test_generated_projects_validate(platforms, library, sources, resources):
    config = make_config(
        platforms=platforms,
        library=LibraryLink(**library) if library else None,
        sources=sources,
        resources=resources,
    )
    graph = build_graph(config)
    validate_project(graph)
    phases = phases_of(graph)
    kinds = [type(p) for p in phases]
    for kind in (PBXSourcesBuildPhase, PBXFrameworksBuildPhase, PBXResourcesBuildPhase):
        assert kinds.count(kind) <= 1
    if PBXCopyFilesBuildPhase in kinds:
        assert kinds.index(PBXCopyFilesBuildPhase) > kinds.index(PBXFrameworksBuildPhase)
    if PBXShellScriptBuildPhase in kinds:
        assert kinds.index(PBXShellScriptBuildPhase) < kinds.index(PBXFrameworksBuildPhase)
