"""
Tests for reading project files back into an object graph.
"""

import pytest

from conftest import build_graph, make_config
from xcscaffold.config import LibraryLink
from xcscaffold.errors import IdentifierCollision, ProjectFormatError
from xcscaffold.generators.xcode.formatter import format_project
from xcscaffold.generators.xcode.model import (
    BuildSetting,
    FileType,
    PBXFileReference,
    PBXNativeTarget,
    SourceTree,
    XCBuildConfiguration,
    YesNo,
)
from xcscaffold.generators.xcode.parser import parse_plist, parse_project, tokenize
from xcscaffold.generators.xcode.validator import validate_project

ID_A = "0123456789ABCDEF01234567"
ID_B = "89ABCDEF0123456789ABCDEF"


class TestTokenize:
    def test_comments_are_skipped(self):
        tokens = tokenize("// header\n{ a /* note */ = 1; }")
        assert [t[1] for t in tokens] == ["{", "a", "=", "1", ";", "}"]

    def test_line_numbers(self):
        tokens = tokenize('{\n/* two\nlines */\nkey = "v";\n}')
        assert tokens[1] == ("word", "key", 4)

    def test_string_unescape(self):
        tokens = tokenize(r'"a \"b\" \\ \n"')
        assert tokens == [("string", 'a "b" \\ \n', 1)]

    def test_unterminated_string(self):
        with pytest.raises(ProjectFormatError) as exc:
            tokenize('{ a = "open; }')
        assert exc.value.line == 1

    def test_unknown_escape(self):
        with pytest.raises(ProjectFormatError):
            tokenize(r'"\q"')


class TestParsePlist:
    def test_nested_values(self):
        document = parse_plist('{ a = 1; b = "1"; c = (x, "y",); d = { e = (); }; }')
        assert document == {"a": 1, "b": "1", "c": ["x", "y"], "d": {"e": []}}

    def test_duplicate_key(self):
        with pytest.raises(ProjectFormatError) as exc:
            parse_plist("{ a = 1;\n a = 2; }")
        assert exc.value.line == 2

    def test_duplicate_object_identifier(self):
        text = f"{{ objects = {{ {ID_A} = {{ isa = PBXGroup; }}; {ID_A} = {{ isa = PBXGroup; }}; }}; }}"
        with pytest.raises(IdentifierCollision):
            parse_plist(text)

    def test_missing_semicolon(self):
        with pytest.raises(ProjectFormatError):
            parse_plist("{ a = 1 }")

    def test_trailing_content(self):
        with pytest.raises(ProjectFormatError):
            parse_plist("{ } }")

    def test_unexpected_end(self):
        with pytest.raises(ProjectFormatError):
            parse_plist("{ a = (1, 2")


class TestParseProject:
    @pytest.mark.parametrize(
        "config",
        [
            make_config(sources=["a.cpp", "b.cpp"]),
            make_config(
                platforms=["ios"], library=LibraryLink(path="../Vendor/Engine.xcframework")
            ),
            make_config(
                library=LibraryLink(path="../engine", mode="source"),
                compiler_flags=["-Werror", "-DNAME=\"x y\""],
                resources=["Assets.xcassets"],
            ),
        ],
        ids=["macos", "ios-prebuilt", "source-library"],
    )
    def test_format_parse_format_is_identical(self, config):
        text = format_project(build_graph(config))
        graph = parse_project(text)
        validate_project(graph)
        assert format_project(graph) == text

    def test_typed_fields(self, macos_config):
        graph = parse_project(format_project(build_graph(macos_config)))
        refs = {ref.path: ref for ref in graph.nodes(PBXFileReference)}
        assert refs["a.cpp"].sourceTree is SourceTree.GROUP
        assert refs["a.cpp"].lastKnownFileType is FileType.CPP
        configuration = next(graph.nodes(XCBuildConfiguration))
        assert all(isinstance(s, BuildSetting) for s in configuration.buildSettings.values())
        assert YesNo.YES in [s.value for s in configuration.buildSettings.values()]
        assert next(graph.nodes(PBXNativeTarget)).name == "Demo"

    def test_identifiers_are_reserved(self, macos_config):
        original = build_graph(macos_config)
        graph = parse_project(format_project(original), namespace="Demo")
        assert sorted(graph.allocator) == sorted(node.id for node in original.nodes())
        added = graph.create_node(PBXFileReference, path="a.cpp", sourceTree=SourceTree.GROUP)
        assert added not in {node.id for node in original.nodes()}

    def test_unknown_isa(self):
        text = f"{{ objects = {{ {ID_A} = {{ isa = PBXLegacyTarget; }}; }}; rootObject = {ID_A}; }}"
        with pytest.raises(ProjectFormatError) as exc:
            parse_project(text)
        assert "PBXLegacyTarget" in str(exc.value)

    def test_unknown_field(self):
        text = (
            f"{{ objects = {{ {ID_A} = {{ isa = PBXFileReference; path = a.cpp; "
            f"sourceTree = \"<group>\"; colour = red; }}; }}; rootObject = {ID_A}; }}"
        )
        with pytest.raises(ProjectFormatError) as exc:
            parse_project(text)
        assert "colour" in str(exc.value)

    def test_missing_required_field(self):
        text = f"{{ objects = {{ {ID_A} = {{ isa = PBXFileReference; path = a.cpp; }}; }}; rootObject = {ID_A}; }}"
        with pytest.raises(ProjectFormatError) as exc:
            parse_project(text)
        assert "sourceTree" in str(exc.value)

    def test_malformed_reference(self):
        text = (
            f"{{ objects = {{ {ID_A} = {{ isa = PBXBuildFile; fileRef = nope; }}; }}; "
            f"rootObject = {ID_A}; }}"
        )
        with pytest.raises(ProjectFormatError):
            parse_project(text)

    def test_invalid_enum_value(self):
        text = (
            f"{{ objects = {{ {ID_A} = {{ isa = PBXFileReference; path = a.cpp; "
            f"sourceTree = NOWHERE; }}; }}; rootObject = {ID_A}; }}"
        )
        with pytest.raises(ProjectFormatError):
            parse_project(text)

    def test_malformed_identifier(self):
        text = f"{{ objects = {{ ABC = {{ isa = PBXGroup; children = (); sourceTree = \"<group>\"; }}; }}; rootObject = {ID_B}; }}"
        with pytest.raises(ProjectFormatError):
            parse_project(text)

    def test_missing_root_object(self):
        with pytest.raises(ProjectFormatError):
            parse_project("{ objects = { }; }")
