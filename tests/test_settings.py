"""
Tests for build settings composition.
"""

import pytest

from conftest import make_config
from xcscaffold.config import LibraryLink, Platform
from xcscaffold.errors import ConfigurationError
from xcscaffold.generators.xcode.model import YesNo
from xcscaffold.generators.xcode.settings import (
    CONFIGURATIONS,
    INHERITED,
    SettingsRequest,
    check_library_settings,
    compose_settings,
    library_build_script,
    library_settings,
    merge_setting_value,
    overlay,
    parse_compiler_flags,
)


def compose(**overrides):
    return compose_settings(SettingsRequest.from_config(make_config(**overrides)))


class TestParseCompilerFlags:
    def test_known_flags_map_to_settings(self):
        settings, remaining = parse_compiler_flags(["-Werror", "-O2", "-std=c++17"])
        assert settings == {
            "GCC_TREAT_WARNINGS_AS_ERRORS": YesNo.YES,
            "GCC_OPTIMIZATION_LEVEL": "2",
            "CLANG_CXX_LANGUAGE_STANDARD": "c++17",
        }
        assert remaining == []

    def test_unknown_flags_pass_through(self):
        settings, remaining = parse_compiler_flags(["-Wall", "-Wno-comma", "-DFOO"])
        assert settings == {"CLANG_WARN_COMMA": YesNo.NO}
        assert remaining == ["-Wall", "-DFOO"]


class TestOverlay:
    def test_base_is_not_mutated(self):
        base = {"LIST": ["a"], "KEY": "base"}
        result = overlay(base, {"KEY": "changed"})
        result["LIST"].append("b")
        assert base == {"LIST": ["a"], "KEY": "base"}
        assert result["KEY"] == "changed"

    def test_merge_search_paths_appends_missing(self):
        merged = merge_setting_value("HEADER_SEARCH_PATHS", [INHERITED, "a"], ["a", "b", "b"])
        assert merged == [INHERITED, "a", "b"]

    def test_merge_flags_keeps_framework_pairs(self):
        current = [INHERITED, "-framework", "A"]
        merged = merge_setting_value("OTHER_LDFLAGS", current, [INHERITED, "-framework", "B"])
        assert merged == [INHERITED, "-framework", "A", "-framework", "B"]
        assert merge_setting_value("OTHER_LDFLAGS", merged, ["-framework", "A"]) == merged

    def test_merge_flags_never_collapses_existing_entries(self):
        current = ["-lengine", "-framework", "AppKit", "-framework", "Foundation", INHERITED]
        merged = merge_setting_value(
            "OTHER_LDFLAGS", current, [INHERITED, "-weak_framework", "B", "-lz"]
        )
        assert merged == current + ["-weak_framework", "B", "-lz"]

    def test_merge_scalar_replaces(self):
        assert merge_setting_value("PRODUCT_NAME", "old", "new") == "new"
        assert merge_setting_value("OTHER_CFLAGS", None, ["x"]) == ["x"]


class TestComposeSettings:
    def test_one_map_per_configuration(self):
        composed = compose()
        assert list(composed.target) == list(CONFIGURATIONS)
        assert list(composed.project) == list(CONFIGURATIONS)

    def test_debug_and_release_differ(self):
        composed = compose()
        assert composed.target["Debug"]["GCC_OPTIMIZATION_LEVEL"] == "0"
        assert "GCC_OPTIMIZATION_LEVEL" not in composed.target["Release"]
        assert composed.target["Debug"]["GCC_PREPROCESSOR_DEFINITIONS"] == ["DEBUG=1", INHERITED]
        assert composed.target["Release"]["GCC_PREPROCESSOR_DEFINITIONS"] == [
            "NDEBUG=1",
            INHERITED,
        ]

    def test_configurations_do_not_share_values(self):
        composed = compose()
        composed.target["Debug"]["LD_RUNPATH_SEARCH_PATHS"].append("extra")
        assert "extra" not in composed.target["Release"]["LD_RUNPATH_SEARCH_PATHS"]

    def test_macos_target(self):
        target = compose().target["Release"]
        assert target["SDKROOT"] == "macosx"
        assert target["MACOSX_DEPLOYMENT_TARGET"] == "14.0"
        assert "IPHONEOS_DEPLOYMENT_TARGET" not in target
        assert target["PRODUCT_BUNDLE_IDENTIFIER"] == "com.example.demo"
        assert target["INFOPLIST_FILE"] == "Info.plist"

    def test_ios_target(self):
        target = compose(platforms=["ios"]).target["Debug"]
        assert target["SDKROOT"] == "iphoneos"
        assert target["IPHONEOS_DEPLOYMENT_TARGET"] == "17.0"
        assert target["TARGETED_DEVICE_FAMILY"] == "1,2"
        assert "MACOSX_DEPLOYMENT_TARGET" not in target

    def test_project_defaults_from_table(self):
        project = compose().project["Debug"]
        assert project["GCC_WARN_ABOUT_RETURN_TYPE"] is YesNo.YES_ERROR
        assert project["CLANG_CXX_LANGUAGE_STANDARD"] == "gnu++20"
        assert project["ONLY_ACTIVE_ARCH"] is YesNo.YES
        assert "ONLY_ACTIVE_ARCH" not in compose().project["Release"]

    def test_compiler_flags_override_configuration_defaults(self):
        composed = compose(compiler_flags=["-O3", "-Wall"])
        assert composed.target["Debug"]["GCC_OPTIMIZATION_LEVEL"] == "3"
        assert composed.target["Release"]["GCC_OPTIMIZATION_LEVEL"] == "3"
        assert composed.target["Debug"]["OTHER_CFLAGS"] == [INHERITED, "-Wall"]

    def test_team_and_entitlements(self):
        target = compose(team_id="ABCDE12345", entitlements="app.entitlements").target["Debug"]
        assert target["DEVELOPMENT_TEAM"] == "ABCDE12345"
        assert target["CODE_SIGN_ENTITLEMENTS"] == "app.entitlements"

    def test_icon_name(self):
        target = compose(icon="Assets/Brand.icon").target["Debug"]
        assert target["ASSETCATALOG_COMPILER_APPICON_NAME"] == "Brand"


class TestLibrarySettings:
    def test_prebuilt_xcframework(self):
        library = LibraryLink(path="../Vendor/Engine.xcframework")
        settings = library_settings(library, Platform.IOS, (Platform.IOS,))
        assert settings["FRAMEWORK_SEARCH_PATHS"] == [INHERITED, '"$(SRCROOT)/../Vendor"']
        assert settings["HEADER_SEARCH_PATHS"] == [
            INHERITED,
            '"$(SRCROOT)/../Vendor/Engine.xcframework/ios-arm64/Engine.framework/Headers"',
        ]
        assert settings["OTHER_LDFLAGS"] == [INHERITED, "-framework", "Engine"]
        assert settings["ALWAYS_EMBED_SWIFT_STANDARD_LIBRARIES"] is YesNo.NO

    def test_prebuilt_framework_on_macos(self):
        settings = library_settings(LibraryLink(path="Engine.framework"), Platform.MACOS)
        assert settings["HEADER_SEARCH_PATHS"] == [
            INHERITED,
            '"$(SRCROOT)/Engine.framework/Headers"',
        ]
        assert "ALWAYS_EMBED_SWIFT_STANDARD_LIBRARIES" not in settings

    def test_source_library(self):
        library = LibraryLink(path="../engine", mode="source", libraries=["engine", "util"])
        settings = library_settings(library, Platform.MACOS)
        assert settings["HEADER_SEARCH_PATHS"] == ['"$(SRCROOT)/../engine/include"', INHERITED]
        assert settings["LIBRARY_SEARCH_PATHS"] == ['"$(SRCROOT)/../engine/bazel-bin"', INHERITED]
        assert settings["OTHER_LDFLAGS"] == [
            "-lengine",
            "-lutil",
            "-framework",
            "AppKit",
            "-framework",
            "Foundation",
            INHERITED,
        ]

    def test_single_architecture_on_macos(self):
        library = LibraryLink(path="../engine", mode="source", architectures=["arm64"])
        settings = library_settings(library, Platform.MACOS)
        assert settings["ARCHS"] == "arm64"
        assert settings["ONLY_ACTIVE_ARCH"] is YesNo.YES

    def test_compose_includes_library(self):
        target = compose(library=LibraryLink(path="../engine", mode="source")).target["Debug"]
        assert target["LIBRARY_SEARCH_PATHS"][0] == '"$(SRCROOT)/../engine/bazel-bin"'

    def test_required_library_missing(self):
        with pytest.raises(ConfigurationError) as exc:
            compose(require_library=True)
        assert exc.value.field == "library.path"

    def test_library_without_path(self):
        with pytest.raises(ConfigurationError) as exc:
            compose(library=LibraryLink(path=None))
        assert exc.value.field == "library.path"

    def test_empty_search_paths_rejected(self):
        library = LibraryLink(path="../engine", mode="source", library_dirs=[])
        with pytest.raises(ConfigurationError) as exc:
            compose(library=library)
        assert exc.value.field == "LIBRARY_SEARCH_PATHS"

    def test_check_library_settings_inherited_only_is_empty(self):
        library = LibraryLink(path="Engine.framework")
        settings = {
            "FRAMEWORK_SEARCH_PATHS": [INHERITED],
            "HEADER_SEARCH_PATHS": [INHERITED, "x"],
            "OTHER_LDFLAGS": ["-framework", "Engine"],
        }
        with pytest.raises(ConfigurationError) as exc:
            check_library_settings(settings, library, "Debug target")
        assert exc.value.field == "FRAMEWORK_SEARCH_PATHS"


class TestLibraryBuildScript:
    def test_bazel_discovery(self):
        script = library_build_script(LibraryLink(path="../engine", mode="source"))
        assert script.startswith("set -e\n")
        assert "command -v bazel" in script
        assert 'cd "$SRCROOT/../engine"' in script
        assert script.endswith("$BAZEL_CMD build //...\n")

    def test_custom_command(self):
        library = LibraryLink(path="../engine", mode="source", build_command="make -j8")
        script = library_build_script(library)
        assert "bazel" not in script
        assert script.endswith('cd "$SRCROOT/../engine"\nmake -j8\n')
