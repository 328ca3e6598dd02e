# Xcode build settings composer.
#
# Produces one settings map per build configuration for the application target
# and for the project. Debug and Release are overlays applied to copies of a
# shared base map; known compiler flags are translated into their Xcode
# settings and the rest pass through to OTHER_CFLAGS.

import logging
import os
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from xcscaffold.config import Config, LibraryLink, LinkMode, Platform
from xcscaffold.details.as_iterator import unique
from xcscaffold.errors import ConfigurationError
from xcscaffold.generators.xcode.model import BuildSetting, SettingValue, YesNo

logger = logging.getLogger(__name__)

CONFIGURATIONS = ("Debug", "Release")
DEFAULT_CONFIGURATION = "Release"

INHERITED = "$(inherited)"

# Icon set used when no icon is configured
DEFAULT_APP_ICON = "AppIcon"

SettingsMap = Dict[str, SettingValue]


@dataclass(frozen=True)
class XcodeSetting:
    name: str  # Xcode build setting name
    default: Optional[SettingValue]  # Project level value, None leaves it unset
    choices: Dict[str, SettingValue] = field(
        default_factory=dict
    )  # flag -> value mapping


def _warning(name: str, default: SettingValue, flag: str) -> XcodeSetting:
    return XcodeSetting(
        name, default, {f"-W{flag}": YesNo.YES, f"-Wno-{flag}": YesNo.NO}
    )


# Project level defaults and the compiler flags that override them.
# Flags not in any choices dict pass through to OTHER_CFLAGS (e.g. -Wall, -Wextra)
XCODE_SETTINGS: List[XcodeSetting] = [
    _warning("GCC_WARN_64_TO_32_BIT_CONVERSION", YesNo.YES, "shorten-64-to-32"),
    _warning("GCC_WARN_ABOUT_RETURN_TYPE", YesNo.YES_ERROR, "return-type"),
    _warning("GCC_WARN_UNDECLARED_SELECTOR", YesNo.YES, "undeclared-selector"),
    _warning("GCC_WARN_UNINITIALIZED_AUTOS", YesNo.YES_AGGRESSIVE, "uninitialized"),
    _warning("GCC_WARN_UNUSED_FUNCTION", YesNo.YES, "unused-function"),
    _warning("GCC_WARN_UNUSED_VARIABLE", YesNo.YES, "unused-variable"),
    _warning(
        "CLANG_WARN_BLOCK_CAPTURE_AUTORELEASING", YesNo.YES, "block-capture-autoreleasing"
    ),
    _warning("CLANG_WARN_BOOL_CONVERSION", YesNo.YES, "bool-conversion"),
    _warning("CLANG_WARN_COMMA", YesNo.YES, "comma"),
    _warning("CLANG_WARN_CONSTANT_CONVERSION", YesNo.YES, "constant-conversion"),
    _warning(
        "CLANG_WARN_DEPRECATED_OBJC_IMPLEMENTATIONS", YesNo.YES, "deprecated-implementations"
    ),
    _warning(
        "CLANG_WARN_DIRECT_OBJC_ISA_USAGE", YesNo.YES_ERROR, "deprecated-objc-isa-usage"
    ),
    _warning("CLANG_WARN_DOCUMENTATION_COMMENTS", YesNo.YES, "documentation"),
    _warning("CLANG_WARN_EMPTY_BODY", YesNo.YES, "empty-body"),
    _warning("CLANG_WARN_ENUM_CONVERSION", YesNo.YES, "enum-conversion"),
    _warning("CLANG_WARN_INFINITE_RECURSION", YesNo.YES, "infinite-recursion"),
    _warning("CLANG_WARN_INT_CONVERSION", YesNo.YES, "int-conversion"),
    _warning(
        "CLANG_WARN_NON_LITERAL_NULL_CONVERSION", YesNo.YES, "non-literal-null-conversion"
    ),
    _warning("CLANG_WARN_OBJC_IMPLICIT_RETAIN_SELF", YesNo.YES, "implicit-retain-self"),
    _warning("CLANG_WARN_OBJC_LITERAL_CONVERSION", YesNo.YES, "objc-literal-conversion"),
    _warning("CLANG_WARN_OBJC_ROOT_CLASS", YesNo.YES_ERROR, "objc-root-class"),
    _warning(
        "CLANG_WARN_QUOTED_INCLUDE_IN_FRAMEWORK_HEADER",
        YesNo.YES,
        "quoted-include-in-framework-header",
    ),
    _warning("CLANG_WARN_RANGE_LOOP_ANALYSIS", YesNo.YES, "range-loop-analysis"),
    _warning("CLANG_WARN_STRICT_PROTOTYPES", YesNo.YES, "strict-prototypes"),
    _warning("CLANG_WARN_SUSPICIOUS_MOVE", YesNo.YES, "move"),
    _warning(
        "CLANG_WARN_UNGUARDED_AVAILABILITY", YesNo.YES_AGGRESSIVE, "unguarded-availability"
    ),
    _warning("CLANG_WARN_UNREACHABLE_CODE", YesNo.YES, "unreachable-code"),
    _warning("CLANG_WARN__DUPLICATE_METHOD_MATCH", YesNo.YES, "duplicate-method-match"),
    # Warning control
    XcodeSetting(
        "GCC_TREAT_WARNINGS_AS_ERRORS",
        None,
        {"-Werror": YesNo.YES, "-Wno-error": YesNo.NO},
    ),
    XcodeSetting("GCC_WARN_INHIBIT_ALL_WARNINGS", None, {"-w": YesNo.YES}),
    XcodeSetting(
        "GCC_WARN_PEDANTIC",
        None,
        {"-pedantic": YesNo.YES, "-Wpedantic": YesNo.YES, "-Wno-pedantic": YesNo.NO},
    ),
    # Optimization levels, set per configuration
    XcodeSetting(
        "GCC_OPTIMIZATION_LEVEL",
        None,
        {
            "-O0": "0",
            "-O1": "1",
            "-O2": "2",
            "-O3": "3",
            "-Os": "s",
            "-Ofast": "fast",
        },
    ),
    # Debug info, set per configuration
    XcodeSetting(
        "GCC_GENERATE_DEBUGGING_SYMBOLS", None, {"-g": YesNo.YES, "-g0": YesNo.NO}
    ),
    # C++ language standard
    XcodeSetting(
        "CLANG_CXX_LANGUAGE_STANDARD",
        "gnu++20",
        {
            "-std=c++14": "c++14",
            "-std=c++17": "c++17",
            "-std=c++20": "c++20",
            "-std=c++23": "c++23",
            "-std=gnu++14": "gnu++14",
            "-std=gnu++17": "gnu++17",
            "-std=gnu++20": "gnu++20",
        },
    ),
    # C language standard
    XcodeSetting(
        "GCC_C_LANGUAGE_STANDARD",
        "gnu17",
        {
            "-std=c11": "c11",
            "-std=c17": "c17",
            "-std=gnu11": "gnu11",
            "-std=gnu17": "gnu17",
        },
    ),
]

# Build lookup table: flag -> (setting_name, value)
_FLAG_LOOKUP: Dict[str, Tuple[str, SettingValue]] = {
    flag: (setting.name, value)
    for setting in XCODE_SETTINGS
    for flag, value in setting.choices.items()
}


def parse_compiler_flags(
    flags: List[str],
) -> Tuple[SettingsMap, List[str]]:
    settings: SettingsMap = {}
    remaining: List[str] = []

    for flag in flags:
        if flag in _FLAG_LOOKUP:
            name, value = _FLAG_LOOKUP[flag]
            settings[name] = value
        else:
            remaining.append(flag)

    return settings, remaining


@dataclass(frozen=True)
class SettingsRequest:
    platform: Platform
    bundle_id: str
    minimum_os_version: str
    product_name: str
    info_plist: str
    platforms: Tuple[Platform, ...] = ()
    library: Optional[LibraryLink] = None
    require_library: bool = False
    entitlements: Optional[str] = None
    icon_name: Optional[str] = None
    team_id: str = ""
    version: str = "1.0"
    build_number: str = "1"
    compiler_flags: Tuple[str, ...] = ()

    @staticmethod
    def from_config(config: Config) -> "SettingsRequest":
        icon_name = None
        if config.icon:
            icon_name = os.path.splitext(os.path.basename(config.icon.rstrip("/")))[0]
        return SettingsRequest(
            platform=config.platform,
            bundle_id=config.bundle_id,
            minimum_os_version=config.minimum_os_version,
            product_name=config.product_name,
            info_plist=config.info_plist,
            platforms=tuple(config.platforms),
            library=config.library,
            require_library=config.require_library,
            entitlements=config.entitlements,
            icon_name=icon_name,
            team_id=config.team_id,
            version=config.version,
            build_number=config.build_number,
            compiler_flags=tuple(config.compiler_flags),
        )


@dataclass
class ComposedSettings:
    # configuration name -> settings, in CONFIGURATIONS order
    target: Dict[str, SettingsMap]
    project: Dict[str, SettingsMap]


def as_build_settings(values: SettingsMap) -> Dict[str, BuildSetting]:
    return {name: BuildSetting(value=deepcopy(value)) for name, value in values.items()}


def overlay(base: SettingsMap, changes: SettingsMap) -> SettingsMap:
    result = deepcopy(base)
    result.update(deepcopy(changes))
    return result


# Linker flags whose operand is the following list entry
PAIRED_FLAGS = ("-framework", "-weak_framework")


def _flag_units(values: List[str]) -> List[Tuple[str, ...]]:
    units = []
    i = 0
    while i < len(values):
        if values[i] in PAIRED_FLAGS and i + 1 < len(values):
            units.append((values[i], values[i + 1]))
            i += 2
        else:
            units.append((values[i],))
            i += 1
    return units


# Lists only gain the entries or flag pairs they lack, existing entries are kept
# as they are. Anything else is replaced.
def merge_setting_value(
    key: str, current: Optional[SettingValue], value: SettingValue
) -> SettingValue:
    if not (isinstance(current, list) and isinstance(value, list)):
        return deepcopy(value)
    if key.endswith("_SEARCH_PATHS"):
        present = {(path,) for path in current}
        additions = [(path,) for path in unique(value)]
    else:
        present = set(_flag_units(current))
        additions = _flag_units(value)
    merged = list(current)
    for unit in additions:
        if unit not in present:
            merged.extend(unit)
            present.add(unit)
    return merged


def _srcroot(*parts: str) -> str:
    path = os.path.normpath(os.path.join(*parts)) if parts else "."
    if path == ".":
        return '"$(SRCROOT)"'
    return f'"$(SRCROOT)/{path}"'


def _system_frameworks(platform: Platform) -> List[str]:
    ui = "UIKit" if platform is Platform.IOS else "AppKit"
    return ["-framework", ui, "-framework", "Foundation"]


# Keys that locate the linked library, per link mode
REQUIRED_LIBRARY_KEYS = {
    LinkMode.PREBUILT: ("FRAMEWORK_SEARCH_PATHS", "HEADER_SEARCH_PATHS", "OTHER_LDFLAGS"),
    LinkMode.SOURCE: ("LIBRARY_SEARCH_PATHS", "HEADER_SEARCH_PATHS", "OTHER_LDFLAGS"),
}


def check_library(request: SettingsRequest) -> Optional[LibraryLink]:
    library = request.library
    if library is None:
        if request.require_library:
            raise ConfigurationError("library.path", "a library is required but none is configured")
        return None
    if not library.path:
        raise ConfigurationError("library.path", "a library was requested without a path")
    if not library.name:
        raise ConfigurationError("library.name", f"cannot derive a library name from {library.path!r}")
    return library


def library_settings(
    library: LibraryLink, platform: Platform, platforms: Tuple[Platform, ...] = ()
) -> SettingsMap:
    settings: SettingsMap = {}
    assert library.path and library.name
    if library.mode is LinkMode.PREBUILT:
        settings["FRAMEWORK_SEARCH_PATHS"] = [INHERITED, _srcroot(os.path.dirname(library.path))]
        if library.is_xcframework:
            # One headers directory per platform slice of the xcframework
            headers = []
            for slice_platform in platforms or (platform,):
                slice_name = "ios-arm64" if slice_platform is Platform.IOS else "macos-arm64"
                headers.append(
                    _srcroot(library.path, slice_name, f"{library.name}.framework", "Headers")
                )
        else:
            headers = [_srcroot(library.path, "Headers")]
        settings["HEADER_SEARCH_PATHS"] = [INHERITED] + headers
        settings["OTHER_LDFLAGS"] = [INHERITED, "-framework", library.name]
        if platform is Platform.IOS:
            settings["ALWAYS_EMBED_SWIFT_STANDARD_LIBRARIES"] = YesNo.NO
    else:
        settings["HEADER_SEARCH_PATHS"] = [
            _srcroot(library.path, include) for include in library.include_dirs
        ] + [INHERITED]
        settings["LIBRARY_SEARCH_PATHS"] = [
            _srcroot(library.path, library_dir) for library_dir in library.library_dirs
        ] + [INHERITED]
        settings["OTHER_LDFLAGS"] = (
            [f"-l{name}" for name in library.libraries]
            + _system_frameworks(platform)
            + [INHERITED]
        )
    if platform is Platform.MACOS and library.single_architecture:
        settings["ARCHS"] = library.single_architecture
        settings["ONLY_ACTIVE_ARCH"] = YesNo.YES
    return settings


def _is_empty(value: Optional[SettingValue]) -> bool:
    if value is None:
        return True
    if isinstance(value, list):
        return not [v for v in value if v and v != INHERITED]
    if isinstance(value, YesNo):
        return False
    return not value


def check_library_settings(settings: SettingsMap, library: LibraryLink, context: str) -> None:
    for key in REQUIRED_LIBRARY_KEYS[library.mode]:
        if _is_empty(settings.get(key)):
            raise ConfigurationError(key, f"missing or empty in {context} settings")


# Shell script run before linking to build a SOURCE mode library
def library_build_script(library: LibraryLink) -> str:
    assert library.path
    if library.build_command:
        build = library.build_command
    else:
        build = "$BAZEL_CMD build " + " ".join(library.build_targets)
    lines = [
        "set -e",
        "",
    ]
    if not library.build_command:
        lines += [
            'BAZEL_CMD=""',
            "if command -v bazel >/dev/null 2>&1; then",
            '    BAZEL_CMD="bazel"',
            'elif [ -f "/opt/homebrew/bin/bazel" ]; then',
            '    BAZEL_CMD="/opt/homebrew/bin/bazel"',
            'elif [ -f "/usr/local/bin/bazel" ]; then',
            '    BAZEL_CMD="/usr/local/bin/bazel"',
            "else",
            '    echo "error: bazel not found, install it or add it to PATH"',
            "    exit 1",
            "fi",
            "",
        ]
    lines += [
        f'cd "$SRCROOT/{library.path}"',
        build,
    ]
    return "\n".join(lines) + "\n"


def _target_base(request: SettingsRequest, library: Optional[LibraryLink]) -> SettingsMap:
    base: SettingsMap = {
        "ASSETCATALOG_COMPILER_APPICON_NAME": request.icon_name or DEFAULT_APP_ICON,
        "ASSETCATALOG_COMPILER_GLOBAL_ACCENT_COLOR_NAME": "",
        "CLANG_CXX_LANGUAGE_STANDARD": "gnu++20",
        "CLANG_ENABLE_MODULES": YesNo.YES,
        "CLANG_ENABLE_OBJC_ARC": YesNo.YES,
        "CLANG_ENABLE_OBJC_WEAK": YesNo.YES,
        "CODE_SIGN_STYLE": "Automatic",
        "CURRENT_PROJECT_VERSION": request.build_number,
        "GENERATE_INFOPLIST_FILE": YesNo.NO,
        "INFOPLIST_FILE": request.info_plist,
        "MARKETING_VERSION": request.version,
        "PRODUCT_BUNDLE_IDENTIFIER": request.bundle_id,
        "PRODUCT_NAME": "$(TARGET_NAME)",
        "SWIFT_EMIT_LOC_STRINGS": YesNo.YES,
    }
    if request.team_id:
        base["DEVELOPMENT_TEAM"] = request.team_id
    if request.entitlements:
        base["CODE_SIGN_ENTITLEMENTS"] = request.entitlements
    if request.icon_name:
        base["INFOPLIST_ENABLE_CFBUNDLEICONS_MERGE"] = YesNo.YES

    if request.platform is Platform.IOS:
        base.update(
            {
                "INFOPLIST_KEY_UIApplicationSupportsIndirectInputEvents": YesNo.YES,
                "INFOPLIST_KEY_UILaunchStoryboardName": "LaunchScreen",
                "INFOPLIST_KEY_UISupportedInterfaceOrientations": [
                    "UIInterfaceOrientationPortrait",
                    "UIInterfaceOrientationLandscapeLeft",
                    "UIInterfaceOrientationLandscapeRight",
                ],
                "INFOPLIST_KEY_UISupportedInterfaceOrientations_iPad": [
                    "UIInterfaceOrientationPortrait",
                    "UIInterfaceOrientationPortraitUpsideDown",
                    "UIInterfaceOrientationLandscapeLeft",
                    "UIInterfaceOrientationLandscapeRight",
                ],
                "IPHONEOS_DEPLOYMENT_TARGET": request.minimum_os_version,
                "LD_RUNPATH_SEARCH_PATHS": [INHERITED, "@executable_path/Frameworks"],
                "SDKROOT": "iphoneos",
                "TARGETED_DEVICE_FAMILY": "1,2",
            }
        )
    else:
        base.update(
            {
                "COMBINE_HIDPI_IMAGES": YesNo.YES,
                "INFOPLIST_KEY_NSMainNibFile": "",
                "INFOPLIST_KEY_NSPrincipalClass": "NSApplication",
                "LD_RUNPATH_SEARCH_PATHS": [INHERITED, "@executable_path/../Frameworks"],
                "MACOSX_DEPLOYMENT_TARGET": request.minimum_os_version,
                "SDKROOT": "macosx",
            }
        )

    if library is not None:
        base.update(library_settings(library, request.platform, request.platforms))

    _, remaining = parse_compiler_flags(list(request.compiler_flags))
    if remaining:
        base["OTHER_CFLAGS"] = [INHERITED] + remaining
        base["OTHER_CPLUSPLUSFLAGS"] = [INHERITED] + remaining
    return base


TARGET_OVERLAYS: Dict[str, SettingsMap] = {
    "Debug": {
        "DEBUG_INFORMATION_FORMAT": "dwarf",
        "GCC_DYNAMIC_NO_PIC": YesNo.NO,
        "GCC_GENERATE_DEBUGGING_SYMBOLS": YesNo.YES,
        "GCC_OPTIMIZATION_LEVEL": "0",
        "GCC_PREPROCESSOR_DEFINITIONS": ["DEBUG=1", INHERITED],
        "MTL_ENABLE_DEBUG_INFO": "INCLUDE_SOURCE",
        "MTL_FAST_MATH": YesNo.YES,
    },
    "Release": {
        "COPY_PHASE_STRIP": YesNo.NO,
        "DEBUG_INFORMATION_FORMAT": "dwarf-with-dsym",
        "ENABLE_NS_ASSERTIONS": YesNo.NO,
        "GCC_PREPROCESSOR_DEFINITIONS": ["NDEBUG=1", INHERITED],
        "MTL_ENABLE_DEBUG_INFO": YesNo.NO,
        "MTL_FAST_MATH": YesNo.YES,
        "STRIP_INSTALLED_PRODUCT": YesNo.YES,
    },
}

PROJECT_OVERLAYS: Dict[str, SettingsMap] = {
    "Debug": {
        "DEBUG_INFORMATION_FORMAT": "dwarf",
        "ENABLE_TESTABILITY": YesNo.YES,
        "GCC_DYNAMIC_NO_PIC": YesNo.NO,
        "GCC_OPTIMIZATION_LEVEL": "0",
        "GCC_PREPROCESSOR_DEFINITIONS": ["DEBUG=1", INHERITED],
        "MTL_ENABLE_DEBUG_INFO": "INCLUDE_SOURCE",
        "ONLY_ACTIVE_ARCH": YesNo.YES,
    },
    "Release": {
        "DEBUG_INFORMATION_FORMAT": "dwarf-with-dsym",
        "ENABLE_NS_ASSERTIONS": YesNo.NO,
        "MTL_ENABLE_DEBUG_INFO": YesNo.NO,
        "VALIDATE_PRODUCT": YesNo.YES,
    },
}


def _project_base(request: SettingsRequest) -> SettingsMap:
    base: SettingsMap = {
        "ALWAYS_SEARCH_USER_PATHS": YesNo.NO,
        "CLANG_ANALYZER_NONNULL": YesNo.YES,
        "CLANG_ANALYZER_NUMBER_OBJECT_CONVERSION": YesNo.YES_AGGRESSIVE,
        "CLANG_ENABLE_MODULES": YesNo.YES,
        "CLANG_ENABLE_OBJC_ARC": YesNo.YES,
        "CLANG_ENABLE_OBJC_WEAK": YesNo.YES,
        "COPY_PHASE_STRIP": YesNo.NO,
        "ENABLE_STRICT_OBJC_MSGSEND": YesNo.YES,
        "GCC_NO_COMMON_BLOCKS": YesNo.YES,
        "MTL_FAST_MATH": YesNo.YES,
    }
    # Apply defaults from settings table
    for setting in XCODE_SETTINGS:
        if setting.default is not None:
            base[setting.name] = setting.default
    if Platform.IOS in (request.platforms or (request.platform,)):
        base["IPHONEOS_DEPLOYMENT_TARGET"] = request.minimum_os_version
        base["SDKROOT"] = "iphoneos"
    else:
        base["MACOSX_DEPLOYMENT_TARGET"] = request.minimum_os_version
        base["SDKROOT"] = "macosx"
    return base


def compose_settings(request: SettingsRequest) -> ComposedSettings:
    library = check_library(request)
    target_base = _target_base(request, library)
    project_base = _project_base(request)
    flag_settings, _ = parse_compiler_flags(list(request.compiler_flags))

    target: Dict[str, SettingsMap] = {}
    project: Dict[str, SettingsMap] = {}
    for name in CONFIGURATIONS:
        # Explicit compiler flags win over the configuration defaults
        target[name] = overlay(overlay(target_base, TARGET_OVERLAYS[name]), flag_settings)
        project[name] = overlay(project_base, PROJECT_OVERLAYS[name])
        if library is not None:
            check_library_settings(target[name], library, f"{name} target")
    logger.debug(
        "composed %s settings for %s (%s)",
        ", ".join(CONFIGURATIONS),
        request.product_name,
        request.platform.value,
    )
    return ComposedSettings(target=target, project=project)
