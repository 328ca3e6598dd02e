import json
import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from xcscaffold.details.as_iterator import str_iter, unique
from xcscaffold.details.naming import generate_bundle_id, is_valid_bundle_id
from xcscaffold.errors import ConfigurationError

CONFIG_FILENAME = "xcscaffold.json"


class Platform(Enum):
    MACOS = "macos"
    IOS = "ios"

    @property
    def default_minimum_os_version(self) -> str:
        return DEFAULT_MINIMUM_OS_VERSIONS[self]


DEFAULT_MINIMUM_OS_VERSIONS = {
    Platform.MACOS: "14.0",
    Platform.IOS: "17.0",
}


def parse_platforms(platforms: Union[str, List[str]]) -> List[Platform]:
    names = [p.lower() for p in str_iter(platforms)]
    supported = [p.value for p in Platform]
    unsupported = [p for p in names if p not in supported]
    if unsupported:
        raise ConfigurationError(
            "platforms",
            f"unsupported platforms {', '.join(unsupported)}, "
            f"currently supported: {', '.join(supported)}",
        )
    if not names:
        raise ConfigurationError("platforms", "at least one platform is required")
    return [Platform(p) for p in unique(names)]


class LinkMode(Enum):
    # A .framework/.xcframework built elsewhere, linked and embedded as-is
    PREBUILT = "prebuilt"
    # A library built by an external build system before this target links
    SOURCE = "source"


class LibraryLink:
    def __init__(
        self,
        *,
        path: Optional[str],
        mode: Union[str, LinkMode] = LinkMode.PREBUILT,
        name: Optional[str] = None,
        libraries: List[str] = [],
        build_targets: List[str] = [],
        build_command: Optional[str] = None,
        include_dirs: List[str] = ["include"],
        library_dirs: List[str] = ["bazel-bin"],
        architectures: List[str] = [],
    ):
        try:
            self.mode = LinkMode(mode)
        except ValueError:
            raise ConfigurationError(
                "library.mode",
                f"unknown link mode {mode!r}, expected one of "
                f"{', '.join(m.value for m in LinkMode)}",
            ) from None
        self.path = path or None
        if name is None and self.path:
            name = Path(self.path.rstrip("/")).name
            for suffix in (".xcframework", ".framework"):
                if name.endswith(suffix):
                    name = name[: -len(suffix)]
        self.name = name
        self.libraries = list(str_iter(libraries)) or ([name] if name else [])
        self.build_targets = list(str_iter(build_targets)) or ["//..."]
        self.build_command = build_command
        self.include_dirs = list(str_iter(include_dirs))
        self.library_dirs = list(str_iter(library_dirs))
        self.architectures = list(str_iter(architectures))

    @property
    def is_xcframework(self) -> bool:
        return bool(self.path) and self.path.rstrip("/").endswith(".xcframework")

    @property
    def single_architecture(self) -> Optional[str]:
        if len(self.architectures) == 1:
            return self.architectures[0]
        return None

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "LibraryLink":
        return LibraryLink(
            path=data.get("path"),
            mode=data.get("mode", LinkMode.PREBUILT.value),
            name=data.get("name"),
            libraries=data.get("libraries", []),
            build_targets=data.get("buildTargets", []),
            build_command=data.get("buildCommand"),
            include_dirs=data.get("includeDirs", ["include"]),
            library_dirs=data.get("libraryDirs", ["bazel-bin"]),
            architectures=data.get("architectures", []),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"path": self.path, "mode": self.mode.value}
        if self.mode is LinkMode.SOURCE:
            data.update(
                {
                    "libraries": self.libraries,
                    "buildTargets": self.build_targets,
                    "includeDirs": self.include_dirs,
                    "libraryDirs": self.library_dirs,
                }
            )
            if self.build_command:
                data["buildCommand"] = self.build_command
        if self.architectures:
            data["architectures"] = self.architectures
        return data


class Config:
    def __init__(
        self,
        *,
        name: str,
        bundle_id: str,
        platforms: Union[str, List[str]],
        sources: List[str],
        info_plist: str,
        project_dir: str = ".",
        entitlements: Optional[str] = None,
        icon: Optional[str] = None,
        resources: List[str] = [],
        minimum_os_version: Optional[str] = None,
        team_id: str = "",
        version: str = "1.0",
        build_number: str = "1",
        product_name: Optional[str] = None,
        library: Optional[LibraryLink] = None,
        require_library: bool = False,
        compiler_flags: List[str] = [],
        **kwargs,
    ):
        if not name:
            raise ConfigurationError("name", "an app name is required")
        if not is_valid_bundle_id(bundle_id):
            raise ConfigurationError("bundle_id", f"invalid bundle identifier {bundle_id!r}")
        if not info_plist:
            raise ConfigurationError("info_plist", "an Info.plist path is required")
        self.name = name
        self.bundle_id = bundle_id
        self.platforms = parse_platforms(platforms)
        self.project_dir = str(project_dir)
        self.sources = [self.relative_path(s) for s in str_iter(sources)]
        self.info_plist = self.relative_path(info_plist)
        self.entitlements = self.relative_path(entitlements) if entitlements else None
        self.icon = self.relative_path(icon) if icon else None
        self.resources = [self.relative_path(r) for r in str_iter(resources)]
        self.minimum_os_version = (
            minimum_os_version or self.platform.default_minimum_os_version
        )
        self.team_id = team_id
        self.version = version
        self.build_number = build_number
        self.product_name = product_name or name
        self.library = library
        if library is not None and library.path:
            library.path = self.relative_path(library.path)
        self.require_library = require_library
        self.compiler_flags = list(str_iter(compiler_flags))
        self.__dict__.update(kwargs)

    # The platform the target is built for; iOS wins when both are requested
    @property
    def platform(self) -> Platform:
        return Platform.IOS if Platform.IOS in self.platforms else Platform.MACOS

    @property
    def xcodeproj_path(self) -> Path:
        return Path(self.project_dir).joinpath(f"{self.name}.xcodeproj")

    def relative_path(self, path: str) -> str:
        if os.path.isabs(path):
            return os.path.relpath(path, os.path.abspath(self.project_dir))
        return os.path.normpath(path)

    @staticmethod
    def from_dict(data: Dict[str, Any], project_dir: Union[str, Path] = ".") -> "Config":
        for required in ("name", "bundleId", "platforms", "sources", "infoPlist"):
            if required not in data:
                raise ConfigurationError(required, f"missing from {CONFIG_FILENAME}")
        apple = data.get("apple", {})
        library = data.get("library")
        return Config(
            name=data["name"],
            bundle_id=data["bundleId"],
            platforms=data["platforms"],
            sources=data["sources"],
            info_plist=data["infoPlist"],
            project_dir=str(project_dir),
            entitlements=data.get("entitlements"),
            icon=data.get("icon"),
            resources=data.get("resources", []),
            minimum_os_version=apple.get("minimumOsVersion"),
            team_id=apple.get("teamId", ""),
            version=data.get("version", "1.0"),
            build_number=data.get("buildNumber", "1"),
            product_name=data.get("productName"),
            library=LibraryLink.from_dict(library) if library is not None else None,
            require_library=data.get("requireLibrary", False),
            compiler_flags=data.get("compilerFlags", []),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "version": self.version,
            "buildNumber": self.build_number,
            "bundleId": self.bundle_id,
            "platforms": [p.value for p in self.platforms],
            "apple": {
                "teamId": self.team_id,
                "minimumOsVersion": self.minimum_os_version,
            },
            "sources": self.sources,
            "infoPlist": self.info_plist,
        }
        if self.product_name != self.name:
            data["productName"] = self.product_name
        if self.entitlements:
            data["entitlements"] = self.entitlements
        if self.icon:
            data["icon"] = self.icon
        if self.resources:
            data["resources"] = self.resources
        if self.library is not None:
            data["library"] = self.library.to_dict()
        if self.require_library:
            data["requireLibrary"] = True
        if self.compiler_flags:
            data["compilerFlags"] = self.compiler_flags
        return data


# Walk up from start_dir looking for a project configuration
def find_project_root(start_dir: Union[str, Path] = ".") -> Optional[Path]:
    current = Path(start_dir).resolve()
    for candidate in (current, *current.parents):
        if candidate.joinpath(CONFIG_FILENAME).is_file():
            return candidate
    return None


def read_config(project_dir: Union[str, Path]) -> Config:
    config_path = Path(project_dir).joinpath(CONFIG_FILENAME)
    if not config_path.is_file():
        raise ConfigurationError("config", f"no {CONFIG_FILENAME} found in {project_dir}")
    with open(config_path) as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError("config", f"{config_path} is not valid JSON: {e}") from e
    return Config.from_dict(data, project_dir=project_dir)


def write_config(project_dir: Union[str, Path], config: Config) -> Path:
    config_path = Path(project_dir).joinpath(CONFIG_FILENAME)
    with open(config_path, "w") as f:
        json.dump(config.to_dict(), f, indent=2)
        f.write("\n")
    return config_path


# Configuration for a freshly created app directory
def default_config(
    name: str,
    platforms: Union[str, List[str]],
    project_dir: Union[str, Path] = ".",
    team_id: str = "",
    library: Optional[LibraryLink] = None,
) -> Config:
    try:
        bundle_id = generate_bundle_id(name)
    except ValueError as e:
        raise ConfigurationError("name", str(e)) from e
    return Config(
        name=name,
        bundle_id=bundle_id,
        platforms=platforms,
        sources=["main.cpp"],
        resources=["Assets.xcassets"],
        info_plist="Info.plist",
        entitlements="entitlements.plist",
        project_dir=str(project_dir),
        team_id=team_id,
        library=library,
    )
