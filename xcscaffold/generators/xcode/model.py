# Xcode project file model.
#
# This module defines the node types of an Xcode project file (.pbxproj).
# Each dataclass is one object kind; its class name is the `isa` tag and its
# field names are the keys written to the project file. Edges between nodes are
# stored as Reference values, and every class declares which kinds each of its
# reference fields may point at.

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, Generic, List, Optional, Tuple, TypeVar, Union


# 24 hex digit object id
class XcodeID(str):
    pass


# Path anchors for file references and groups
class SourceTree(Enum):
    # Relative to the enclosing group (the project directory for the main group)
    GROUP = "<group>"
    SOURCE_ROOT = "SOURCE_ROOT"
    # Product references only
    BUILT_PRODUCTS_DIR = "BUILT_PRODUCTS_DIR"
    # System frameworks
    SDKROOT = "SDKROOT"
    ABSOLUTE = "<absolute>"


# Copy destinations (embedded frameworks, resources)
class DstSubfolderSpec(Enum):
    ABSOLUTE_PATH = 0
    WRAPPER = 1
    EXECUTABLES = 6
    RESOURCES = 7
    FRAMEWORKS = 10
    SHARED_FRAMEWORKS = 11
    SHARED_SUPPORT = 12
    PLUGINS = 13
    JAVA_RESOURCES = 15
    PRODUCTS_DIRECTORY = 16


# lastKnownFileType and explicitFileType values
class FileType(Enum):
    C = "sourcecode.c.c"
    CPP = "sourcecode.cpp.cpp"
    C_HEADER = "sourcecode.c.h"
    CPP_HEADER = "sourcecode.cpp.h"
    SWIFT = "sourcecode.swift"
    OBJC = "sourcecode.c.objc"
    OBJCPP = "sourcecode.cpp.objcpp"
    ASSEMBLY = "sourcecode.asm"
    XIB = "file.xib"
    STORYBOARD = "file.storyboard"
    PLIST = "text.plist.xml"
    ENTITLEMENTS = "text.plist.entitlements"
    XCCONFIG = "text.xcconfig"
    STRINGS = "text.plist.strings"
    ASSET_CATALOG = "folder.assetcatalog"
    ICON_COMPOSER = "folder.iconcomposer.icon"
    FRAMEWORK = "wrapper.framework"
    XCFRAMEWORK = "wrapper.xcframework"
    BUNDLE = "wrapper.bundle"
    APP = "wrapper.application"
    DYLIB = "compiled.mach-o.dylib"
    TEXT = "text"
    FOLDER = "folder"
    EXECUTABLE = "compiled.mach-o.executable"
    ARCHIVE = "archive.ar"

    @staticmethod
    def from_extension(ext: str) -> "FileType":
        if ext.startswith("."):
            ext = ext[1:]

        ext_to_type = {
            "c": FileType.C,
            "cc": FileType.CPP,
            "cpp": FileType.CPP,
            "cxx": FileType.CPP,
            "h": FileType.C_HEADER,
            "hpp": FileType.CPP_HEADER,
            "s": FileType.ASSEMBLY,
            "swift": FileType.SWIFT,
            "m": FileType.OBJC,
            "mm": FileType.OBJCPP,
            "xib": FileType.XIB,
            "storyboard": FileType.STORYBOARD,
            "plist": FileType.PLIST,
            "entitlements": FileType.ENTITLEMENTS,
            "xcconfig": FileType.XCCONFIG,
            "strings": FileType.STRINGS,
            "xcassets": FileType.ASSET_CATALOG,
            "icon": FileType.ICON_COMPOSER,
            "framework": FileType.FRAMEWORK,
            "xcframework": FileType.XCFRAMEWORK,
            "bundle": FileType.BUNDLE,
            "app": FileType.APP,
            "dylib": FileType.DYLIB,
            "a": FileType.ARCHIVE,
        }

        return ext_to_type.get(ext.lower(), FileType.TEXT)

    @staticmethod
    def from_path(path: str) -> "FileType":
        return FileType.from_extension(os.path.splitext(path.rstrip("/"))[1])


# Target product kinds
class ProductType(Enum):
    APPLICATION = "com.apple.product-type.application"
    FRAMEWORK = "com.apple.product-type.framework"
    STATIC_LIBRARY = "com.apple.product-type.library.static"
    DYNAMIC_LIBRARY = "com.apple.product-type.library.dynamic"
    BUNDLE = "com.apple.product-type.bundle"
    TOOL = "com.apple.product-type.tool"


# YES/NO style setting values
class YesNo(Enum):
    YES = "YES"
    NO = "NO"
    YES_ERROR = "YES_ERROR"
    YES_AGGRESSIVE = "YES_AGGRESSIVE"


SettingValue = Union[YesNo, str, List[str]]


# One build setting entry, either a scalar or a list
@dataclass
class BuildSetting:
    value: SettingValue


ReferenceT = TypeVar("ReferenceT", bound="XcodeObject")


@dataclass
class Reference(Generic[ReferenceT]):
    id: XcodeID


# Common base of every node kind
@dataclass
class XcodeObject(ABC):
    # Assigned by the ObjectGraph when the node is inserted
    id: XcodeID = field(init=False, default=XcodeID(""), compare=False)

    # reference field name -> kinds (isa names) the reference may point at
    REFERENCES: ClassVar[Dict[str, Tuple[str, ...]]] = {}

    @classmethod
    def isa(cls) -> str:
        return cls.__name__

    # Seed for the identity allocator, stable for identical inputs
    @abstractmethod
    def key(self) -> str:
        pass

    # Human readable annotation written next to the identifier
    def comment(self) -> Optional[str]:
        return None


# Node kinds
@dataclass
class PBXFileReference(XcodeObject):
    path: str
    sourceTree: SourceTree
    name: Optional[str] = None
    lastKnownFileType: Optional[FileType] = None
    explicitFileType: Optional[FileType] = None
    includeInIndex: Optional[int] = None
    fileEncoding: Optional[int] = None

    def key(self) -> str:
        return f"PBXFileReference:{self.sourceTree.name}:{self.path}"

    def comment(self) -> Optional[str]:
        return self.name or os.path.basename(self.path.rstrip("/"))


@dataclass
class PBXBuildFile(XcodeObject):
    fileRef: Reference[PBXFileReference]
    settings: Optional[Dict[str, Any]] = None

    REFERENCES = {"fileRef": ("PBXFileReference",)}

    def key(self) -> str:
        return f"PBXBuildFile:{self.fileRef.id}"


@dataclass
class PBXBuildPhase(XcodeObject):
    files: List[Reference[PBXBuildFile]] = field(default_factory=list)
    buildActionMask: int = 2147483647
    runOnlyForDeploymentPostprocessing: int = 0

    REFERENCES = {"files": ("PBXBuildFile",)}
    DISPLAY_NAME: ClassVar[str] = ""

    def key(self) -> str:
        return f"{self.isa()}:{self.comment()}"

    def comment(self) -> Optional[str]:
        return getattr(self, "name", None) or self.DISPLAY_NAME


@dataclass
class PBXSourcesBuildPhase(PBXBuildPhase):
    DISPLAY_NAME = "Sources"


@dataclass
class PBXFrameworksBuildPhase(PBXBuildPhase):
    DISPLAY_NAME = "Frameworks"


@dataclass
class PBXResourcesBuildPhase(PBXBuildPhase):
    DISPLAY_NAME = "Resources"


@dataclass
class PBXCopyFilesBuildPhase(PBXBuildPhase):
    dstPath: str = ""
    dstSubfolderSpec: DstSubfolderSpec = DstSubfolderSpec.FRAMEWORKS
    name: Optional[str] = None

    DISPLAY_NAME = "CopyFiles"

    def key(self) -> str:
        return f"{self.isa()}:{self.comment()}:{self.dstPath}:{self.dstSubfolderSpec.name}"


@dataclass
class PBXShellScriptBuildPhase(PBXBuildPhase):
    shellScript: str = ""
    name: Optional[str] = None
    inputPaths: List[str] = field(default_factory=list)
    outputPaths: List[str] = field(default_factory=list)
    shellPath: str = "/bin/sh"
    showEnvVarsInLog: Optional[int] = None

    DISPLAY_NAME = "ShellScript"


@dataclass
class PBXGroup(XcodeObject):
    children: List[Reference[Union["PBXGroup", PBXFileReference]]]
    sourceTree: SourceTree
    name: Optional[str] = None
    path: Optional[str] = None

    REFERENCES = {"children": ("PBXGroup", "PBXFileReference")}

    def key(self) -> str:
        return f"PBXGroup:{self.name or ''}:{self.path or ''}"

    def comment(self) -> Optional[str]:
        return self.name or self.path


@dataclass
class XCBuildConfiguration(XcodeObject):
    name: str
    buildSettings: Dict[str, BuildSetting]
    baseConfigurationReference: Optional[Reference[PBXFileReference]] = None

    REFERENCES = {"baseConfigurationReference": ("PBXFileReference",)}

    def key(self) -> str:
        return f"XCBuildConfiguration:{self.name}"

    def comment(self) -> Optional[str]:
        return self.name


@dataclass
class XCConfigurationList(XcodeObject):
    buildConfigurations: List[Reference[XCBuildConfiguration]]
    defaultConfigurationIsVisible: int = 0
    defaultConfigurationName: str = "Release"

    REFERENCES = {"buildConfigurations": ("XCBuildConfiguration",)}

    def key(self) -> str:
        ids = ",".join(ref.id for ref in self.buildConfigurations)
        return f"XCConfigurationList:{ids}:{self.defaultConfigurationName}"


@dataclass
class PBXNativeTarget(XcodeObject):
    name: str
    buildConfigurationList: Reference[XCConfigurationList]
    buildPhases: List[Reference[PBXBuildPhase]]
    productName: str
    productReference: Reference[PBXFileReference]
    productType: ProductType
    # Always empty in a single target project, kept so re-saved documents load
    buildRules: List[Reference[XcodeObject]] = field(default_factory=list)
    dependencies: List[Reference[XcodeObject]] = field(default_factory=list)

    REFERENCES = {
        "buildConfigurationList": ("XCConfigurationList",),
        "buildRules": ("PBXBuildRule",),
        "buildPhases": (
            "PBXSourcesBuildPhase",
            "PBXFrameworksBuildPhase",
            "PBXResourcesBuildPhase",
            "PBXCopyFilesBuildPhase",
            "PBXShellScriptBuildPhase",
        ),
        "productReference": ("PBXFileReference",),
        "dependencies": ("PBXTargetDependency",),
    }

    def key(self) -> str:
        return f"PBXNativeTarget:{self.name}"

    def comment(self) -> Optional[str]:
        return self.name


@dataclass
class PBXProject(XcodeObject):
    buildConfigurationList: Reference[XCConfigurationList]
    mainGroup: Reference[PBXGroup]
    productRefGroup: Reference[PBXGroup]
    targets: List[Reference[PBXNativeTarget]]
    attributes: Dict[str, Any] = field(default_factory=dict)
    compatibilityVersion: str = "Xcode 14.0"
    developmentRegion: str = "en"
    hasScannedForEncodings: int = 0
    knownRegions: List[str] = field(default_factory=lambda: ["en", "Base"])
    projectDirPath: str = ""
    projectRoot: str = ""

    REFERENCES = {
        "buildConfigurationList": ("XCConfigurationList",),
        "mainGroup": ("PBXGroup",),
        "productRefGroup": ("PBXGroup",),
        "targets": ("PBXNativeTarget",),
    }

    def key(self) -> str:
        return "PBXProject"

    def comment(self) -> Optional[str]:
        return "Project object"


NODE_TYPES: Dict[str, type] = {
    cls.__name__: cls
    for cls in (
        PBXProject,
        PBXNativeTarget,
        PBXGroup,
        PBXFileReference,
        PBXBuildFile,
        PBXSourcesBuildPhase,
        PBXFrameworksBuildPhase,
        PBXResourcesBuildPhase,
        PBXCopyFilesBuildPhase,
        PBXShellScriptBuildPhase,
        XCConfigurationList,
        XCBuildConfiguration,
    )
}
