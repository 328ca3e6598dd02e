# Xcode project model builder.
#
# This module turns a scaffold configuration into a complete object graph: one
# application target with its file references, groups, build phases and
# configurations, and the project object that owns them. Settings are composed
# before the first node is created so configuration errors leave nothing behind.

import logging
import os
from typing import Dict, List, Optional

from xcscaffold.config import Config, LinkMode, Platform
from xcscaffold.details.as_iterator import unique
from xcscaffold.generators.xcode.graph import ObjectGraph
from xcscaffold.generators.xcode.identity import IdentityAllocator
from xcscaffold.generators.xcode.model import (
    DstSubfolderSpec,
    FileType,
    PBXBuildFile,
    PBXCopyFilesBuildPhase,
    PBXFileReference,
    PBXFrameworksBuildPhase,
    PBXGroup,
    PBXNativeTarget,
    PBXProject,
    PBXResourcesBuildPhase,
    PBXShellScriptBuildPhase,
    PBXSourcesBuildPhase,
    ProductType,
    Reference,
    SourceTree,
    XCBuildConfiguration,
    XCConfigurationList,
    XcodeID,
)
from xcscaffold.generators.xcode.phases import (
    EMBED_PHASE_NAME,
    BuildPhaseOrderer,
    PhaseRequirements,
    PhaseRole,
)
from xcscaffold.generators.xcode.settings import (
    CONFIGURATIONS,
    DEFAULT_CONFIGURATION,
    ComposedSettings,
    SettingsMap,
    SettingsRequest,
    as_build_settings,
    compose_settings,
    library_build_script,
)

logger = logging.getLogger(__name__)

# Extensions that Xcode can compile (add to sources build phase)
COMPILABLE_EXTENSIONS = frozenset(
    {
        # C/C++
        ".c",
        ".cc",
        ".cpp",
        ".cxx",
        # Objective-C/C++
        ".m",
        ".mm",
        # Assembly
        ".s",
        # Swift
        ".swift",
    }
)

SYSTEM_FRAMEWORKS = {
    Platform.MACOS: "Cocoa",
    Platform.IOS: "UIKit",
}

# Settings for a framework copied into the application bundle
EMBED_ATTRIBUTES = {"ATTRIBUTES": ["CodeSignOnCopy", "RemoveHeadersOnCopy"]}

LIBRARY_SCRIPT_NAME = "Build Library"


def is_compilable(path: str) -> bool:
    return os.path.splitext(path.lower())[1] in COMPILABLE_EXTENSIONS


def file_reference(path: str, source_tree: SourceTree = SourceTree.GROUP) -> PBXFileReference:
    basename = os.path.basename(path.rstrip("/"))
    return PBXFileReference(
        path=path,
        sourceTree=source_tree,
        name=basename if basename != path else None,
        lastKnownFileType=FileType.from_path(path),
    )


def system_framework_reference(name: str) -> PBXFileReference:
    return PBXFileReference(
        path=f"System/Library/Frameworks/{name}.framework",
        sourceTree=SourceTree.SDKROOT,
        name=f"{name}.framework",
        lastKnownFileType=FileType.FRAMEWORK,
    )


def product_reference(product_name: str) -> PBXFileReference:
    return PBXFileReference(
        path=f"{product_name}.app",
        sourceTree=SourceTree.BUILT_PRODUCTS_DIR,
        explicitFileType=FileType.APP,
        includeInIndex=0,
    )


def requirements_for(config: Config) -> PhaseRequirements:
    library = config.library
    return PhaseRequirements(
        has_sources=any(is_compilable(source) for source in config.sources),
        needs_pre_link=library is not None and library.mode is LinkMode.SOURCE,
        embeds_artifacts=(
            library is not None
            and library.mode is LinkMode.PREBUILT
            and config.platform is Platform.IOS
        ),
        has_resources=bool(config.resources or config.icon),
    )


def create_configuration_list(
    graph: ObjectGraph, settings: Dict[str, SettingsMap]
) -> XcodeID:
    configurations = [
        graph.create_node(
            XCBuildConfiguration,
            name=name,
            buildSettings=as_build_settings(settings[name]),
        )
        for name in CONFIGURATIONS
    ]
    return graph.create_node(
        XCConfigurationList,
        buildConfigurations=[Reference(id) for id in configurations],
        defaultConfigurationName=DEFAULT_CONFIGURATION,
    )


class ProjectBuilder:
    def __init__(self, config: Config, graph: Optional[ObjectGraph] = None):
        self.config = config
        self.graph = graph or ObjectGraph(IdentityAllocator(namespace=config.name))
        self.requirements = requirements_for(config)

    def _file(self, path: str, source_tree: SourceTree = SourceTree.GROUP) -> XcodeID:
        return self.graph.insert(file_reference(path, source_tree))

    def _build_file(self, file_ref: XcodeID, settings: Optional[dict] = None) -> XcodeID:
        return self.graph.create_node(
            PBXBuildFile, fileRef=Reference(file_ref), settings=settings
        )

    def _group(self, children: List[XcodeID], name: Optional[str] = None) -> XcodeID:
        return self.graph.create_node(
            PBXGroup,
            children=[Reference(id) for id in children],
            sourceTree=SourceTree.GROUP,
            name=name,
        )

    def build(self) -> ObjectGraph:
        config = self.config
        graph = self.graph
        # Fails with ConfigurationError before any node exists
        composed: ComposedSettings = compose_settings(SettingsRequest.from_config(config))
        library = config.library

        logger.debug("building project %s for %s", config.name, config.platform.value)

        # File references, in main group order
        sources = unique(config.sources)
        source_refs = {path: self._file(path) for path in sources}
        main_children = list(source_refs.values())
        main_children.append(self._file(config.info_plist))
        if config.entitlements:
            main_children.append(self._file(config.entitlements))
        resource_refs = [self._file(path) for path in unique(config.resources)]
        if config.icon:
            resource_refs.append(self._file(config.icon))
        main_children.extend(resource_refs)

        framework_refs = [
            self.graph.insert(system_framework_reference(SYSTEM_FRAMEWORKS[config.platform]))
        ]
        library_ref: Optional[XcodeID] = None
        if library is not None and library.mode is LinkMode.PREBUILT:
            assert library.path
            library_ref = self._file(library.path)
            framework_refs.append(library_ref)
        main_children.append(self._group(framework_refs, name="Frameworks"))

        product_ref = graph.insert(product_reference(config.product_name))
        products_group = self._group([product_ref], name="Products")
        main_children.append(products_group)
        main_group = self._group(main_children)

        # Build phases, ordered afterwards
        orderer = BuildPhaseOrderer(config.platform)
        if self.requirements.has_sources:
            source_files = [
                self._build_file(ref)
                for path, ref in source_refs.items()
                if is_compilable(path)
            ]
            orderer.add(
                graph.create_node(
                    PBXSourcesBuildPhase, files=[Reference(id) for id in source_files]
                ),
                PhaseRole.SOURCES,
            )
        link_files = [self._build_file(ref) for ref in framework_refs]
        orderer.add(
            graph.create_node(
                PBXFrameworksBuildPhase, files=[Reference(id) for id in link_files]
            ),
            PhaseRole.FRAMEWORKS,
        )
        if self.requirements.embeds_artifacts:
            assert library_ref is not None
            embed_file = self._build_file(library_ref, settings=dict(EMBED_ATTRIBUTES))
            orderer.add(
                graph.create_node(
                    PBXCopyFilesBuildPhase,
                    files=[Reference(embed_file)],
                    dstSubfolderSpec=DstSubfolderSpec.FRAMEWORKS,
                    name=EMBED_PHASE_NAME,
                ),
                PhaseRole.EMBED,
            )
        if self.requirements.has_resources:
            resource_files = [self._build_file(ref) for ref in resource_refs]
            orderer.add(
                graph.create_node(
                    PBXResourcesBuildPhase, files=[Reference(id) for id in resource_files]
                ),
                PhaseRole.RESOURCES,
            )
        if self.requirements.needs_pre_link:
            assert library is not None
            # Added after the Frameworks phase; the orderer moves it before linking
            orderer.add(
                graph.create_node(
                    PBXShellScriptBuildPhase,
                    name=LIBRARY_SCRIPT_NAME,
                    shellScript=library_build_script(library),
                    showEnvVarsInLog=0,
                ),
                PhaseRole.PRE_LINK,
            )

        target_configs = create_configuration_list(graph, composed.target)
        target = graph.create_node(
            PBXNativeTarget,
            name=config.name,
            buildConfigurationList=Reference(target_configs),
            buildPhases=[],
            productName=config.product_name,
            productReference=Reference(product_ref),
            productType=ProductType.APPLICATION,
        )
        orderer.apply(graph.get(target, PBXNativeTarget))

        project_configs = create_configuration_list(graph, composed.project)
        attributes = {
            "BuildIndependentTargetsInParallel": 1,
            "LastUpgradeCheck": "1500",
            "TargetAttributes": {target: {"CreatedOnToolsVersion": "15.0"}},
        }
        if config.team_id:
            attributes["TargetAttributes"][target]["DevelopmentTeam"] = config.team_id
        graph.root = graph.create_node(
            PBXProject,
            buildConfigurationList=Reference(project_configs),
            mainGroup=Reference(main_group),
            productRefGroup=Reference(products_group),
            targets=[Reference(target)],
            attributes=attributes,
        )
        logger.debug("built %d objects for %s", len(graph), config.name)
        return graph


def generate_xcode_project(config: Config) -> ObjectGraph:
    return ProjectBuilder(config).build()
