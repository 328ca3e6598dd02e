# Incremental changes to an existing Xcode project.
#
# A project file is parsed back into an ObjectGraph, mutated through the
# operations below and written again once the result validates. Operations
# that add build phases go through the BuildPhaseOrderer so the target's phase
# order keeps satisfying the same constraints as a freshly generated project.

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from xcscaffold.config import LibraryLink, LinkMode, Platform
from xcscaffold.errors import ConfigurationError, OrderingConflict
from xcscaffold.generators.xcode.graph import ObjectGraph
from xcscaffold.generators.xcode.model import (
    BuildSetting,
    DstSubfolderSpec,
    PBXBuildFile,
    PBXBuildPhase,
    PBXCopyFilesBuildPhase,
    PBXFileReference,
    PBXFrameworksBuildPhase,
    PBXGroup,
    PBXNativeTarget,
    PBXResourcesBuildPhase,
    PBXShellScriptBuildPhase,
    PBXSourcesBuildPhase,
    Reference,
    SourceTree,
    XCBuildConfiguration,
    XCConfigurationList,
    XcodeID,
)
from xcscaffold.generators.xcode.model_builder import (
    EMBED_ATTRIBUTES,
    LIBRARY_SCRIPT_NAME,
    file_reference,
    is_compilable,
)
from xcscaffold.generators.xcode.parser import parse_project
from xcscaffold.generators.xcode.phases import EMBED_PHASE_NAME, BuildPhaseOrderer, PhaseRole
from xcscaffold.generators.xcode.settings import (
    SettingsMap,
    check_library_settings,
    library_build_script,
    library_settings,
    merge_setting_value,
)
from xcscaffold.generators.xcode.utils import (
    PROJECT_FILENAME,
    validate_xcodeproj_path,
    write_project,
)
from xcscaffold.generators.xcode.validator import target_platform, validate_project

logger = logging.getLogger(__name__)

FRAMEWORKS_GROUP = "Frameworks"


def open_project(xcodeproj: Path) -> ObjectGraph:
    xcodeproj = validate_xcodeproj_path(xcodeproj)
    pbxproj = xcodeproj.joinpath(PROJECT_FILENAME)
    if not pbxproj.is_file():
        raise ConfigurationError("project", f"{pbxproj} does not exist")
    with open(pbxproj, encoding="utf-8") as f:
        return parse_project(f.read(), namespace=xcodeproj.stem)


def find_target(graph: ObjectGraph, name: Optional[str] = None) -> PBXNativeTarget:
    targets = list(graph.nodes(PBXNativeTarget))
    if name is not None:
        for target in targets:
            if target.name == name:
                return target
        raise ConfigurationError("target", f"no target named {name!r}")
    if len(targets) != 1:
        raise ConfigurationError(
            "target", f"project has {len(targets)} targets, a target name is required"
        )
    return targets[0]


def _main_group(graph: ObjectGraph) -> PBXGroup:
    return graph.get(graph.project.mainGroup.id, PBXGroup)


def _find_file(graph: ObjectGraph, path: str) -> Optional[PBXFileReference]:
    for ref in graph.nodes(PBXFileReference):
        if ref.path == path and ref.sourceTree is SourceTree.GROUP:
            return ref
    return None


def _frameworks_group(graph: ObjectGraph) -> PBXGroup:
    main_group = _main_group(graph)
    for ref in main_group.children:
        child = graph.resolve(ref.id)
        if isinstance(child, PBXGroup) and child.name == FRAMEWORKS_GROUP:
            return child
    group = graph.create_node(
        PBXGroup, children=[], sourceTree=SourceTree.GROUP, name=FRAMEWORKS_GROUP
    )
    graph.add_edge(main_group.id, "children", group, index=_first_group_index(graph, main_group))
    return graph.get(group, PBXGroup)


# Files are listed ahead of the sub-groups of a group
def _first_group_index(graph: ObjectGraph, group: PBXGroup) -> int:
    for index, ref in enumerate(group.children):
        if isinstance(graph.resolve(ref.id), PBXGroup):
            return index
    return len(group.children)


def _file_in_group(graph: ObjectGraph, path: str, group: PBXGroup) -> XcodeID:
    existing = _find_file(graph, path)
    if existing is not None:
        return existing.id
    id = graph.insert(file_reference(path))
    graph.add_edge(group.id, "children", id, index=_first_group_index(graph, group))
    return id


def _place_phase(
    graph: ObjectGraph,
    orderer: BuildPhaseOrderer,
    target: PBXNativeTarget,
    id: XcodeID,
    role: PhaseRole,
) -> None:
    try:
        orderer.add(id, role)
        orderer.apply(target)
    except OrderingConflict:
        graph.remove_node(id)
        raise


def _phase(
    graph: ObjectGraph, target: PBXNativeTarget, kind: type, role: PhaseRole, **attributes
) -> PBXBuildPhase:
    orderer = BuildPhaseOrderer.from_target(graph, target, target_platform(graph, target))
    existing = orderer.find(role)
    if existing is not None:
        return graph.get(existing, kind)
    id = graph.create_node(kind, **attributes)
    _place_phase(graph, orderer, target, id, role)
    logger.debug("added %s to %s", kind.__name__, target.name)
    return graph.get(id, kind)


def _add_build_file(
    graph: ObjectGraph, phase: PBXBuildPhase, file_ref: XcodeID, settings: Optional[dict] = None
) -> XcodeID:
    for ref in phase.files:
        if graph.get(ref.id, PBXBuildFile).fileRef.id == file_ref:
            return ref.id
    id = graph.create_node(PBXBuildFile, fileRef=Reference(file_ref), settings=settings)
    graph.add_edge(phase.id, "files", id)
    return id


def add_file(graph: ObjectGraph, target: PBXNativeTarget, path: str) -> XcodeID:
    file_ref = _file_in_group(graph, path, _main_group(graph))
    if is_compilable(path):
        sources = _phase(graph, target, PBXSourcesBuildPhase, PhaseRole.SOURCES)
        _add_build_file(graph, sources, file_ref)
    return file_ref


def add_resource(graph: ObjectGraph, target: PBXNativeTarget, path: str) -> XcodeID:
    file_ref = _file_in_group(graph, path, _main_group(graph))
    resources = _phase(graph, target, PBXResourcesBuildPhase, PhaseRole.RESOURCES)
    _add_build_file(graph, resources, file_ref)
    return file_ref


def add_shell_script_phase(
    graph: ObjectGraph,
    target: PBXNativeTarget,
    name: str,
    script: str,
    before_link: bool = True,
    input_paths: Sequence[str] = (),
    output_paths: Sequence[str] = (),
) -> XcodeID:
    for ref in target.buildPhases:
        phase = graph.resolve(ref.id)
        if isinstance(phase, PBXShellScriptBuildPhase) and phase.name == name:
            raise ConfigurationError(
                "script.name", f"target {target.name!r} already has a script named {name!r}"
            )
    orderer = BuildPhaseOrderer.from_target(graph, target, target_platform(graph, target))
    id = graph.create_node(
        PBXShellScriptBuildPhase,
        name=name,
        shellScript=script,
        inputPaths=list(input_paths),
        outputPaths=list(output_paths),
        showEnvVarsInLog=0,
    )
    _place_phase(graph, orderer, target, id, PhaseRole.PRE_LINK if before_link else PhaseRole.SCRIPT)
    return id


def _configurations(graph: ObjectGraph, target: PBXNativeTarget) -> List[XCBuildConfiguration]:
    config_list = graph.get(target.buildConfigurationList.id, XCConfigurationList)
    return [graph.get(ref.id, XCBuildConfiguration) for ref in config_list.buildConfigurations]


def update_build_settings(
    graph: ObjectGraph,
    target: PBXNativeTarget,
    settings: SettingsMap,
    configurations: Optional[Iterable[str]] = None,
) -> None:
    names = set(configurations) if configurations is not None else None
    for configuration in _configurations(graph, target):
        if names is not None and configuration.name not in names:
            continue
        for key, value in settings.items():
            current = configuration.buildSettings.get(key)
            configuration.buildSettings[key] = BuildSetting(
                value=merge_setting_value(key, current.value if current else None, value)
            )


def link_library(graph: ObjectGraph, target: PBXNativeTarget, library: LibraryLink) -> None:
    if not library.path:
        raise ConfigurationError("library.path", "a library was requested without a path")
    platform = target_platform(graph, target)
    if library.mode is LinkMode.PREBUILT:
        file_ref = _file_in_group(graph, library.path, _frameworks_group(graph))
        frameworks = _phase(graph, target, PBXFrameworksBuildPhase, PhaseRole.FRAMEWORKS)
        _add_build_file(graph, frameworks, file_ref)
        if platform is Platform.IOS:
            embed = _phase(
                graph,
                target,
                PBXCopyFilesBuildPhase,
                PhaseRole.EMBED,
                dstSubfolderSpec=DstSubfolderSpec.FRAMEWORKS,
                name=EMBED_PHASE_NAME,
            )
            _add_build_file(graph, embed, file_ref, settings=dict(EMBED_ATTRIBUTES))
    else:
        _phase(graph, target, PBXFrameworksBuildPhase, PhaseRole.FRAMEWORKS)
        add_shell_script_phase(graph, target, LIBRARY_SCRIPT_NAME, library_build_script(library))

    update_build_settings(graph, target, library_settings(library, platform, (platform,)))
    for configuration in _configurations(graph, target):
        check_library_settings(
            {key: setting.value for key, setting in configuration.buildSettings.items()},
            library,
            f"{configuration.name} target",
        )
    logger.debug("linked %s into %s", library.name, target.name)


def enhance_project(
    xcodeproj: Path,
    *,
    target_name: Optional[str] = None,
    files: Sequence[str] = (),
    resources: Sequence[str] = (),
    scripts: Sequence[Tuple[str, str]] = (),
    library: Optional[LibraryLink] = None,
    settings: Optional[SettingsMap] = None,
) -> bool:
    graph = open_project(xcodeproj)
    # The operations below assume every reference has the kind its field permits
    validate_project(graph)
    target = find_target(graph, target_name)
    for path in files:
        add_file(graph, target, path)
    for path in resources:
        add_resource(graph, target, path)
    for name, script in scripts:
        add_shell_script_phase(graph, target, name, script)
    if library is not None:
        link_library(graph, target, library)
    if settings:
        update_build_settings(graph, target, settings)
    validate_project(graph)
    return write_project(graph, Path(xcodeproj))
