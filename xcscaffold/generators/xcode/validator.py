import os
from collections import Counter
from typing import List, Optional, Set, Tuple

from xcscaffold.config import Platform
from xcscaffold.errors import DanglingReference, InvalidProject
from xcscaffold.generators.xcode.graph import ObjectGraph, iter_references
from xcscaffold.generators.xcode.model import (
    BuildSetting,
    PBXBuildFile,
    PBXBuildPhase,
    PBXFileReference,
    PBXFrameworksBuildPhase,
    PBXNativeTarget,
    PBXProject,
    SourceTree,
    XCBuildConfiguration,
    XCConfigurationList,
    XcodeID,
)
from xcscaffold.generators.xcode.phases import UNIQUE_ROLES, PhaseRole, phase_role


def dangling_references(graph: ObjectGraph) -> List[Tuple[str, XcodeID]]:
    dangling = []
    for node in graph.nodes():
        for field, index, ref in iter_references(node):
            if ref.id not in graph:
                position = "" if index is None else f"[{index}]"
                dangling.append((f"{node.isa()} {node.id}.{field}{position}", ref.id))
    if graph.root is not None and graph.root not in graph:
        dangling.append(("rootObject", graph.root))
    return dangling


def validate_references(graph: ObjectGraph) -> List[str]:
    errors = []
    for node in graph.nodes():
        for field, index, ref in iter_references(node):
            if ref.id not in graph:
                continue
            allowed = node.REFERENCES.get(field, ())
            target = graph.resolve(ref.id)
            if target.isa() not in allowed:
                errors.append(
                    f"{node.isa()} {node.id}.{field} points at a {target.isa()}, "
                    f"expected one of {', '.join(allowed) or 'nothing'}"
                )
    return errors


def validate_configuration_lists(graph: ObjectGraph) -> List[str]:
    errors = []
    for config_list in graph.nodes(XCConfigurationList):
        if not config_list.buildConfigurations:
            errors.append(f"configuration list {config_list.id} has no configurations")
            continue
        names = [
            graph.get(ref.id, XCBuildConfiguration).name
            for ref in config_list.buildConfigurations
        ]
        for name, count in Counter(names).items():
            if count > 1:
                errors.append(
                    f"configuration list {config_list.id} has {count} configurations named {name!r}"
                )
        if config_list.defaultConfigurationName not in names:
            errors.append(
                f"configuration list {config_list.id} defaults to "
                f"{config_list.defaultConfigurationName!r} which is not one of {', '.join(names)}"
            )
    return errors


# Platform a target builds for, read from its SDKROOT setting
def target_platform(graph: ObjectGraph, target: PBXNativeTarget) -> Platform:
    lists = [target.buildConfigurationList.id]
    if graph.root is not None and graph.root in graph:
        lists.append(graph.project.buildConfigurationList.id)
    for list_id in lists:
        config_list = graph.get(list_id, XCConfigurationList)
        for ref in config_list.buildConfigurations:
            setting: Optional[BuildSetting] = graph.get(
                ref.id, XCBuildConfiguration
            ).buildSettings.get("SDKROOT")
            if setting is not None:
                return Platform.IOS if setting.value == "iphoneos" else Platform.MACOS
    return Platform.MACOS


def validate_phases(graph: ObjectGraph) -> List[str]:
    errors = []
    phase_owners: Counter = Counter()
    for target in graph.nodes(PBXNativeTarget):
        phases = [graph.get(ref.id, PBXBuildPhase) for ref in target.buildPhases]
        phase_owners.update(phase.id for phase in phases)
        roles = [phase_role(phase) for phase in phases]
        for role, count in Counter(roles).items():
            if role in UNIQUE_ROLES and count > 1:
                errors.append(f"target {target.name!r} has {count} {role.value} phases")
        frameworks = [
            i for i, phase in enumerate(phases) if isinstance(phase, PBXFrameworksBuildPhase)
        ]
        for i, role in enumerate(roles):
            if role is not PhaseRole.EMBED:
                continue
            if target_platform(graph, target) is not Platform.IOS:
                errors.append(f"target {target.name!r} embeds frameworks but is not an iOS target")
            if not frameworks or i < frameworks[0]:
                errors.append(
                    f"target {target.name!r} embeds frameworks before its frameworks phase"
                )

    for phase in graph.nodes(PBXBuildPhase):
        owners = phase_owners[phase.id]
        if owners != 1:
            errors.append(f"build phase {phase.id} belongs to {owners} targets, expected 1")

    file_owners: Counter = Counter()
    for phase in graph.nodes(PBXBuildPhase):
        file_owners.update(ref.id for ref in phase.files)
    for build_file in graph.nodes(PBXBuildFile):
        owners = file_owners[build_file.id]
        if owners != 1:
            errors.append(f"build file {build_file.id} belongs to {owners} phases, expected 1")
    return errors


def validate_targets(graph: ObjectGraph) -> List[str]:
    errors = []
    products: Counter = Counter()
    for target in graph.nodes(PBXNativeTarget):
        product = graph.get(target.productReference.id, PBXFileReference)
        products[product.id] += 1
        if product.sourceTree is not SourceTree.BUILT_PRODUCTS_DIR:
            errors.append(
                f"target {target.name!r} product {product.path!r} is not in BUILT_PRODUCTS_DIR"
            )
    for product_id, count in products.items():
        if count > 1:
            errors.append(f"product reference {product_id} is shared by {count} targets")
    return errors


def validate_reachability(graph: ObjectGraph) -> List[str]:
    if graph.root is None:
        return ["project has no root object"]
    root = graph.resolve(graph.root, "rootObject")
    if not isinstance(root, PBXProject):
        return [f"root object {root.id} is a {root.isa()}, expected PBXProject"]
    reached: Set[XcodeID] = set()
    pending = [root.id]
    while pending:
        current = pending.pop()
        if current in reached or current not in graph:
            continue
        reached.add(current)
        pending.extend(ref.id for _, _, ref in iter_references(graph.resolve(current)))
    return [
        f"{node.isa()} {node.id} is not reachable from the project"
        for node in graph.nodes()
        if node.id not in reached
    ]


def validate_output_paths(graph: ObjectGraph) -> List[str]:
    errors = []
    for target in graph.nodes(PBXNativeTarget):
        product_ref = graph.get(target.productReference.id, PBXFileReference)
        # Check for invalid filesystem characters
        if any(c in product_ref.path for c in '<>:"|?*'):
            errors.append(
                f"Output path '{product_ref.path}' contains invalid filesystem characters"
            )
    return errors


def validate_paths(graph: ObjectGraph, project_dir: str) -> List[str]:
    errors = []
    for ref in graph.nodes(PBXFileReference):
        if ref.sourceTree in (SourceTree.SOURCE_ROOT, SourceTree.GROUP):
            full_path = os.path.join(project_dir, ref.path)
            if not os.path.exists(full_path):
                errors.append(f"File not found: {full_path}")
        elif ref.sourceTree is SourceTree.ABSOLUTE:
            if not os.path.exists(ref.path):
                errors.append(f"File not found: {ref.path}")
        # Products are generated during build and SDK frameworks live in the SDK
    return errors


def validate_project(graph: ObjectGraph, project_dir: Optional[str] = None) -> None:
    dangling = dangling_references(graph)
    if dangling:
        context, id = dangling[0]
        raise DanglingReference(id, context)
    # The structural checks below rely on every edge pointing at the right kind
    errors = validate_reachability(graph) + validate_references(graph)
    if errors:
        raise InvalidProject(errors)
    errors = (
        validate_configuration_lists(graph)
        + validate_phases(graph)
        + validate_targets(graph)
        + validate_output_paths(graph)
    )
    if project_dir is not None:
        errors += validate_paths(graph, project_dir)
    if errors:
        raise InvalidProject(errors)
