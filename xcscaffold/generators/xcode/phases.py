# Build phase ordering.
#
# Phases are added in any order together with their role. Ordering constraints
# come from the roles (compile and pre-link steps run before linking, embedding
# after it) plus any the caller adds. The orderer resolves them once with a
# topological sort that keeps every phase as close to its insertion position
# as the constraints allow.

import heapq
import logging
from dataclasses import dataclass
from enum import Enum
from graphlib import CycleError, TopologicalSorter
from typing import Dict, List, Optional, Set, Tuple

from xcscaffold.config import Platform
from xcscaffold.errors import OrderingConflict
from xcscaffold.generators.xcode.graph import ObjectGraph
from xcscaffold.generators.xcode.model import (
    DstSubfolderSpec,
    PBXBuildPhase,
    PBXCopyFilesBuildPhase,
    PBXFrameworksBuildPhase,
    PBXNativeTarget,
    PBXResourcesBuildPhase,
    PBXShellScriptBuildPhase,
    PBXSourcesBuildPhase,
    Reference,
    XcodeID,
)

logger = logging.getLogger(__name__)


class PhaseRole(Enum):
    SOURCES = "sources"
    PRE_LINK = "pre-link"
    FRAMEWORKS = "frameworks"
    EMBED = "embed"
    RESOURCES = "resources"
    SCRIPT = "script"
    COPY = "copy"


UNIQUE_ROLES = frozenset({PhaseRole.SOURCES, PhaseRole.FRAMEWORKS, PhaseRole.RESOURCES})

# (before, after) pairs implied by roles
IMPLICIT_CONSTRAINTS: List[Tuple[PhaseRole, PhaseRole]] = [
    (PhaseRole.SOURCES, PhaseRole.FRAMEWORKS),
    (PhaseRole.PRE_LINK, PhaseRole.FRAMEWORKS),
    (PhaseRole.FRAMEWORKS, PhaseRole.EMBED),
]

EMBED_PHASE_NAME = "Embed Frameworks"


@dataclass(frozen=True)
class PhaseRequirements:
    has_sources: bool
    needs_pre_link: bool = False
    embeds_artifacts: bool = False
    has_resources: bool = False


def phase_role(phase: PBXBuildPhase, before_link: bool = False) -> PhaseRole:
    if isinstance(phase, PBXSourcesBuildPhase):
        return PhaseRole.SOURCES
    if isinstance(phase, PBXFrameworksBuildPhase):
        return PhaseRole.FRAMEWORKS
    if isinstance(phase, PBXResourcesBuildPhase):
        return PhaseRole.RESOURCES
    if isinstance(phase, PBXCopyFilesBuildPhase):
        if phase.dstSubfolderSpec is DstSubfolderSpec.FRAMEWORKS:
            return PhaseRole.EMBED
        return PhaseRole.COPY
    if isinstance(phase, PBXShellScriptBuildPhase):
        return PhaseRole.PRE_LINK if before_link else PhaseRole.SCRIPT
    raise TypeError(f"unknown build phase kind {phase.isa()}")


class BuildPhaseOrderer:
    def __init__(self, platform: Platform):
        self.platform = platform
        self._phases: List[XcodeID] = []
        self._roles: Dict[XcodeID, PhaseRole] = {}
        self._constraints: List[Tuple[XcodeID, XcodeID]] = []

    # Rebuild the orderer for an existing target. Script phases that currently
    # run before the Frameworks phase keep their pre-link role.
    @staticmethod
    def from_target(
        graph: ObjectGraph, target: PBXNativeTarget, platform: Platform
    ) -> "BuildPhaseOrderer":
        orderer = BuildPhaseOrderer(platform)
        phases = [graph.get(ref.id, PBXBuildPhase) for ref in target.buildPhases]
        linked = any(isinstance(p, PBXFrameworksBuildPhase) for p in phases)
        seen_link = False
        for phase in phases:
            if isinstance(phase, PBXFrameworksBuildPhase):
                seen_link = True
            orderer.add(phase.id, phase_role(phase, before_link=linked and not seen_link))
        return orderer

    def __contains__(self, id: object) -> bool:
        return id in self._roles

    def role(self, id: XcodeID) -> PhaseRole:
        return self._roles[id]

    def find(self, role: PhaseRole) -> Optional[XcodeID]:
        return next((id for id in self._phases if self._roles[id] is role), None)

    def add(self, id: XcodeID, role: PhaseRole) -> None:
        if id in self._roles:
            raise OrderingConflict(f"build phase {id} was already added")
        if role in UNIQUE_ROLES and self.find(role) is not None:
            raise OrderingConflict(f"a target can only have one {role.value} phase")
        if role is PhaseRole.EMBED and self.platform is not Platform.IOS:
            raise OrderingConflict(
                f"embed phases are only supported on {Platform.IOS.value} targets"
            )
        self._phases.append(id)
        self._roles[id] = role

    # Require `before` to run before `after`
    def require(self, before: XcodeID, after: XcodeID) -> None:
        for id in (before, after):
            if id not in self._roles:
                raise OrderingConflict(f"build phase {id} is not part of this target")
        self._constraints.append((before, after))

    def _edges(self) -> Set[Tuple[XcodeID, XcodeID]]:
        edges = set(self._constraints)
        for before_role, after_role in IMPLICIT_CONSTRAINTS:
            befores = [id for id in self._phases if self._roles[id] is before_role]
            afters = [id for id in self._phases if self._roles[id] is after_role]
            edges.update((b, a) for b in befores for a in afters)
        return edges

    def order(self) -> List[XcodeID]:
        for role in (PhaseRole.PRE_LINK, PhaseRole.EMBED):
            if self.find(role) is not None and self.find(PhaseRole.FRAMEWORKS) is None:
                raise OrderingConflict(
                    f"a {role.value} phase needs a frameworks phase to be ordered against"
                )

        edges = self._edges()
        index = {id: position for position, id in enumerate(self._phases)}
        successors: Dict[XcodeID, List[XcodeID]] = {id: [] for id in self._phases}
        predecessors: Dict[XcodeID, Set[XcodeID]] = {id: set() for id in self._phases}
        sorter: TopologicalSorter = TopologicalSorter()
        for id in self._phases:
            sorter.add(id)
        for before, after in edges:
            successors[before].append(after)
            predecessors[after].add(before)
            sorter.add(after, before)
        try:
            topological = list(sorter.static_order())
        except CycleError as e:
            raise OrderingConflict(
                f"build phase constraints form a cycle: {' -> '.join(e.args[1])}"
            ) from e

        # A phase that must precede another inherits that phase's position
        priority: Dict[XcodeID, int] = {}
        for id in reversed(topological):
            priority[id] = min([index[id]] + [priority[s] for s in successors[id]])

        pending = {id: len(predecessors[id]) for id in self._phases}
        ready = [(priority[id], index[id], id) for id in self._phases if not pending[id]]
        heapq.heapify(ready)
        ordered: List[XcodeID] = []
        while ready:
            _, _, id = heapq.heappop(ready)
            ordered.append(id)
            for successor in successors[id]:
                pending[successor] -= 1
                if not pending[successor]:
                    heapq.heappush(ready, (priority[successor], index[successor], successor))

        if ordered != self._phases:
            logger.debug("reordered build phases %s", ", ".join(ordered))
        return ordered

    def apply(self, target: PBXNativeTarget) -> None:
        target.buildPhases = [Reference(id) for id in self.order()]
