# Xcode project object graph.
#
# The graph owns every node of one project, keyed by identifier. Nodes refer to
# each other through Reference values stored in their fields; the graph offers
# ordered edge insertion, cascading removal and checked lookups on top of that.

import dataclasses
import logging
from typing import Dict, Iterator, List, Optional, Tuple, Type, TypeVar

from xcscaffold.errors import DanglingReference
from xcscaffold.generators.xcode.identity import IdentityAllocator
from xcscaffold.generators.xcode.model import PBXProject, Reference, XcodeID, XcodeObject

logger = logging.getLogger(__name__)

NodeT = TypeVar("NodeT", bound=XcodeObject)

# (field name, list index or None for scalar fields, reference)
Edge = Tuple[str, Optional[int], Reference]


def iter_references(node: XcodeObject) -> Iterator[Edge]:
    for field in dataclasses.fields(node):
        value = getattr(node, field.name)
        if isinstance(value, Reference):
            yield field.name, None, value
        elif isinstance(value, list):
            for index, item in enumerate(value):
                if isinstance(item, Reference):
                    yield field.name, index, item


def _is_optional_field(node: XcodeObject, name: str) -> bool:
    for field in dataclasses.fields(node):
        if field.name == name:
            return field.default is None
    return False


class ObjectGraph:
    def __init__(self, allocator: Optional[IdentityAllocator] = None):
        self.allocator = allocator or IdentityAllocator()
        self._nodes: Dict[XcodeID, XcodeObject] = {}
        self.root: Optional[XcodeID] = None

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, id: object) -> bool:
        return id in self._nodes

    def __iter__(self) -> Iterator[XcodeObject]:
        return iter(list(self._nodes.values()))

    def create_node(self, kind: Type[NodeT], **attributes) -> XcodeID:
        return self.insert(kind(**attributes))

    def insert(self, node: XcodeObject, id: Optional[str] = None) -> XcodeID:
        if id is None:
            node.id = self.allocator.allocate(node.key())
        else:
            node.id = self.allocator.reserve(id)
        self._nodes[node.id] = node
        logger.debug("created %s %s", node.isa(), node.id)
        return node.id

    def resolve(self, id: str, context: Optional[str] = None) -> XcodeObject:
        try:
            return self._nodes[XcodeID(id)]
        except KeyError:
            raise DanglingReference(id, context) from None

    def get(self, id: str, kind: Type[NodeT]) -> NodeT:
        node = self.resolve(id)
        if not isinstance(node, kind):
            raise TypeError(f"{id} is a {node.isa()}, expected {kind.__name__}")
        return node

    def nodes(self, kind: Optional[Type[NodeT]] = None) -> Iterator[NodeT]:
        for node in list(self._nodes.values()):
            if kind is None or isinstance(node, kind):
                yield node  # type: ignore[misc]

    @property
    def project(self) -> PBXProject:
        if self.root is None:
            raise DanglingReference("<unset>", "rootObject")
        return self.get(self.root, PBXProject)

    def references(self, node: XcodeObject) -> Iterator[Edge]:
        return iter_references(node)

    # Nodes holding at least one reference to `id`
    def dependents(self, id: str) -> List[XcodeObject]:
        return [
            node
            for node in self._nodes.values()
            if any(ref.id == id for _, _, ref in iter_references(node))
        ]

    # Point a reference field of `from_id` at `to_id`. Scalar fields are
    # replaced, list fields receive the reference at `index` (appended when None).
    def add_edge(
        self, from_id: str, field: str, to_id: str, index: Optional[int] = None
    ) -> None:
        source = self.resolve(from_id)
        self.resolve(to_id, f"{source.isa()}.{field}")
        if field not in {f.name for f in dataclasses.fields(source)}:
            raise AttributeError(f"{source.isa()} has no field {field!r}")
        current = getattr(source, field)
        reference: Reference = Reference(XcodeID(to_id))
        if isinstance(current, list):
            if index is None:
                current.append(reference)
            else:
                current.insert(index, reference)
        else:
            if index is not None:
                raise ValueError(f"{source.isa()}.{field} is not an ordered field")
            setattr(source, field, reference)

    def remove_edge(self, from_id: str, field: str, to_id: str) -> None:
        source = self.resolve(from_id)
        current = getattr(source, field)
        if not isinstance(current, list):
            raise ValueError(f"{source.isa()}.{field} is not an ordered field")
        current[:] = [ref for ref in current if ref.id != to_id]

    # Remove a node. List references to it are dropped from their owners and
    # optional scalar references are cleared; nodes that need it through a
    # required scalar field are removed as well.
    def remove_node(self, id: str) -> List[XcodeID]:
        removed: List[XcodeID] = []
        pending = [XcodeID(id)]
        self.resolve(id)
        while pending:
            current = pending.pop(0)
            if current not in self._nodes:
                continue
            del self._nodes[current]
            removed.append(current)
            if self.root == current:
                self.root = None
            for node in list(self._nodes.values()):
                for field, index, ref in list(iter_references(node)):
                    if ref.id != current:
                        continue
                    if index is not None:
                        self.remove_edge(node.id, field, current)
                    elif _is_optional_field(node, field):
                        setattr(node, field, None)
                    else:
                        pending.append(node.id)
        logger.debug("removed %s", ", ".join(removed))
        return removed
