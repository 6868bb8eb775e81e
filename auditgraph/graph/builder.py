"""
Object graph construction.

Walks a live object graph from its root and materializes a flat,
id-indexed table of nodes. Edges hold global ids, never live objects, so a
graph with cycles becomes a plain table.

Traversal is depth-first pre-order: properties in declaration order,
list/map elements in iteration order, set elements by fragment. Each global
id is visited once; the first instance reaching an id wins.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterator, Union

from ..errors import AuditError, ErrorCode
from ..metamodel.global_id import GlobalId, IdFactory, InstanceId, UnboundedValueObjectId, ValueObjectId
from ..metamodel.managed import Entity, ManagedClass, ManagedClassRegistry
from ..metamodel.property import Property
from ..metamodel.types import ContainerType, MapType, SetType, is_managed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SingleEdge:
    """Property holding one managed object (or None)."""

    property_name: str
    target: GlobalId | None

    def state_value(self) -> GlobalId | None:
        return self.target


@dataclass(frozen=True)
class MultiEdge:
    """List/array (tuple of ids) or set (frozenset of ids) of managed objects."""

    property_name: str
    targets: tuple[GlobalId | None, ...] | frozenset[GlobalId]

    def state_value(self) -> tuple[GlobalId | None, ...] | frozenset[GlobalId]:
        return self.targets


@dataclass(frozen=True)
class MapEdge:
    """Map whose values are managed objects, keyed by the map key."""

    property_name: str
    targets: dict[Any, GlobalId | None]

    def state_value(self) -> dict[Any, GlobalId | None]:
        return dict(self.targets)


Edge = Union[SingleEdge, MultiEdge, MapEdge]


@dataclass
class ObjectNode:
    global_id: GlobalId
    managed_class: ManagedClass
    cdo: Any
    edges: dict[str, Edge] = field(default_factory=dict)

    def edge(self, property_name: str) -> Edge | None:
        return self.edges.get(property_name)


@dataclass
class ObjectGraph:
    """Id-indexed node table in traversal order."""

    root: ObjectNode
    nodes: dict[GlobalId, ObjectNode] = field(default_factory=dict)

    def node(self, global_id: GlobalId) -> ObjectNode | None:
        return self.nodes.get(global_id)

    def global_ids(self) -> list[GlobalId]:
        return list(self.nodes)

    def __iter__(self) -> Iterator[ObjectNode]:
        return iter(self.nodes.values())

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, global_id: object) -> bool:
        return global_id in self.nodes


def _owner_and_path(global_id: GlobalId) -> tuple[InstanceId | UnboundedValueObjectId, str]:
    if isinstance(global_id, ValueObjectId):
        return global_id.owner_id, global_id.fragment
    return global_id, ""  # type: ignore[return-value]


class GraphBuilder:
    """Builds ObjectGraphs from live roots."""

    def __init__(self, registry: ManagedClassRegistry, id_factory: IdFactory):
        self.registry = registry
        self.id_factory = id_factory

    def root_id(self, root: Any) -> GlobalId:
        """
        Global id a root object receives.

        Raises:
            AuditError(NOT_INSTANCE_NOR_ID): root is not an Entity or Value Object
        """
        if not self.registry.is_managed_instance(root):
            raise AuditError(ErrorCode.NOT_INSTANCE_NOR_ID, root)
        managed = self.registry.get_for(root)
        if isinstance(managed, Entity):
            return self.id_factory.entity_id(managed, root)
        return UnboundedValueObjectId(managed.type_name)

    def build(self, root: Any) -> ObjectGraph:
        root_id = self.root_id(root)
        graph: ObjectGraph | None = None
        nodes: dict[GlobalId, ObjectNode] = {}
        # Python identity of value objects already given an id (cycle guard)
        seen_value_objects: dict[int, GlobalId] = {}

        stack: list[tuple[Any, GlobalId]] = [(root, root_id)]
        while stack:
            cdo, global_id = stack.pop()
            if global_id in nodes:
                continue

            node = ObjectNode(global_id, self.registry.get_for(cdo), cdo)
            nodes[global_id] = node
            if graph is None:
                graph = ObjectGraph(root=node, nodes=nodes)

            children: list[tuple[Any, GlobalId]] = []
            for prop in node.managed_class.properties:
                edge = self._edge(node, prop, children, seen_value_objects)
                if edge is not None:
                    node.edges[prop.name] = edge

            # Reversed so the first child is popped (and visited) first
            for child in reversed(children):
                if child[1] not in nodes:
                    stack.append(child)

        assert graph is not None
        logger.debug(f"Built graph of {len(nodes)} node(s) from {root_id}")
        return graph

    # -------------------------------------------------------------------------
    # Edges
    # -------------------------------------------------------------------------

    def _edge(
        self,
        node: ObjectNode,
        prop: Property,
        children: list[tuple[Any, GlobalId]],
        seen: dict[int, GlobalId],
    ) -> Edge | None:
        mapped = prop.mapped_type
        value = prop.get(node.cdo)
        owner, path = _owner_and_path(node.global_id)
        base = self.id_factory.property_fragment(path, prop.name)

        if is_managed(mapped):
            if value is None:
                return SingleEdge(prop.name, None)
            if not self.registry.is_managed_instance(value):
                return None
            return SingleEdge(prop.name, self._child(value, owner, base, children, seen))

        if isinstance(mapped, ContainerType) and is_managed(mapped.item_type):
            if value is None:
                return None
            if isinstance(mapped, SetType):
                return self._set_edge(prop, value, owner, base, children, seen)
            targets = tuple(
                None if item is None
                else self._child(item, owner, self.id_factory.index_fragment(base, i), children, seen)
                for i, item in enumerate(value)
            )
            return MultiEdge(prop.name, targets)

        if isinstance(mapped, MapType) and is_managed(mapped.value_type):
            if value is None:
                return None
            map_targets: dict[Any, GlobalId | None] = {}
            for key, item in value.items():
                if item is None:
                    map_targets[key] = None
                    continue
                fragment = self.id_factory.key_fragment(base, key)
                map_targets[key] = self._child(item, owner, fragment, children, seen)
            return MapEdge(prop.name, map_targets)

        return None

    def _set_edge(
        self,
        prop: Property,
        value: Any,
        owner: InstanceId | UnboundedValueObjectId,
        base: str,
        children: list[tuple[Any, GlobalId]],
        seen: dict[int, GlobalId],
    ) -> MultiEdge:
        keyed: list[tuple[str, Any]] = []
        for item in value:
            if item is None:
                continue
            fragment = self.id_factory.digest_fragment(base, self.id_factory.content_digest(item))
            keyed.append((fragment, item))
        keyed.sort(key=lambda pair: pair[0])
        targets = frozenset(self._child(item, owner, fragment, children, seen) for fragment, item in keyed)
        return MultiEdge(prop.name, targets)

    def _child(
        self,
        value: Any,
        owner: InstanceId | UnboundedValueObjectId,
        fragment: str,
        children: list[tuple[Any, GlobalId]],
        seen: dict[int, GlobalId],
    ) -> GlobalId:
        managed = self.registry.get_for(value)
        if isinstance(managed, Entity):
            child_id: GlobalId = self.id_factory.entity_id(managed, value)
        else:
            known = seen.get(id(value))
            if known is not None:
                return known
            child_id = ValueObjectId(owner, fragment, managed.type_name)
            seen[id(value)] = child_id
        children.append((value, child_id))
        return child_id
