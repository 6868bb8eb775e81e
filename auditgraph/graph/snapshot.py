"""
Snapshots: immutable per-object state captured at commit time.

A snapshot is the dehydrated view of one graph node. Primitives and values
are copied inline, containers are frozen (lists to tuples, sets to
frozensets, maps to fresh dicts) and references to managed objects are
replaced by their global ids.

Snapshots are never mutated after creation. Terminal snapshots mark a
deleted object: empty state, same type and global id.
"""

from __future__ import annotations

import copy
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterable, Mapping

from ..metamodel.global_id import GlobalId
from ..metamodel.managed import ManagedClass
from ..metamodel.types import ContainerType, MappedType, MapType, PrimitiveType, SetType

if TYPE_CHECKING:
    from ..commit.commit import CommitMetadata
    from .builder import ObjectNode


class SnapshotType(str, Enum):
    INITIAL = "initial"
    UPDATE = "update"
    TERMINAL = "terminal"


@dataclass(frozen=True)
class CdoSnapshot:
    """
    State of one domain object at one commit.

    ``state`` maps every supported property of the managed class to its
    dehydrated value (None included). Terminal snapshots carry no state.
    """

    global_id: GlobalId
    managed_class: ManagedClass
    version: int
    state: Mapping[str, Any] = field(default_factory=dict)
    commit_metadata: CommitMetadata | None = None
    snapshot_type: SnapshotType = SnapshotType.INITIAL
    changed_properties: tuple[str, ...] = ()

    @property
    def is_terminal(self) -> bool:
        return self.snapshot_type == SnapshotType.TERMINAL

    @property
    def is_initial(self) -> bool:
        return self.snapshot_type == SnapshotType.INITIAL

    @property
    def commit_id(self) -> int | None:
        return self.commit_metadata.id if self.commit_metadata else None

    def get(self, property_name: str) -> Any:
        return self.state.get(property_name)

    def has_property(self, property_name: str) -> bool:
        return property_name in self.state

    def property_names(self) -> list[str]:
        return list(self.state)


def dehydrate(value: Any, mapped: MappedType) -> Any:
    """Immutable copy of an inline value according to its mapped type."""
    if value is None:
        return None
    if isinstance(mapped, SetType) and isinstance(value, (set, frozenset)):
        return frozenset(dehydrate(v, mapped.item_type) for v in value)
    if isinstance(mapped, ContainerType) and isinstance(value, (list, tuple, deque)):
        return tuple(dehydrate(v, mapped.item_type) for v in value)
    if isinstance(mapped, MapType) and isinstance(value, Mapping):
        return {k: dehydrate(v, mapped.value_type) for k, v in value.items()}
    if isinstance(mapped, PrimitiveType):
        return value
    # Opaque values may be mutable; the snapshot must not follow the live object
    return copy.deepcopy(value)


def changed_property_names(
    state: Mapping[str, Any],
    previous: Mapping[str, Any] | None,
    names: Iterable[str],
) -> tuple[str, ...]:
    """Properties whose value differs from ``previous`` (non-null ones when there is none)."""
    if previous is None:
        return tuple(n for n in names if state.get(n) is not None)
    return tuple(n for n in names if state.get(n) != previous.get(n))


class SnapshotFactory:
    """Creates snapshots from graph nodes, versioned against prior snapshots."""

    def state_of(self, node: ObjectNode) -> dict[str, Any]:
        state: dict[str, Any] = {}
        for prop in node.managed_class.properties:
            edge = node.edge(prop.name)
            if edge is not None:
                state[prop.name] = edge.state_value()
            else:
                state[prop.name] = dehydrate(prop.get(node.cdo), prop.mapped_type)
        return state

    def create(
        self,
        node: ObjectNode,
        commit_metadata: CommitMetadata | None = None,
        prior: CdoSnapshot | None = None,
    ) -> CdoSnapshot:
        """
        Snapshot a node.

        Args:
            node: Graph node to capture
            commit_metadata: Metadata of the commit being built
            prior: Latest persisted snapshot of the same global id, if any

        Returns:
            INITIAL snapshot at version 1 without a usable prior, UPDATE at prior.version + 1 otherwise
        """
        state = self.state_of(node)
        version = prior.version + 1 if prior is not None else 1
        previous_state = prior.state if prior is not None and not prior.is_terminal else None
        snapshot_type = SnapshotType.INITIAL if previous_state is None else SnapshotType.UPDATE
        return CdoSnapshot(
            global_id=node.global_id,
            managed_class=node.managed_class,
            version=version,
            state=state,
            commit_metadata=commit_metadata,
            snapshot_type=snapshot_type,
            changed_properties=changed_property_names(state, previous_state, node.managed_class.property_names),
        )

    def create_terminal(
        self,
        global_id: GlobalId,
        managed_class: ManagedClass,
        commit_metadata: CommitMetadata | None = None,
        prior: CdoSnapshot | None = None,
    ) -> CdoSnapshot:
        return CdoSnapshot(
            global_id=global_id,
            managed_class=managed_class,
            version=prior.version + 1 if prior is not None else 1,
            state={},
            commit_metadata=commit_metadata,
            snapshot_type=SnapshotType.TERMINAL,
        )

