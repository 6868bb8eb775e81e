"""
Differ: snapshot sets in, typed change set out.

Terminal snapshots count as absent, so the same rules cover ad-hoc graph
comparison, commit diffs against persisted state and change history:

- id present only on the right -> NewObject (plus initial property changes
  when new_object_snapshot is on)
- id present only on the left -> ObjectRemoved
- id present on both sides -> per-property changes

Changes come out by global id (right order first, then left-only ids), then
property declaration order, then element index / key.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Mapping as MappingABC
from typing import Any, Iterable, Mapping, Sequence

from ..graph.builder import ObjectGraph
from ..graph.snapshot import CdoSnapshot, SnapshotFactory
from ..metamodel.global_id import GlobalId
from ..metamodel.managed import ManagedClass
from ..metamodel.property import Property
from ..metamodel.types import ContainerType, MapType, SetType, is_managed
from .changes import (
    Change,
    EntryAdded,
    EntryChange,
    EntryRemoved,
    EntryValueChange,
    ListChange,
    MapChange,
    NewObject,
    ObjectRemoved,
    ReferenceChange,
    SetChange,
    ValueChange,
)
from .diff import Diff
from .lcs import list_changes

logger = logging.getLogger(__name__)


def sort_key(value: Any) -> tuple[int, Any]:
    """Ascending order for set elements and map keys of mixed types."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (0, value)
    return (1, str(value))


class Differ:
    def __init__(self, snapshot_factory: SnapshotFactory | None = None, *, new_object_snapshot: bool = False):
        self.snapshot_factory = snapshot_factory or SnapshotFactory()
        self.new_object_snapshot = new_object_snapshot

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    def compare(self, left: ObjectGraph | None, right: ObjectGraph | None) -> Diff:
        """Compare two live graphs (None stands for an empty graph)."""
        return self.compare_snapshots(self._snapshots(left), self._snapshots(right))

    def initial(self, graph: ObjectGraph) -> Diff:
        return self.compare(None, graph)

    def compare_snapshots(
        self,
        left: Iterable[CdoSnapshot],
        right: Iterable[CdoSnapshot],
        order: Sequence[GlobalId] | None = None,
    ) -> Diff:
        """
        Compare two snapshot sets indexed by global id.

        Args:
            left: Older snapshots
            right: Newer snapshots
            order: Global id order to emit changes in (defaults to right order, then left-only ids)

        Returns:
            Diff with changes in canonical order
        """
        left_by_id = {s.global_id: s for s in left}
        right_by_id = {s.global_id: s for s in right}

        if order is None:
            order = list(right_by_id) + [g for g in left_by_id if g not in right_by_id]

        changes: list[Change] = []
        for global_id in order:
            changes.extend(self.compare_pair(left_by_id.get(global_id), right_by_id.get(global_id)))

        logger.debug(f"Compared {len(left_by_id)} vs {len(right_by_id)} snapshot(s): {len(changes)} change(s)")
        return Diff(tuple(changes))

    def compare_pair(self, left: CdoSnapshot | None, right: CdoSnapshot | None) -> list[Change]:
        """Changes between two snapshots of the same global id."""
        left_live = left is not None and not left.is_terminal
        right_live = right is not None and not right.is_terminal
        metadata = right.commit_metadata if right is not None else None

        if not left_live and right_live:
            assert right is not None
            changes: list[Change] = [NewObject(right.global_id, commit_metadata=metadata)]
            if self.new_object_snapshot:
                changes.extend(
                    self.property_changes(right.global_id, right.managed_class, {}, right.state, metadata, initial=True)
                )
            return changes

        if left_live and not right_live:
            assert left is not None
            return [ObjectRemoved(left.global_id, commit_metadata=metadata)]

        if left_live and right_live:
            assert left is not None and right is not None
            return self.property_changes(right.global_id, right.managed_class, left.state, right.state, metadata)

        return []

    # -------------------------------------------------------------------------
    # Property comparison
    # -------------------------------------------------------------------------

    def property_changes(
        self,
        global_id: GlobalId,
        managed_class: ManagedClass,
        left_state: Mapping[str, Any],
        right_state: Mapping[str, Any],
        commit_metadata: Any = None,
        *,
        initial: bool = False,
    ) -> list[Change]:
        """
        Per-property changes in declaration order.

        A container that is None on exactly one side is a ValueChange; element
        diffs run only when both sides hold a container. With ``initial`` the
        left side is a missing object, so its containers count as empty.
        """
        changes: list[Change] = []
        for prop in managed_class.properties:
            change = self._property_change(
                global_id, prop, left_state.get(prop.name), right_state.get(prop.name), initial
            )
            if change is not None:
                changes.append(change.with_commit_metadata(commit_metadata) if commit_metadata else change)
        return changes

    def _property_change(
        self, global_id: GlobalId, prop: Property, left: Any, right: Any, initial: bool = False
    ) -> Change | None:
        mapped = prop.mapped_type
        name = prop.name

        if initial and left is None and right is not None and isinstance(mapped, (MapType, ContainerType)):
            left = {} if isinstance(mapped, MapType) else ()

        if isinstance(mapped, MapType) and _is_map(left) and _is_map(right):
            entries = map_changes(left, right)
            return MapChange(global_id, name, tuple(entries)) if entries else None

        if isinstance(mapped, SetType) and _is_collection(left) and _is_collection(right):
            left_set, right_set = frozenset(left), frozenset(right)
            added = sorted(right_set - left_set, key=sort_key)
            removed = sorted(left_set - right_set, key=sort_key)
            if not added and not removed:
                return None
            return SetChange(global_id, name, tuple(added), tuple(removed))

        if isinstance(mapped, ContainerType) and _is_collection(left) and _is_collection(right):
            elements = list_changes(tuple(left), tuple(right))
            return ListChange(global_id, name, tuple(elements)) if elements else None

        if left == right:
            return None
        if is_managed(mapped) and _is_reference(left) and _is_reference(right):
            return ReferenceChange(global_id, name, left, right)
        return ValueChange(global_id, name, left, right)

    def _snapshots(self, graph: ObjectGraph | None) -> list[CdoSnapshot]:
        if graph is None:
            return []
        return [self.snapshot_factory.create(node) for node in graph]


def map_changes(left: Mapping[Any, Any], right: Mapping[Any, Any]) -> list[EntryChange]:
    """Entry changes by key ascending."""
    changes: list[EntryChange] = []
    keys = set(left) | set(right)
    for key in sorted(keys, key=sort_key):
        if key not in left:
            changes.append(EntryAdded(key, right[key]))
        elif key not in right:
            changes.append(EntryRemoved(key, left[key]))
        elif left[key] != right[key]:
            changes.append(EntryValueChange(key, left[key], right[key]))
    return changes


def _is_map(value: Any) -> bool:
    return isinstance(value, MappingABC)


def _is_collection(value: Any) -> bool:
    return isinstance(value, (list, tuple, set, frozenset, deque))


def _is_reference(value: Any) -> bool:
    return value is None or isinstance(value, GlobalId)
