"""
Diff: the ordered change set between two object graphs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, TypeVar

from ..metamodel.global_id import GlobalId
from .changes import (
    Change,
    ElementValueChange,
    EntryAdded,
    EntryRemoved,
    EntryValueChange,
    ListChange,
    MapChange,
    NewObject,
    ObjectRemoved,
    ReferenceChange,
    SetChange,
    ValueAdded,
    ValueChange,
    ValueRemoved,
)

C = TypeVar("C", bound=Change)


@dataclass(frozen=True)
class Diff:
    """Changes in canonical order: by global id, then property, then element."""

    changes: tuple[Change, ...] = ()

    def has_changes(self) -> bool:
        return bool(self.changes)

    def changes_by_type(self, change_class: type[C]) -> list[C]:
        return [c for c in self.changes if isinstance(c, change_class)]

    def changes_for(self, global_id: GlobalId) -> list[Change]:
        return [c for c in self.changes if c.affected_global_id == global_id]

    def objects_by_change_type(self, change_class: type[Change]) -> list[GlobalId]:
        """Distinct affected global ids of changes of one type, first occurrence order."""
        seen: dict[GlobalId, None] = {}
        for change in self.changes_by_type(change_class):
            seen.setdefault(change.affected_global_id, None)
        return list(seen)

    def pretty_print(self) -> str:
        if not self.changes:
            return "Diff: no changes"
        lines = ["Diff:"]
        current: GlobalId | None = None
        for change in self.changes:
            if change.affected_global_id != current:
                current = change.affected_global_id
                lines.append(f"* changes on {current} :")
            lines.append(f"  - {describe_change(change)}")
        return "\n".join(lines)

    def __iter__(self) -> Iterator[Change]:
        return iter(self.changes)

    def __len__(self) -> int:
        return len(self.changes)

    def __str__(self) -> str:
        return self.pretty_print()


def describe_change(change: Change) -> str:
    """One-line human readable description of a change."""
    if isinstance(change, NewObject):
        return "new object"
    if isinstance(change, ObjectRemoved):
        return "object removed"
    if isinstance(change, ValueChange):
        return f"'{change.property_name}' value changed from {change.left!r} to {change.right!r}"
    if isinstance(change, ReferenceChange):
        left = str(change.left) if change.left is not None else None
        right = str(change.right) if change.right is not None else None
        return f"'{change.property_name}' reference changed from {left!r} to {right!r}"
    if isinstance(change, ListChange):
        parts = []
        for element in change.changes:
            if isinstance(element, ValueAdded):
                parts.append(f"{element.index}. {element.value!r} added")
            elif isinstance(element, ValueRemoved):
                parts.append(f"{element.index}. {element.value!r} removed")
            elif isinstance(element, ElementValueChange):
                parts.append(f"{element.index}. {element.left!r} changed to {element.right!r}")
        return f"'{change.property_name}' list changes: " + ", ".join(parts)
    if isinstance(change, SetChange):
        parts = [f"{v!r} added" for v in change.added] + [f"{v!r} removed" for v in change.removed]
        return f"'{change.property_name}' set changes: " + ", ".join(parts)
    if isinstance(change, MapChange):
        parts = []
        for entry in change.changes:
            if isinstance(entry, EntryAdded):
                parts.append(f"{entry.key!r} -> {entry.value!r} added")
            elif isinstance(entry, EntryRemoved):
                parts.append(f"{entry.key!r} -> {entry.value!r} removed")
            elif isinstance(entry, EntryValueChange):
                parts.append(f"{entry.key!r} -> {entry.left!r} changed to {entry.right!r}")
        return f"'{change.property_name}' map changes: " + ", ".join(parts)
    return repr(change)
