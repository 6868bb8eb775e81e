"""
Change types emitted by the differ.

Changes are a closed set of frozen dataclasses, each tagged with a
ChangeKind. Container changes hold element changes tagged with an
ElementChangeKind. Every change names the global id it affects; changes
read from history also carry the metadata of the commit that produced them.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar

from ..metamodel.global_id import GlobalId

if TYPE_CHECKING:
    from ..commit.commit import CommitMetadata


class ChangeKind(str, Enum):
    NEW_OBJECT = "new_object"
    OBJECT_REMOVED = "object_removed"
    VALUE_CHANGE = "value_change"
    REFERENCE_CHANGE = "reference_change"
    LIST_CHANGE = "list_change"
    SET_CHANGE = "set_change"
    MAP_CHANGE = "map_change"


class ElementChangeKind(str, Enum):
    VALUE_ADDED = "value_added"
    VALUE_REMOVED = "value_removed"
    ELEMENT_VALUE_CHANGE = "element_value_change"
    ENTRY_ADDED = "entry_added"
    ENTRY_REMOVED = "entry_removed"
    ENTRY_VALUE_CHANGE = "entry_value_change"


# -----------------------------------------------------------------------------
# Object and property changes
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class Change:
    affected_global_id: GlobalId
    # Context, not part of the change's identity
    commit_metadata: CommitMetadata | None = field(default=None, kw_only=True, compare=False)

    kind: ClassVar[ChangeKind]

    def with_commit_metadata(self, commit_metadata: CommitMetadata | None) -> Change:
        return dataclasses.replace(self, commit_metadata=commit_metadata)


@dataclass(frozen=True)
class NewObject(Change):
    kind: ClassVar[ChangeKind] = ChangeKind.NEW_OBJECT


@dataclass(frozen=True)
class ObjectRemoved(Change):
    kind: ClassVar[ChangeKind] = ChangeKind.OBJECT_REMOVED


@dataclass(frozen=True)
class PropertyChange(Change):
    property_name: str


@dataclass(frozen=True)
class ValueChange(PropertyChange):
    left: Any
    right: Any

    kind: ClassVar[ChangeKind] = ChangeKind.VALUE_CHANGE


@dataclass(frozen=True)
class ReferenceChange(PropertyChange):
    left: GlobalId | None
    right: GlobalId | None

    kind: ClassVar[ChangeKind] = ChangeKind.REFERENCE_CHANGE


@dataclass(frozen=True)
class ContainerChange(PropertyChange):
    pass


@dataclass(frozen=True)
class ListChange(ContainerChange):
    """Ordered edit script; apply in order with ``apply_list_changes``."""

    changes: tuple[ElementChange, ...]

    kind: ClassVar[ChangeKind] = ChangeKind.LIST_CHANGE

    def value_added_changes(self) -> list[ValueAdded]:
        return [c for c in self.changes if isinstance(c, ValueAdded)]

    def value_removed_changes(self) -> list[ValueRemoved]:
        return [c for c in self.changes if isinstance(c, ValueRemoved)]


@dataclass(frozen=True)
class SetChange(ContainerChange):
    added: tuple[Any, ...]
    removed: tuple[Any, ...]

    kind: ClassVar[ChangeKind] = ChangeKind.SET_CHANGE


@dataclass(frozen=True)
class MapChange(PropertyChange):
    changes: tuple[EntryChange, ...]

    kind: ClassVar[ChangeKind] = ChangeKind.MAP_CHANGE


# -----------------------------------------------------------------------------
# Element changes
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class ValueAdded:
    index: int
    value: Any

    kind: ClassVar[ElementChangeKind] = ElementChangeKind.VALUE_ADDED


@dataclass(frozen=True)
class ValueRemoved:
    index: int
    value: Any

    kind: ClassVar[ElementChangeKind] = ElementChangeKind.VALUE_REMOVED


@dataclass(frozen=True)
class ElementValueChange:
    index: int
    left: Any
    right: Any

    kind: ClassVar[ElementChangeKind] = ElementChangeKind.ELEMENT_VALUE_CHANGE


ElementChange = ValueAdded | ValueRemoved | ElementValueChange


@dataclass(frozen=True)
class EntryAdded:
    key: Any
    value: Any

    kind: ClassVar[ElementChangeKind] = ElementChangeKind.ENTRY_ADDED


@dataclass(frozen=True)
class EntryRemoved:
    key: Any
    value: Any

    kind: ClassVar[ElementChangeKind] = ElementChangeKind.ENTRY_REMOVED


@dataclass(frozen=True)
class EntryValueChange:
    key: Any
    left: Any
    right: Any

    kind: ClassVar[ElementChangeKind] = ElementChangeKind.ENTRY_VALUE_CHANGE


EntryChange = EntryAdded | EntryRemoved | EntryValueChange


CHANGE_CLASSES: dict[ChangeKind, type[Change]] = {
    cls.kind: cls
    for cls in (NewObject, ObjectRemoved, ValueChange, ReferenceChange, ListChange, SetChange, MapChange)
}

ELEMENT_CHANGE_CLASSES: dict[ElementChangeKind, type] = {
    cls.kind: cls
    for cls in (ValueAdded, ValueRemoved, ElementValueChange, EntryAdded, EntryRemoved, EntryValueChange)
}
