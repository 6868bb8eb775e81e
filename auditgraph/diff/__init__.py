"""
Graph comparison: changes, list edit scripts and the differ.
"""

from .changes import (
    Change,
    ChangeKind,
    ContainerChange,
    ElementChange,
    ElementChangeKind,
    ElementValueChange,
    EntryAdded,
    EntryChange,
    EntryRemoved,
    EntryValueChange,
    ListChange,
    MapChange,
    NewObject,
    ObjectRemoved,
    PropertyChange,
    ReferenceChange,
    SetChange,
    ValueAdded,
    ValueChange,
    ValueRemoved,
)
from .diff import Diff, describe_change
from .differ import Differ
from .lcs import apply_list_changes, list_changes

__all__ = [
    "Change",
    "ChangeKind",
    "ContainerChange",
    "ElementChange",
    "ElementChangeKind",
    "ElementValueChange",
    "EntryAdded",
    "EntryChange",
    "EntryRemoved",
    "EntryValueChange",
    "ListChange",
    "MapChange",
    "NewObject",
    "ObjectRemoved",
    "PropertyChange",
    "ReferenceChange",
    "SetChange",
    "ValueAdded",
    "ValueChange",
    "ValueRemoved",
    "Diff",
    "describe_change",
    "Differ",
    "apply_list_changes",
    "list_changes",
]
