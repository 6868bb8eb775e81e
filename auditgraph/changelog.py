"""
Change processors: fold an ordered change list into a caller-defined result.

process_change_list() drives a ChangeProcessor through its callbacks.
Commit and affected-object headers fire only when they differ from the
previous change's, so a history reads as grouped blocks.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, Iterable, TypeVar

from .commit.commit import CommitMetadata
from .diff.changes import (
    Change,
    ContainerChange,
    ListChange,
    MapChange,
    NewObject,
    ObjectRemoved,
    PropertyChange,
    ReferenceChange,
    SetChange,
    ValueChange,
)
from .diff.diff import describe_change
from .metamodel.global_id import GlobalId

T = TypeVar("T")


class ChangeProcessor(ABC, Generic[T]):
    """Callback base class; every callback is a no-op unless overridden, result() is required."""

    def on_commit(self, commit_metadata: CommitMetadata) -> None:
        pass

    def on_affected_object(self, global_id: GlobalId) -> None:
        pass

    def before_change(self, change: Change) -> None:
        pass

    def after_change(self, change: Change) -> None:
        pass

    def on_property_change(self, change: PropertyChange) -> None:
        pass

    def on_value_change(self, change: ValueChange) -> None:
        pass

    def on_reference_change(self, change: ReferenceChange) -> None:
        pass

    def on_new_object(self, change: NewObject) -> None:
        pass

    def on_object_removed(self, change: ObjectRemoved) -> None:
        pass

    def on_container_change(self, change: ContainerChange) -> None:
        pass

    def on_list_change(self, change: ListChange) -> None:
        pass

    def on_set_change(self, change: SetChange) -> None:
        pass

    def on_map_change(self, change: MapChange) -> None:
        pass

    @abstractmethod
    def result(self) -> T:
        """Value returned by process_change_list once every change is dispatched."""
        ...


def _dispatch(change: Change, processor: ChangeProcessor) -> None:
    if isinstance(change, PropertyChange):
        processor.on_property_change(change)
    if isinstance(change, ValueChange):
        processor.on_value_change(change)
    elif isinstance(change, ReferenceChange):
        processor.on_reference_change(change)
    elif isinstance(change, NewObject):
        processor.on_new_object(change)
    elif isinstance(change, ObjectRemoved):
        processor.on_object_removed(change)
    elif isinstance(change, ContainerChange):
        processor.on_container_change(change)
        if isinstance(change, ListChange):
            processor.on_list_change(change)
        elif isinstance(change, SetChange):
            processor.on_set_change(change)
    elif isinstance(change, MapChange):
        processor.on_map_change(change)


def process_change_list(changes: Iterable[Change], processor: ChangeProcessor[T]) -> T:
    last_commit: CommitMetadata | None = None
    last_global_id: GlobalId | None = None

    for change in changes:
        metadata = change.commit_metadata
        if metadata is not None and (last_commit is None or metadata.id != last_commit.id):
            processor.on_commit(metadata)
            last_commit = metadata

        if change.affected_global_id != last_global_id:
            processor.on_affected_object(change.affected_global_id)
            last_global_id = change.affected_global_id

        processor.before_change(change)
        _dispatch(change, processor)
        processor.after_change(change)

    return processor.result()


class SimpleTextChangeLog(ChangeProcessor[str]):
    """
    Plain text change log.

    commit 3, author: alice, 2024-01-01T10:00:00+00:00
      changed object: Person/bob
        'name' value changed from 'Bob' to 'Robert'
    """

    def __init__(self) -> None:
        self._lines: list[str] = []

    def on_commit(self, commit_metadata: CommitMetadata) -> None:
        self._lines.append(str(commit_metadata))

    def on_affected_object(self, global_id: GlobalId) -> None:
        self._lines.append(f"  changed object: {global_id}")

    def after_change(self, change: Change) -> None:
        self._lines.append(f"    {describe_change(change)}")

    def result(self) -> str:
        return "\n".join(self._lines)
