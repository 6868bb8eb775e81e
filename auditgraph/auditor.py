"""
Auditor: the engine facade.

Wires the meta-model, graph builder, snapshotter, differ, commit factory,
storage port and JSON codec together from one AuditConfig.

Usage:
    auditor = Auditor()
    auditor.register_entity(Person)
    auditor.commit("alice", person)
    auditor.get_change_history(auditor.instance_id(Person, "bob"))
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Any, Callable, TypeVar

from .changelog import ChangeProcessor, process_change_list
from .codec import JsonConverter
from .commit.commit import Commit
from .commit.factory import CommitFactory
from .config import AuditConfig, resolve_class
from .diff.changes import Change, ObjectRemoved
from .diff.diff import Diff
from .diff.differ import Differ
from .errors import ErrorCode
from .graph.builder import GraphBuilder
from .graph.snapshot import CdoSnapshot, SnapshotFactory
from .metamodel.global_id import (
    GlobalId,
    IdFactory,
    InstanceId,
    UnboundedValueObjectId,
    ValueObjectId,
    parse_global_id,
)
from .metamodel.managed import ManagedClass, ManagedClassRegistry
from .metamodel.property import IdPredicate, create_scanner
from .metamodel.type_mapper import TypeMapper
from .metamodel.types import EntityType, ValueObjectType, ValueType
from .repository.api import SnapshotRepository
from .repository.memory import InMemoryRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_HISTORY_LIMIT = 100


class Auditor:
    def __init__(
        self,
        config: AuditConfig | None = None,
        repository: SnapshotRepository | None = None,
        *,
        id_predicate: IdPredicate | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Args:
            config: Engine configuration (defaults apply when omitted)
            repository: Storage port; an in-memory repository when omitted
            id_predicate: Decides which property is an entity's id
            clock: Source of commit dates
        """
        self.config = config or AuditConfig()
        self.config.validate()

        self.type_mapper = TypeMapper(default_class_type=self.config.default_class_type)
        self.scanner = create_scanner(self.config.mapping_style, self.type_mapper, id_predicate)
        self.registry = ManagedClassRegistry(self.type_mapper, self.scanner)
        self.id_factory = IdFactory(self.registry, map_key_dot_replacement=self.config.map_key_dot_replacement)
        self.graph_builder = GraphBuilder(self.registry, self.id_factory)
        self.snapshot_factory = SnapshotFactory()
        self.differ = Differ(self.snapshot_factory, new_object_snapshot=self.config.new_object_snapshot)
        self.json_converter = JsonConverter(self.registry, self.id_factory)
        self.repository = repository if repository is not None else InMemoryRepository()
        self.commit_factory = CommitFactory(
            self.repository,
            self.registry,
            self.id_factory,
            self.graph_builder,
            self.snapshot_factory,
            self.differ,
            clock=clock,
        )
        self._commit_lock = threading.Lock()

        self._apply_registrations()

    def use_repository(self, repository: SnapshotRepository) -> None:
        """Swap the storage port (e.g. for one that needs this auditor's json_converter)."""
        self.repository = repository
        self.commit_factory.repository = repository

    def _apply_registrations(self) -> None:
        for entity in self.config.entities:
            self.register_entity(
                resolve_class(entity.class_path), entity.id_property, type_name=entity.type_name
            )
        for value_object in self.config.value_objects:
            self.register_value_object(resolve_class(value_object.class_path), type_name=value_object.type_name)
        for class_path in self.config.values:
            self.register_value(resolve_class(class_path))

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def register_entity(self, cls: type, id_property: str | None = None, *, type_name: str | None = None) -> EntityType:
        mapped = self.type_mapper.register_entity(cls, id_property, type_name=type_name)
        self.registry.clear()
        return mapped

    def register_value_object(self, cls: type, *, type_name: str | None = None) -> ValueObjectType:
        mapped = self.type_mapper.register_value_object(cls, type_name=type_name)
        self.registry.clear()
        return mapped

    def register_value(self, cls: type) -> ValueType:
        mapped = self.type_mapper.register_value(cls)
        self.registry.clear()
        return mapped

    def register_value_codec(self, cls: type, encode: Callable[[Any], Any], decode: Callable[[Any], Any]) -> None:
        self.json_converter.register_value_codec(cls, encode, decode)

    def managed_class(self, cls: type) -> ManagedClass:
        return self.registry.get(cls)

    # -------------------------------------------------------------------------
    # Global ids
    # -------------------------------------------------------------------------

    def instance_id(self, cls: type, cdo_id: Any) -> InstanceId:
        return self.id_factory.instance_id(cls, cdo_id)

    def value_object_id(
        self,
        owner_cls: type,
        owner_id: Any,
        fragment: str,
        value_object_cls: type | None = None,
    ) -> ValueObjectId:
        owner = self.instance_id(owner_cls, owner_id)
        type_name = self.registry.get(value_object_cls).type_name if value_object_cls else ""
        return ValueObjectId(owner, fragment, type_name)

    def unbounded_value_object_id(self, cls: type) -> UnboundedValueObjectId:
        return self.id_factory.unbounded_value_object_id(cls)

    # -------------------------------------------------------------------------
    # Comparison
    # -------------------------------------------------------------------------

    def compare(self, left: Any, right: Any) -> Diff:
        """
        Diff two live graphs; either side may be None.

        Raises:
            AuditError(NOT_INSTANCE_NOR_ID): a root is not an Entity or Value Object
        """
        left_graph = self.graph_builder.build(left) if left is not None else None
        right_graph = self.graph_builder.build(right) if right is not None else None
        return self.differ.compare(left_graph, right_graph)

    def initial(self, obj: Any) -> Diff:
        """Diff of an object graph against nothing."""
        return self.differ.initial(self.graph_builder.build(obj))

    # -------------------------------------------------------------------------
    # Commits
    # -------------------------------------------------------------------------

    def commit(self, author: str, root: Any) -> Commit:
        # read-latest -> persist must not interleave with another commit
        with self._commit_lock:
            commit = self.commit_factory.create(author, root)
            self.repository.persist(commit)
        return commit

    def commit_shallow_delete(self, author: str, target: Any) -> Commit:
        """Persist a terminal snapshot for a managed object or a GlobalId."""
        with self._commit_lock:
            commit = self.commit_factory.create_terminal(author, target)
            self.repository.persist(commit)
        return commit

    def commit_shallow_delete_by_id(self, author: str, global_id: GlobalId) -> Commit:
        return self.commit_shallow_delete(author, global_id)

    # -------------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------------

    def _global_id(self, global_id: GlobalId | str) -> GlobalId:
        return parse_global_id(global_id) if isinstance(global_id, str) else global_id

    def get_state_history(self, global_id: GlobalId | str, limit: int = DEFAULT_HISTORY_LIMIT) -> list[CdoSnapshot]:
        """Last ``limit`` snapshots, newest first; empty for unknown ids."""
        return self.repository.get_state_history(self._global_id(global_id), limit)

    def get_latest_snapshot(self, global_id: GlobalId | str) -> CdoSnapshot | None:
        return self.repository.get_latest(self._global_id(global_id))

    def get_change_history(self, global_id: GlobalId | str, limit: int = DEFAULT_HISTORY_LIMIT) -> list[Change]:
        """
        Changes between consecutive snapshots, newest first.

        Each change carries the commit metadata of the newer snapshot. A
        lone terminal snapshot yields a single ObjectRemoved.
        """
        gid = self._global_id(global_id)
        if limit <= 0:
            return []
        snapshots = self.repository.get_state_history(gid, limit + 1)
        if not snapshots:
            logger.debug(f"{ErrorCode.AFFECTED_CDO_IS_NOT_AVAILABLE.value}: {gid}")
            return []
        if len(snapshots) == 1:
            only = snapshots[0]
            return [ObjectRemoved(only.global_id, commit_metadata=only.commit_metadata)] if only.is_terminal else []

        changes: list[Change] = []
        for newer, older in zip(snapshots, snapshots[1:]):
            changes.extend(self.differ.compare_pair(older, newer))
        return changes

    def process_change_list(self, changes: list[Change], processor: ChangeProcessor[T]) -> T:
        return process_change_list(changes, processor)
