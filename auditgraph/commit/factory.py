"""
Commit construction: graph -> versioned snapshots -> diff against storage.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable

from ..diff.differ import Differ
from ..errors import AuditError, ErrorCode
from ..graph.builder import GraphBuilder
from ..graph.snapshot import SnapshotFactory
from ..metamodel.global_id import GlobalId, IdFactory
from ..metamodel.managed import ManagedClassRegistry
from .commit import Commit, CommitMetadata

if TYPE_CHECKING:
    from ..repository.api import SnapshotRepository

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CommitFactory:
    def __init__(
        self,
        repository: SnapshotRepository,
        registry: ManagedClassRegistry,
        id_factory: IdFactory,
        graph_builder: GraphBuilder,
        snapshot_factory: SnapshotFactory,
        differ: Differ,
        clock: Callable[[], datetime] | None = None,
    ):
        self.repository = repository
        self.registry = registry
        self.id_factory = id_factory
        self.graph_builder = graph_builder
        self.snapshot_factory = snapshot_factory
        self.differ = differ
        self.clock = clock or _utc_now

    def metadata(self, author: str) -> CommitMetadata:
        return CommitMetadata(id=self.repository.next_commit_id(), author=author, commit_date=self.clock())

    def create(self, author: str, root: Any) -> Commit:
        """
        Snapshot every node reachable from root.

        Each snapshot is versioned against the latest persisted snapshot of
        its global id. The commit diff compares those latest snapshots with
        the new ones.

        Raises:
            AuditError: root is not managed, or the graph violates id rules
        """
        graph = self.graph_builder.build(root)
        metadata = self.metadata(author)

        latest = {global_id: self.repository.get_latest(global_id) for global_id in graph.global_ids()}
        snapshots = tuple(
            self.snapshot_factory.create(node, metadata, latest[node.global_id])
            for node in graph
        )
        diff = self.differ.compare_snapshots([s for s in latest.values() if s is not None], snapshots)

        logger.info(f"Commit {metadata.id} by {author}: {len(snapshots)} snapshot(s), {len(diff)} change(s)")
        return Commit(metadata, snapshots, diff)

    def create_terminal(self, author: str, target: Any) -> Commit:
        """
        Shallow delete: one terminal snapshot, nothing reachable is touched.

        Args:
            author: Commit author
            target: Managed domain object or GlobalId

        Raises:
            AuditError(NOT_INSTANCE_NOR_ID): target is neither
        """
        if isinstance(target, GlobalId):
            global_id = target
            managed_class = self.id_factory.managed_class_of(target)
        elif self.registry.is_managed_instance(target):
            global_id = self.graph_builder.root_id(target)
            managed_class = self.registry.get_for(target)
        else:
            raise AuditError(ErrorCode.NOT_INSTANCE_NOR_ID, target)

        metadata = self.metadata(author)
        prior = self.repository.get_latest(global_id)
        snapshot = self.snapshot_factory.create_terminal(global_id, managed_class, metadata, prior)
        diff = self.differ.compare_snapshots([prior] if prior is not None else [], [snapshot])

        logger.info(f"Commit {metadata.id} by {author}: shallow delete of {global_id}")
        return Commit(metadata, (snapshot,), diff)
