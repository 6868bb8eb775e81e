"""
Storage port for snapshots and commits.

Adapters must persist each commit atomically (all of its snapshots or
none) and hand out strictly increasing commit ids. Failures surface as
AuditError(STORAGE_FAILURE).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Mapping, Sequence

from ..commit.commit import Commit
from ..errors import AuditError, ErrorCode
from ..graph.snapshot import CdoSnapshot
from ..metamodel.global_id import GlobalId


def check_versions(commit: Commit, history: Mapping[GlobalId, Sequence[CdoSnapshot]]) -> None:
    """
    Reject a commit whose snapshots do not follow the stored latest versions.

    Raises:
        AuditError(STORAGE_FAILURE): another commit persisted a snapshot of the same id first
    """
    for snapshot in commit.snapshots:
        stored = history.get(snapshot.global_id)
        expected = stored[-1].version + 1 if stored else 1
        if snapshot.version != expected:
            raise AuditError(
                ErrorCode.STORAGE_FAILURE,
                f"commit {commit.id}: {snapshot.global_id} at version {snapshot.version}, expected {expected}",
            )


class SnapshotRepository(ABC):
    @abstractmethod
    def get_latest(self, global_id: GlobalId) -> CdoSnapshot | None:
        """Newest snapshot of a global id, None if it was never committed."""
        ...

    @abstractmethod
    def get_state_history(self, global_id: GlobalId, limit: int) -> list[CdoSnapshot]:
        """Last ``limit`` snapshots of a global id, newest first."""
        ...

    @abstractmethod
    def persist(self, commit: Commit) -> None:
        """Store a commit; its snapshot versions must follow the stored ones (see check_versions)."""
        ...

    @abstractmethod
    def next_commit_id(self) -> int:
        ...

    @abstractmethod
    def list_commits(self, limit: int | None = None) -> list[Commit]:
        """Persisted commits, newest first."""
        ...
