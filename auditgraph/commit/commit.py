"""
Commits: the unit of the append-only audit log.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from ..diff.diff import Diff
from ..graph.snapshot import CdoSnapshot
from ..metamodel.global_id import GlobalId


@dataclass(frozen=True)
class CommitMetadata:
    id: int
    author: str
    commit_date: datetime

    def __str__(self) -> str:
        return f"commit {self.id}, author: {self.author}, {self.commit_date.isoformat()}"


@dataclass(frozen=True)
class Commit:
    """
    Snapshots persisted together, plus the changes they introduced.

    All snapshots of a commit land in storage atomically.
    """

    metadata: CommitMetadata
    snapshots: tuple[CdoSnapshot, ...] = ()
    diff: Diff = field(default_factory=Diff)

    @property
    def id(self) -> int:
        return self.metadata.id

    @property
    def author(self) -> str:
        return self.metadata.author

    @property
    def commit_date(self) -> datetime:
        return self.metadata.commit_date

    def snapshot_of(self, global_id: GlobalId) -> CdoSnapshot | None:
        for snapshot in self.snapshots:
            if snapshot.global_id == global_id:
                return snapshot
        return None

    def global_ids(self) -> list[GlobalId]:
        return [s.global_id for s in self.snapshots]
