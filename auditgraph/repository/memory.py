from __future__ import annotations

import threading

from ..commit.commit import Commit
from ..graph.snapshot import CdoSnapshot
from ..metamodel.global_id import GlobalId
from .api import SnapshotRepository, check_versions


class InMemoryRepository(SnapshotRepository):
    """Process-local repository; contents are lost with the instance."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._commits: list[Commit] = []
        self._history: dict[GlobalId, list[CdoSnapshot]] = {}  # oldest first
        self._last_commit_id = 0

    def get_latest(self, global_id: GlobalId) -> CdoSnapshot | None:
        with self._lock:
            history = self._history.get(global_id)
            return history[-1] if history else None

    def get_state_history(self, global_id: GlobalId, limit: int) -> list[CdoSnapshot]:
        if limit <= 0:
            return []
        with self._lock:
            history = self._history.get(global_id, [])
            return list(reversed(history[-limit:]))

    def persist(self, commit: Commit) -> None:
        with self._lock:
            check_versions(commit, self._history)
            for snapshot in commit.snapshots:
                self._history.setdefault(snapshot.global_id, []).append(snapshot)
            self._commits.append(commit)
            self._last_commit_id = max(self._last_commit_id, commit.id)

    def next_commit_id(self) -> int:
        with self._lock:
            self._last_commit_id += 1
            return self._last_commit_id

    def list_commits(self, limit: int | None = None) -> list[Commit]:
        with self._lock:
            commits = list(reversed(self._commits))
        return commits if limit is None else commits[:limit]
