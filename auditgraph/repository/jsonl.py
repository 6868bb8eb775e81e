"""
Append-only JSON Lines repository.

One line per commit, written once and never modified. Snapshot history is
indexed lazily on first query and kept current on append.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Iterator

from ..codec import JsonConverter
from ..commit.commit import Commit
from ..errors import AuditError, ErrorCode
from ..graph.snapshot import CdoSnapshot
from ..metamodel.global_id import GlobalId
from .api import SnapshotRepository, check_versions

logger = logging.getLogger(__name__)


class JsonlRepository(SnapshotRepository):
    """
    Commit log stored as ``<path>``, one JSON object per line.

    INVARIANT: existing lines are never rewritten; persist() only appends.
    """

    def __init__(self, path: Path, converter: JsonConverter):
        self.path = Path(path)
        self.converter = converter
        self._lock = threading.Lock()

        # Query indexes (lazy-loaded)
        self._commits: list[Commit] = []
        self._history: dict[GlobalId, list[CdoSnapshot]] = {}  # oldest first
        self._last_commit_id = 0
        self._indexed = False

    def _ensure_indexed(self) -> None:
        if self._indexed:
            return
        for commit in self.iter_commits():
            self._index(commit)
        self._indexed = True
        logger.debug(f"Indexed {len(self._commits)} commit(s) from {self.path}")

    def _index(self, commit: Commit) -> None:
        self._commits.append(commit)
        for snapshot in commit.snapshots:
            self._history.setdefault(snapshot.global_id, []).append(snapshot)
        self._last_commit_id = max(self._last_commit_id, commit.id)

    def iter_commits(self) -> Iterator[Commit]:
        """
        Read commits in append order.

        Raises:
            AuditError(STORAGE_FAILURE): file unreadable or a line is not valid JSON
        """
        if not self.path.exists():
            return
        try:
            with self.path.open("r", encoding="utf-8") as f:
                for line_no, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        data = json.loads(line)
                    except json.JSONDecodeError as e:
                        raise AuditError(ErrorCode.STORAGE_FAILURE, f"{self.path}:{line_no}: {e}") from e
                    yield self.converter.commit_from_dict(data)
        except OSError as e:
            raise AuditError(ErrorCode.STORAGE_FAILURE, f"{self.path}: {e}") from e

    # -------------------------------------------------------------------------
    # Storage port
    # -------------------------------------------------------------------------

    def get_latest(self, global_id: GlobalId) -> CdoSnapshot | None:
        with self._lock:
            self._ensure_indexed()
            history = self._history.get(global_id)
            return history[-1] if history else None

    def get_state_history(self, global_id: GlobalId, limit: int) -> list[CdoSnapshot]:
        if limit <= 0:
            return []
        with self._lock:
            self._ensure_indexed()
            history = self._history.get(global_id, [])
            return list(reversed(history[-limit:]))

    def persist(self, commit: Commit) -> None:
        """
        Append a commit as a single line.

        Raises:
            AuditError(STORAGE_FAILURE): the line could not be written, or a
                snapshot version does not follow the stored one
        """
        line = json.dumps(self.converter.commit_to_dict(commit), ensure_ascii=False)
        with self._lock:
            self._ensure_indexed()
            check_versions(commit, self._history)
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with self.path.open("a", encoding="utf-8") as f:
                    f.write(line + "\n")
            except OSError as e:
                raise AuditError(ErrorCode.STORAGE_FAILURE, f"{self.path}: {e}") from e
            self._index(commit)

    def next_commit_id(self) -> int:
        with self._lock:
            self._ensure_indexed()
            self._last_commit_id += 1
            return self._last_commit_id

    def list_commits(self, limit: int | None = None) -> list[Commit]:
        with self._lock:
            self._ensure_indexed()
            commits = list(reversed(self._commits))
        return commits if limit is None else commits[:limit]
