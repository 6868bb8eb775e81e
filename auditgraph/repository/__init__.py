"""
Snapshot storage: the repository port and its adapters.
"""

from .api import SnapshotRepository
from .jsonl import JsonlRepository
from .memory import InMemoryRepository

__all__ = ["SnapshotRepository", "InMemoryRepository", "JsonlRepository"]
