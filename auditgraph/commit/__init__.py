"""
Commit model and construction.
"""

from .commit import Commit, CommitMetadata
from .factory import CommitFactory

__all__ = ["Commit", "CommitMetadata", "CommitFactory"]
