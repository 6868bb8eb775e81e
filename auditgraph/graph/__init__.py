"""
Object graphs and their snapshots.
"""

from .builder import Edge, GraphBuilder, MapEdge, MultiEdge, ObjectGraph, ObjectNode, SingleEdge
from .snapshot import CdoSnapshot, SnapshotFactory, SnapshotType

__all__ = [
    "Edge",
    "GraphBuilder",
    "MapEdge",
    "MultiEdge",
    "ObjectGraph",
    "ObjectNode",
    "SingleEdge",
    "CdoSnapshot",
    "SnapshotFactory",
    "SnapshotType",
]
