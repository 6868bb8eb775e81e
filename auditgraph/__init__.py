"""
auditgraph: object graph auditing and diffing.

Compares successive versions of an in-memory domain object graph and records
their snapshots in an append-only commit log, so the change history of any
identifiable domain object can be reconstructed.

Components:
- metamodel: Entity / Value Object / Value classification, properties, global ids
- graph: object graph traversal and snapshots
- diff: changes, LCS list edit scripts, the differ
- commit: commits and their construction
- repository: storage port (in-memory, JSONL)
- codec: JSON conversion
- auditor: the facade tying it together

Design principles:
- Append-only: snapshots and commits are never rewritten
- Flat: graphs become id-indexed node tables, edges hold ids
- Deterministic: traversal and change order are canonical
"""

__version__ = "0.1.0"

from .auditor import Auditor
from .config import AuditConfig, load_config
from .errors import AuditError, ErrorCode
from .metamodel.types import Id, Transient

__all__ = [
    "__version__",
    "Auditor",
    "AuditConfig",
    "load_config",
    "AuditError",
    "ErrorCode",
    "Id",
    "Transient",
]
