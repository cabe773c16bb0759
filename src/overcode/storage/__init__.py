"""Storage module for blobs and snapshot history.

Provides the record models, the on-disk snapshot schema, and the two stores.
"""

from overcode.storage.blobs import BlobStore
from overcode.storage.models import (
    UNRESOLVED_HASH,
    DependencyEdge,
    IndexRecord,
    Snapshot,
)
from overcode.storage.schema import (
    SCHEMA_VERSION,
    SnapshotDocument,
    migrate_document,
    parse_document,
)
from overcode.storage.snapshots import SnapshotStore

__all__ = [
    # Models
    "UNRESOLVED_HASH",
    "DependencyEdge",
    "IndexRecord",
    "Snapshot",
    # Schema
    "SCHEMA_VERSION",
    "SnapshotDocument",
    "migrate_document",
    "parse_document",
    # Stores
    "BlobStore",
    "SnapshotStore",
]
