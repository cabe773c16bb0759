"""Indexing module for incremental source tree indexing.

Provides scanning, content hashing, change detection, and the index manager
that ties them to the blob and snapshot stores.
"""

from overcode.indexing.change_detector import (
    ChangeDetector,
    ChangeSet,
    FileStat,
    HashGroup,
    stat_file,
)
from overcode.indexing.hasher import ContentHasher
from overcode.indexing.manager import IndexManager, IndexRunResult
from overcode.indexing.scanner import FileEntry, IgnorePattern, IgnoreRules, scan

__all__ = [
    # Scanner
    "FileEntry",
    "IgnorePattern",
    "IgnoreRules",
    "scan",
    # Hasher
    "ContentHasher",
    # Change detection
    "ChangeDetector",
    "ChangeSet",
    "FileStat",
    "HashGroup",
    "stat_file",
    # Manager
    "IndexManager",
    "IndexRunResult",
]
