"""Stat-based change detection.

A scanned file whose ``(mtime, size)`` matches its record in the previous
snapshot keeps the cached hash without being read. Any mismatch, including a
touched file whose bytes did not change, triggers a full re-hash. Cached
hashes are only reused when the previous snapshot was hashed with the same
algorithm; otherwise every file is re-hashed.
"""

from dataclasses import dataclass, field
from pathlib import Path

from overcode.core.exceptions import IndexIOError
from overcode.indexing.hasher import ContentHasher
from overcode.indexing.scanner import FileEntry
from overcode.storage.models import Snapshot
from overcode.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class FileStat:
    """Metadata compared against the previous snapshot.

    Attributes:
        mtime: Modification time in whole seconds since the epoch.
        size: File size in bytes.
    """

    mtime: int
    size: int


def stat_file(file_path: Path) -> FileStat:
    """Stat a file without opening it.

    Raises:
        IndexIOError: If the file cannot be stat'ed.
    """
    try:
        stat = file_path.stat()
    except OSError as e:
        raise IndexIOError(str(file_path), "stat", cause=e) from e
    return FileStat(mtime=int(stat.st_mtime), size=stat.st_size)


@dataclass
class HashGroup:
    """All scanned paths sharing one content hash.

    Attributes:
        content_hash: The shared digest.
        paths: Relative paths, sorted and deduplicated by ``ChangeSet``.
        representative: Absolute path of the first file seen with this hash;
            the only one read when the group is processed.
    """

    content_hash: str
    paths: list[str]
    representative: Path


@dataclass
class ChangeSet:
    """Result of comparing a scan with the previous snapshot.

    Attributes:
        groups: Hash -> group of paths sharing it.
        new_hashes: Path -> hash for every file hashed in this run.
        metadata: Path -> current stat for every scanned file.
    """

    groups: dict[str, HashGroup] = field(default_factory=dict)
    new_hashes: dict[str, str] = field(default_factory=dict)
    metadata: dict[str, FileStat] = field(default_factory=dict)

    @property
    def hashed_count(self) -> int:
        """Number of files hashed in this run."""
        return len(self.new_hashes)

    @property
    def reused_count(self) -> int:
        """Number of files whose cached hash was reused."""
        return len(self.metadata) - len(self.new_hashes)

    def add(self, content_hash: str, relative_path: str, file_path: Path) -> None:
        """Add a path to the group for its hash."""
        group = self.groups.get(content_hash)
        if group is None:
            group = HashGroup(content_hash=content_hash, paths=[], representative=file_path)
            self.groups[content_hash] = group
        group.paths.append(relative_path)

    def normalize(self) -> None:
        """Sort and deduplicate group paths."""
        for group in self.groups.values():
            group.paths = sorted(set(group.paths))

    def ordered_groups(self) -> list[HashGroup]:
        """Groups in hash order."""
        return [self.groups[content_hash] for content_hash in sorted(self.groups)]


class ChangeDetector:
    """Decides which scanned files need hashing."""

    def __init__(self, hasher: ContentHasher) -> None:
        """Initialize change detector.

        Args:
            hasher: Hasher used for new or changed files.
        """
        self.hasher = hasher

    def can_reuse(self, previous: Snapshot) -> bool:
        """Whether the previous snapshot's hashes are comparable with ours."""
        return previous.hash_algorithm in (None, self.hasher.algorithm)

    def detect(self, previous: Snapshot, entries: list[FileEntry]) -> ChangeSet:
        """Compare scanned entries with the previous snapshot.

        Args:
            previous: Last persisted snapshot (empty on cold start).
            entries: Files from the current scan.

        Returns:
            Hash groups, fresh hashes, and current metadata.

        Raises:
            IndexIOError: If any file cannot be stat'ed or hashed.
        """
        changes = ChangeSet()
        if not self.can_reuse(previous):
            logger.info(
                "Hash algorithm changed, re-hashing every file",
                previous=previous.hash_algorithm,
                current=self.hasher.algorithm,
            )
            previous = Snapshot.empty()

        for entry in entries:
            current = stat_file(entry.path)
            changes.metadata[entry.relative_path] = current

            cached = previous.get(entry.relative_path)
            if cached is not None and cached.mtime == current.mtime and cached.size == current.size:
                changes.add(cached.content_hash, entry.relative_path, entry.path)
                continue

            content_hash = self.hasher.hash_file(entry.path)
            changes.new_hashes[entry.relative_path] = content_hash
            changes.add(content_hash, entry.relative_path, entry.path)

        changes.normalize()
        logger.debug(
            "Change detection finished",
            scanned=len(changes.metadata),
            hashed=changes.hashed_count,
            reused=changes.reused_count,
            groups=len(changes.groups),
        )
        return changes
