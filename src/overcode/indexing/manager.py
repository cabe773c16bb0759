"""Index manager orchestrating one indexing run.

A run loads the latest snapshot, scans the tree, detects changes, stores
blobs and dependency edges for hash groups carrying new information,
refreshes metadata, prunes vanished paths and saves a new snapshot. The
snapshot is only written after the whole mapping has been computed, so a
failed run leaves the previous snapshot as the latest one.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from overcode.config import IndexingSettings, get_settings
from overcode.core.exceptions import IndexIOError
from overcode.dependencies import ExtractorRegistry, default_registry
from overcode.indexing.change_detector import ChangeDetector, ChangeSet, HashGroup
from overcode.indexing.hasher import ContentHasher
from overcode.indexing.scanner import IgnoreRules, scan
from overcode.storage.blobs import BlobStore
from overcode.storage.models import UNRESOLVED_HASH, DependencyEdge, IndexRecord, Snapshot
from overcode.storage.snapshots import SnapshotStore
from overcode.utils.logging import LogContext, get_logger, short_hash

logger = get_logger(__name__)

BLOBS_DIR_NAME = "blobs"
HISTORY_DIR_NAME = "history"


@dataclass
class IndexRunResult:
    """Summary of one indexing run.

    Attributes:
        files_scanned: Files returned by the scanner.
        files_hashed: Files whose contents were hashed, dependencies included.
        groups_processed: Hash groups read, stored and analyzed.
        groups_skipped: Hash groups carried forward unchanged.
        blobs_written: Blobs newly written to the store.
        records: Records in the saved snapshot.
        pruned: Paths dropped because they are no longer on disk.
        snapshot: The saved snapshot.
    """

    files_scanned: int = 0
    files_hashed: int = 0
    groups_processed: int = 0
    groups_skipped: int = 0
    blobs_written: int = 0
    records: int = 0
    pruned: list[str] = field(default_factory=list)
    snapshot: Snapshot | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "files_scanned": self.files_scanned,
            "files_hashed": self.files_hashed,
            "groups_processed": self.groups_processed,
            "groups_skipped": self.groups_skipped,
            "blobs_written": self.blobs_written,
            "records": self.records,
            "pruned": list(self.pruned),
            "snapshot_timestamp": self.snapshot.timestamp if self.snapshot else None,
            "snapshot_path": str(self.snapshot.path) if self.snapshot and self.snapshot.path else None,
        }


class IndexManager:
    """Runs incremental indexing for one project root."""

    def __init__(
        self,
        root: Path,
        settings: IndexingSettings | None = None,
        *,
        hasher: ContentHasher | None = None,
        extractors: ExtractorRegistry | None = None,
        blob_store: BlobStore | None = None,
        snapshot_store: SnapshotStore | None = None,
    ) -> None:
        """Initialize index manager.

        Nothing is created on disk until ``ensure_layout`` or ``run``.

        Args:
            root: Project root to index.
            settings: Indexing settings. Defaults to the global settings.
            hasher: Content hasher. Defaults to the configured algorithm.
            extractors: Dependency extractors. Defaults to Rust and Python.
            blob_store: Blob store. Defaults to ``<metadata_dir>/blobs``.
            snapshot_store: Snapshot store. Defaults to ``<metadata_dir>/history``.
        """
        self.settings = settings or get_settings().indexing
        self.root = Path(root).resolve()
        self.metadata_dir = self.root / self.settings.metadata_dir
        self.hasher = hasher or ContentHasher(self.settings.hash_algorithm)
        self.extractors = extractors or default_registry()
        self.blob_store = blob_store or BlobStore(self.metadata_dir / BLOBS_DIR_NAME)
        self.snapshot_store = snapshot_store or SnapshotStore(self.metadata_dir / HISTORY_DIR_NAME)
        self.detector = ChangeDetector(self.hasher)

    def ensure_layout(self) -> None:
        """Create the metadata directory layout."""
        self.blob_store.ensure_layout()
        self.snapshot_store.ensure_layout()

    def load_latest_snapshot(self) -> Snapshot:
        """Load the current snapshot (empty on cold start)."""
        return self.snapshot_store.load_latest()

    def get_latest_snapshot_path(self) -> tuple[int, Path] | None:
        """Timestamp and path of the current snapshot, if any."""
        return self.snapshot_store.get_latest_snapshot_path()

    def run(self, ignore_patterns: Iterable[str] | None = None) -> IndexRunResult:
        """Index the tree and save a new snapshot.

        Args:
            ignore_patterns: Extra literal or wildcard patterns to skip.

        Returns:
            Run summary including the saved snapshot.

        Raises:
            IndexIOError: If any file or directory cannot be read or written.
            SnapshotParseError: If the latest snapshot is corrupt.
        """
        with LogContext(root=str(self.root)):
            result = IndexRunResult()

            previous = self.snapshot_store.load_latest()
            logger.info(
                "Loaded previous snapshot",
                timestamp=previous.timestamp,
                records=len(previous),
            )

            entries = scan(self.root, IgnoreRules.from_settings(self.settings, ignore_patterns))
            result.files_scanned = len(entries)

            changes = self.detector.detect(previous, entries)
            result.files_hashed = changes.hashed_count

            self.ensure_layout()
            baseline = previous if self.detector.can_reuse(previous) else Snapshot.empty()
            working: dict[str, IndexRecord] = dict(baseline.records)
            dependency_hashes: dict[str, str] = {}

            for group in changes.ordered_groups():
                known_paths = baseline.paths_for_hash(group.content_hash)
                if known_paths and known_paths.issuperset(group.paths):
                    result.groups_skipped += 1
                    continue

                if self._process_group(group, working, changes, dependency_hashes):
                    result.blobs_written += 1
                result.groups_processed += 1

            result.files_hashed += len(dependency_hashes)
            self._refresh_metadata(working, changes)

            result.pruned = sorted(set(previous.records) - set(changes.metadata))
            for path in result.pruned:
                working.pop(path, None)

            result.snapshot = self.snapshot_store.save(working, self.hasher.algorithm)
            result.records = len(working)

            logger.info(
                "Indexing finished",
                scanned=result.files_scanned,
                hashed=result.files_hashed,
                processed=result.groups_processed,
                skipped=result.groups_skipped,
                blobs_written=result.blobs_written,
                records=result.records,
                pruned=len(result.pruned),
                snapshot=result.snapshot.timestamp,
            )
            return result

    def _process_group(
        self,
        group: HashGroup,
        working: dict[str, IndexRecord],
        changes: ChangeSet,
        dependency_hashes: dict[str, str],
    ) -> bool:
        """Store a group's blob and record its paths with fresh dependencies.

        Returns:
            True if a new blob was written.
        """
        try:
            content = group.representative.read_bytes()
        except OSError as e:
            raise IndexIOError(str(group.representative), "read", cause=e) from e

        written = self.blob_store.save(group.content_hash, content)

        dependencies = tuple(
            DependencyEdge(
                path=dep_path,
                content_hash=self._dependency_hash(dep_path, working, changes, dependency_hashes),
            )
            for dep_path in self.extractors.extract(group.representative, content, self.root)
        )

        for path in group.paths:
            stat = changes.metadata.get(path)
            if stat is None:
                continue
            working[path] = IndexRecord(
                mtime=stat.mtime,
                size=stat.size,
                content_hash=group.content_hash,
                dependencies=dependencies,
            )

        logger.info(
            "Processed hash group",
            content_hash=short_hash(group.content_hash),
            paths=len(group.paths),
            dependencies=len(dependencies),
            blob_written=written,
        )
        return written

    def _dependency_hash(
        self,
        dep_path: str,
        working: dict[str, IndexRecord],
        changes: ChangeSet,
        dependency_hashes: dict[str, str],
    ) -> str:
        """Hash of a dependency at extraction time.

        Looked up in this run's fresh hashes, then the working index, then by
        hashing the file. Unreadable dependencies stay unresolved.
        """
        if dep_path in changes.new_hashes:
            return changes.new_hashes[dep_path]

        record = working.get(dep_path)
        if record is not None:
            return record.content_hash

        if dep_path in dependency_hashes:
            return dependency_hashes[dep_path]

        dep_file = self.root / dep_path
        if not dep_file.is_file():
            return UNRESOLVED_HASH

        try:
            content_hash = self.hasher.hash_file(dep_file)
        except IndexIOError as e:
            logger.warning("Failed to hash dependency", path=dep_path, error=e.message)
            return UNRESOLVED_HASH

        dependency_hashes[dep_path] = content_hash
        return content_hash

    @staticmethod
    def _refresh_metadata(working: dict[str, IndexRecord], changes: ChangeSet) -> None:
        """Refresh mtime/size for every scanned path.

        Known records keep their hash and dependencies; newly hashed paths
        without a record (or with an outdated hash) get a fresh record.
        """
        for path, stat in changes.metadata.items():
            record = working.get(path)
            new_hash = changes.new_hashes.get(path)
            if record is not None and (new_hash is None or record.content_hash == new_hash):
                working[path] = record.with_metadata(stat.mtime, stat.size)
            elif new_hash is not None:
                working[path] = IndexRecord(mtime=stat.mtime, size=stat.size, content_hash=new_hash)
