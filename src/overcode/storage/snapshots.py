"""Append-only snapshot history.

Each indexing run writes a brand-new ``history/<timestamp>.toml`` file with
the complete path -> record mapping. The file with the numerically largest
timestamp is the current snapshot. Snapshots are never modified or merged.
"""

import time
import tomllib
from collections.abc import Mapping
from pathlib import Path

import tomli_w
from pydantic import ValidationError

from overcode.core.exceptions import IndexIOError, SnapshotParseError
from overcode.storage.models import IndexRecord, Snapshot
from overcode.storage.schema import LEGACY_HASH_ALGORITHM, SnapshotDocument, parse_document
from overcode.utils.fs import atomic_write_bytes
from overcode.utils.logging import get_logger

logger = get_logger(__name__)

SNAPSHOT_SUFFIX = ".toml"


class SnapshotStore:
    """Persists and loads index snapshots."""

    def __init__(self, history_dir: Path) -> None:
        """Initialize snapshot store.

        Args:
            history_dir: Directory holding snapshot files. Not created here,
                see ``ensure_layout``.
        """
        self.history_dir = history_dir

    def ensure_layout(self) -> None:
        """Create the history directory if missing."""
        try:
            self.history_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise IndexIOError(str(self.history_dir), "create directory", cause=e) from e

    def get_latest_snapshot_path(self) -> tuple[int, Path] | None:
        """Find the snapshot file with the largest timestamp.

        Files whose stem is not a decimal integer are ignored.

        Returns:
            (timestamp, path) or None if no snapshot exists.
        """
        if not self.history_dir.is_dir():
            return None

        try:
            candidates = list(self.history_dir.iterdir())
        except OSError as e:
            raise IndexIOError(str(self.history_dir), "list directory", cause=e) from e

        latest: tuple[int, Path] | None = None
        for path in candidates:
            if path.suffix != SNAPSHOT_SUFFIX or not path.stem.isdigit():
                continue
            timestamp = int(path.stem)
            if latest is None or timestamp > latest[0]:
                latest = (timestamp, path)
        return latest

    def load(self, path: Path) -> Snapshot:
        """Load one snapshot file.

        Args:
            path: Snapshot file path.

        Returns:
            The parsed snapshot.

        Raises:
            IndexIOError: If the file cannot be read.
            SnapshotParseError: If the contents are not a valid snapshot.
        """
        try:
            content = path.read_bytes()
        except OSError as e:
            raise IndexIOError(str(path), "read snapshot", cause=e) from e

        try:
            data = tomllib.loads(content.decode("utf-8"))
        except (UnicodeDecodeError, tomllib.TOMLDecodeError) as e:
            raise SnapshotParseError(str(path), "not a TOML document", cause=e) from e

        try:
            document = parse_document(data)
        except ValidationError as e:
            raise SnapshotParseError(
                str(path), f"{e.error_count()} schema error(s)", cause=e
            ) from e

        timestamp = int(path.stem) if path.stem.isdigit() else None
        return Snapshot(
            records=document.to_records(),
            timestamp=timestamp,
            path=path,
            hash_algorithm=document.hash_algorithm,
        )

    def load_latest(self) -> Snapshot:
        """Load the current snapshot.

        Returns:
            The snapshot with the largest timestamp, or an empty snapshot on
            cold start.
        """
        latest = self.get_latest_snapshot_path()
        if latest is None:
            logger.debug("No snapshot found", history_dir=str(self.history_dir))
            return Snapshot.empty()

        snapshot = self.load(latest[1])
        logger.debug("Snapshot loaded", timestamp=latest[0], records=len(snapshot))
        return snapshot

    def save(
        self,
        records: Mapping[str, IndexRecord],
        hash_algorithm: str = LEGACY_HASH_ALGORITHM,
    ) -> Snapshot:
        """Write a new snapshot holding every record.

        The timestamp is the current Unix time in seconds, bumped past the
        latest existing snapshot so timestamps stay strictly increasing.

        Args:
            records: Complete path -> record mapping.
            hash_algorithm: Algorithm that produced the records' hashes.

        Returns:
            The saved snapshot.

        Raises:
            IndexIOError: If the snapshot cannot be written.
        """
        timestamp = int(time.time())
        latest = self.get_latest_snapshot_path()
        if latest is not None and timestamp <= latest[0]:
            timestamp = latest[0] + 1

        document = SnapshotDocument.from_records(dict(records), hash_algorithm)
        payload = tomli_w.dumps(document.to_toml_data()).encode("utf-8")

        path = self.history_dir / f"{timestamp}{SNAPSHOT_SUFFIX}"
        try:
            atomic_write_bytes(path, payload)
        except OSError as e:
            raise IndexIOError(str(path), "write snapshot", cause=e) from e

        logger.info("Snapshot saved", timestamp=timestamp, records=len(records))
        return Snapshot(
            records=records,
            timestamp=timestamp,
            path=path,
            hash_algorithm=hash_algorithm,
        )
