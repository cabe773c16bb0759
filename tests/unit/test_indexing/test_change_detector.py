"""Tests for stat-based change detection."""

import hashlib
from collections.abc import Callable
from pathlib import Path
from unittest.mock import patch

import pytest

from overcode.core.exceptions import IndexIOError
from overcode.indexing.change_detector import ChangeDetector, FileStat, stat_file
from overcode.indexing.hasher import ContentHasher
from overcode.indexing.scanner import scan
from overcode.storage.models import IndexRecord, Snapshot


def _sha(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


class TestStatFile:
    """Tests for stat_file."""

    def test_whole_second_mtime(
        self, write_file: Callable[..., Path], set_mtime: Callable[[Path, int], None]
    ) -> None:
        """Test mtime is truncated to whole seconds."""
        path = write_file("a.txt", "abc")
        set_mtime(path, 1700000000)

        assert stat_file(path) == FileStat(mtime=1700000000, size=3)

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test a vanished file is an IO error."""
        with pytest.raises(IndexIOError):
            stat_file(tmp_path / "gone.txt")


class TestChangeDetector:
    """Tests for ChangeDetector."""

    @pytest.fixture
    def detector(self) -> ChangeDetector:
        """Create change detector."""
        return ChangeDetector(ContentHasher())

    def test_cold_start_hashes_everything(
        self,
        detector: ChangeDetector,
        project_root: Path,
        write_file: Callable[..., Path],
    ) -> None:
        """Test every file is hashed without a previous snapshot."""
        write_file("a.txt", "one")
        write_file("b.txt", "two")

        changes = detector.detect(Snapshot.empty(), scan(project_root))

        assert changes.new_hashes == {"a.txt": _sha(b"one"), "b.txt": _sha(b"two")}
        assert changes.hashed_count == 2
        assert changes.reused_count == 0
        assert set(changes.metadata) == {"a.txt", "b.txt"}

    def test_unchanged_stat_reuses_cached_hash(
        self,
        detector: ChangeDetector,
        project_root: Path,
        write_file: Callable[..., Path],
        set_mtime: Callable[[Path, int], None],
    ) -> None:
        """Test a file with matching mtime and size is never read."""
        path = write_file("a.txt", "one")
        set_mtime(path, 1700000000)
        previous = Snapshot(
            records={"a.txt": IndexRecord(mtime=1700000000, size=3, content_hash="cached")}
        )

        with patch.object(detector.hasher, "hash_file") as mock_hash:
            changes = detector.detect(previous, scan(project_root))

        mock_hash.assert_not_called()
        assert changes.new_hashes == {}
        assert changes.reused_count == 1
        assert changes.groups["cached"].paths == ["a.txt"]

    def test_other_algorithm_snapshot_is_rehashed(
        self,
        detector: ChangeDetector,
        project_root: Path,
        write_file: Callable[..., Path],
        set_mtime: Callable[[Path, int], None],
    ) -> None:
        """Test cached hashes from another digest algorithm are never reused."""
        path = write_file("a.txt", "one")
        set_mtime(path, 1700000000)
        previous = Snapshot(
            records={"a.txt": IndexRecord(mtime=1700000000, size=3, content_hash="cached")},
            hash_algorithm="sha512",
        )

        changes = detector.detect(previous, scan(project_root))

        assert changes.new_hashes == {"a.txt": _sha(b"one")}
        assert changes.reused_count == 0
        assert "cached" not in changes.groups

    @pytest.mark.parametrize(
        ("algorithm", "expected"),
        [(None, True), ("sha256", True), ("sha512", False)],
    )
    def test_can_reuse(
        self, detector: ChangeDetector, algorithm: str | None, expected: bool
    ) -> None:
        """Test which previous snapshots have comparable hashes."""
        assert detector.can_reuse(Snapshot(hash_algorithm=algorithm)) is expected

    def test_touched_file_is_rehashed(
        self,
        detector: ChangeDetector,
        project_root: Path,
        write_file: Callable[..., Path],
        set_mtime: Callable[[Path, int], None],
    ) -> None:
        """Test an mtime change alone forces a re-hash."""
        path = write_file("a.txt", "one")
        set_mtime(path, 1700000005)
        previous = Snapshot(
            records={"a.txt": IndexRecord(mtime=1700000000, size=3, content_hash=_sha(b"one"))}
        )

        changes = detector.detect(previous, scan(project_root))

        assert changes.new_hashes == {"a.txt": _sha(b"one")}
        assert changes.metadata["a.txt"].mtime == 1700000005

    def test_size_change_is_rehashed(
        self,
        detector: ChangeDetector,
        project_root: Path,
        write_file: Callable[..., Path],
        set_mtime: Callable[[Path, int], None],
    ) -> None:
        """Test a size change with the same mtime forces a re-hash."""
        path = write_file("a.txt", "longer")
        set_mtime(path, 1700000000)
        previous = Snapshot(
            records={"a.txt": IndexRecord(mtime=1700000000, size=3, content_hash=_sha(b"one"))}
        )

        changes = detector.detect(previous, scan(project_root))

        assert changes.new_hashes == {"a.txt": _sha(b"longer")}

    def test_identical_content_forms_one_group(
        self,
        detector: ChangeDetector,
        project_root: Path,
        write_file: Callable[..., Path],
    ) -> None:
        """Test paths with the same content share a group."""
        write_file("b.txt", "hello")
        write_file("a.txt", "hello")
        write_file("c.txt", "other")

        changes = detector.detect(Snapshot.empty(), scan(project_root))
        group = changes.groups[_sha(b"hello")]

        assert group.paths == ["a.txt", "b.txt"]
        assert group.representative == project_root / "a.txt"
        assert len(changes.groups) == 2

    def test_ordered_groups(
        self,
        detector: ChangeDetector,
        project_root: Path,
        write_file: Callable[..., Path],
    ) -> None:
        """Test groups are processed in hash order."""
        for name in ("x", "y", "z"):
            write_file(f"{name}.txt", name)

        changes = detector.detect(Snapshot.empty(), scan(project_root))
        hashes = [group.content_hash for group in changes.ordered_groups()]

        assert hashes == sorted(hashes)

    def test_unreadable_file_fails(
        self,
        detector: ChangeDetector,
        project_root: Path,
        write_file: Callable[..., Path],
    ) -> None:
        """Test a hashing failure propagates."""
        write_file("a.txt", "one")
        error = IndexIOError(str(project_root / "a.txt"), "hash")

        with patch.object(detector.hasher, "hash_file", side_effect=error):
            with pytest.raises(IndexIOError):
                detector.detect(Snapshot.empty(), scan(project_root))
