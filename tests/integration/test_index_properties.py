"""End-to-end properties of incremental indexing on a real directory tree."""

import hashlib
import tomllib
from collections.abc import Callable
from pathlib import Path
from unittest.mock import patch

import pytest

from overcode.config import IndexingSettings
from overcode.core.exceptions import IndexIOError
from overcode.indexing.manager import IndexManager
from overcode.storage.models import DependencyEdge

pytestmark = pytest.mark.integration


def _sha(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


@pytest.fixture
def manager(project_root: Path) -> IndexManager:
    """Index manager with default indexing settings."""
    return IndexManager(project_root, IndexingSettings(ignore_patterns=".git"))


def _blob_names(manager: IndexManager) -> list[str]:
    return sorted(path.name for path in manager.blob_store.blobs_dir.iterdir())


class TestIndexProperties:
    """Properties every run must hold."""

    def test_cold_start_three_files(
        self, manager: IndexManager, write_file: Callable[..., Path]
    ) -> None:
        """Test a first run yields one fresh record per file."""
        contents = {"a.txt": b"one", "docs/b.md": b"two", "src/c.rs": b"fn c() {}"}
        for rel, content in contents.items():
            write_file(rel, content)

        result = manager.run()

        assert result.files_hashed == 3
        assert {path: result.snapshot.get(path).content_hash for path in result.snapshot} == {
            rel: _sha(content) for rel, content in contents.items()
        }

    def test_idempotent_second_run(
        self,
        manager: IndexManager,
        write_file: Callable[..., Path],
    ) -> None:
        """Test re-indexing an unchanged tree reads and writes no content."""
        write_file("a.txt", "alpha")
        write_file("dup1.txt", "same")
        write_file("dup2.txt", "same")
        write_file("src/lib.rs", "use crate::util;\n")
        write_file("src/util.rs", "pub fn f() {}\n")
        first = manager.run()
        blobs_before = _blob_names(manager)
        original = Path.read_bytes

        with patch.object(Path, "read_bytes", autospec=True, side_effect=original) as reads:
            second = manager.run()

        content_reads = [
            call.args[0]
            for call in reads.call_args_list
            if manager.metadata_dir not in call.args[0].parents
        ]
        assert content_reads == []
        assert second.files_hashed == 0
        assert second.blobs_written == 0
        assert _blob_names(manager) == blobs_before
        assert second.snapshot.timestamp != first.snapshot.timestamp
        assert dict(second.snapshot.records) == dict(first.snapshot.records)

    def test_identical_files_share_one_blob(
        self, manager: IndexManager, write_file: Callable[..., Path]
    ) -> None:
        """Test a.txt and b.txt holding "hello" produce a single blob."""
        write_file("a.txt", "hello")
        write_file("b.txt", "hello")

        snapshot = manager.run().snapshot

        digest = _sha(b"hello")
        assert _blob_names(manager) == [digest]
        assert (manager.blob_store.blobs_dir / digest).read_bytes() == b"hello"
        assert snapshot.get("a.txt").content_hash == digest
        assert snapshot.get("b.txt").content_hash == digest

    def test_metadata_change_triggers_rehash(
        self,
        manager: IndexManager,
        write_file: Callable[..., Path],
        set_mtime: Callable[[Path, int], None],
    ) -> None:
        """Test a changed mtime re-hashes even when the digest stays the same."""
        path = write_file("a.txt", "alpha")
        write_file("b.txt", "beta")
        set_mtime(path, 1600000000)
        manager.run()

        set_mtime(path, 1600000001)
        with patch.object(manager.hasher, "hash_file", wraps=manager.hasher.hash_file) as spy:
            result = manager.run()

        spy.assert_called_once_with(path.resolve())
        assert result.snapshot.get("a.txt").content_hash == _sha(b"alpha")
        assert result.snapshot.get("a.txt").mtime == 1600000001

    def test_removed_file_pruned_blob_kept(
        self, manager: IndexManager, write_file: Callable[..., Path]
    ) -> None:
        """Test pruning drops the record but leaves the blob untouched."""
        write_file("keep.txt", "keep")
        removed = write_file("old.txt", "old contents")
        manager.run()
        blob = manager.blob_store.blobs_dir / _sha(b"old contents")
        mtime_before = blob.stat().st_mtime_ns

        removed.unlink()
        result = manager.run()

        assert "old.txt" not in result.snapshot
        assert result.pruned == ["old.txt"]
        assert blob.read_bytes() == b"old contents"
        assert blob.stat().st_mtime_ns == mtime_before

    def test_algorithm_switch_rehashes_and_dedups(
        self,
        manager: IndexManager,
        project_root: Path,
        write_file: Callable[..., Path],
    ) -> None:
        """Test a new digest algorithm re-keys every record under one scheme."""
        write_file("a.txt", "hello")
        manager.run()
        write_file("b.txt", "hello")

        switched = IndexManager(
            project_root, IndexingSettings(ignore_patterns=".git", hash_algorithm="sha512")
        )
        result = switched.run()

        expected = hashlib.sha512(b"hello").hexdigest()
        assert result.snapshot.hash_algorithm == "sha512"
        assert result.snapshot.get("a.txt").content_hash == expected
        assert result.snapshot.get("b.txt").content_hash == expected
        assert result.groups_processed == 1
        assert _blob_names(switched) == sorted([_sha(b"hello"), expected])

    @pytest.mark.parametrize(
        ("lib", "util", "source"),
        [
            ("src/lib.rs", "src/util.rs", "use std::fmt;\nuse crate::util;\n"),
            ("src/lib.py", "src/util.py", "import os\nimport util\n"),
        ],
    )
    def test_lib_references_util(
        self,
        manager: IndexManager,
        write_file: Callable[..., Path],
        lib: str,
        util: str,
        source: str,
    ) -> None:
        """Test a reference to util resolves to exactly that file and its hash."""
        write_file(lib, source)
        write_file(util, "x = 1\n")

        snapshot = manager.run().snapshot

        assert snapshot.get(lib).dependencies == (
            DependencyEdge(path=util, content_hash=_sha(b"x = 1\n")),
        )
        assert snapshot.get(util).dependencies == ()

    def test_snapshot_file_on_disk(
        self, manager: IndexManager, rust_crate: Path
    ) -> None:
        """Test the persisted document lists every record and its edges."""
        result = manager.run()

        with result.snapshot.path.open("rb") as f:
            data = tomllib.load(f)

        assert result.snapshot.path.parent == manager.metadata_dir / "history"
        assert result.snapshot.path.name == f"{result.snapshot.timestamp}.toml"
        assert sorted(data["files"]) == sorted(result.snapshot)
        assert [dep["path"] for dep in data["files"]["src/lib.rs"]["deps"]] == [
            "src/net/mod.rs",
            "src/parser.rs",
            "src/util.rs",
        ]
        assert "deps" not in data["files"]["Cargo.toml"]

    def test_unreadable_file_aborts_run(
        self, manager: IndexManager, write_file: Callable[..., Path]
    ) -> None:
        """Test one unreadable file leaves the last good snapshot current."""
        write_file("a.txt", "alpha")
        first = manager.run()

        bad = write_file("b.txt", "beta")
        original = Path.read_bytes

        def failing_read(path: Path) -> bytes:
            if path.name == bad.name:
                raise PermissionError(13, "Permission denied", str(path))
            return original(path)

        with patch.object(Path, "read_bytes", autospec=True, side_effect=failing_read):
            with pytest.raises(IndexIOError) as exc_info:
                manager.run()

        assert exc_info.value.path.endswith("b.txt")
        assert manager.get_latest_snapshot_path() == (
            first.snapshot.timestamp,
            first.snapshot.path,
        )
        assert list(manager.snapshot_store.history_dir.iterdir()) == [first.snapshot.path]
