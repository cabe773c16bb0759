"""Data models for index records and snapshots.

These are the in-memory shapes of what a snapshot file holds. Records are
keyed by forward-slash relative path.
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType

UNRESOLVED_HASH = ""


@dataclass(frozen=True)
class DependencyEdge:
    """A project-local reference from one file to another.

    Attributes:
        path: Relative path of the referenced file.
        content_hash: Hash the referenced file had when the edge was
            extracted, or an empty string when it could not be resolved.
    """

    path: str
    content_hash: str = UNRESOLVED_HASH

    @property
    def is_resolved(self) -> bool:
        """Whether the dependency hash is known."""
        return self.content_hash != UNRESOLVED_HASH


@dataclass(frozen=True)
class IndexRecord:
    """Metadata tracked for one indexed path.

    Attributes:
        mtime: Modification time in whole seconds since the epoch.
        size: File size in bytes.
        content_hash: Hex digest of the file's full contents.
        dependencies: Dependency edges captured at extraction time.
    """

    mtime: int
    size: int
    content_hash: str
    dependencies: tuple[DependencyEdge, ...] = ()

    def with_metadata(self, mtime: int, size: int) -> "IndexRecord":
        """Return a copy with refreshed mtime and size."""
        return replace(self, mtime=mtime, size=size)


@dataclass(frozen=True)
class Snapshot:
    """An immutable, timestamped path -> IndexRecord mapping.

    Attributes:
        records: Records keyed by relative path.
        timestamp: Snapshot timestamp, None for the empty cold-start baseline.
        path: File the snapshot was loaded from or saved to.
        hash_algorithm: Algorithm that produced the content hashes, None for
            the empty baseline.
    """

    records: Mapping[str, IndexRecord] = field(default_factory=dict)
    timestamp: int | None = None
    path: Path | None = None
    hash_algorithm: str | None = None
    _paths_by_hash: Mapping[str, frozenset[str]] = field(
        init=False, repr=False, compare=False, default_factory=dict
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "records", MappingProxyType(dict(self.records)))

        paths_by_hash: dict[str, set[str]] = {}
        for path, record in self.records.items():
            paths_by_hash.setdefault(record.content_hash, set()).add(path)
        object.__setattr__(
            self,
            "_paths_by_hash",
            {content_hash: frozenset(paths) for content_hash, paths in paths_by_hash.items()},
        )

    @classmethod
    def empty(cls) -> "Snapshot":
        """Baseline used when no snapshot has been written yet."""
        return cls()

    def __len__(self) -> int:
        return len(self.records)

    def __contains__(self, path: object) -> bool:
        return path in self.records

    def __iter__(self) -> Iterator[str]:
        return iter(self.records)

    def get(self, path: str) -> IndexRecord | None:
        """Get the record for a path, if any."""
        return self.records.get(path)

    @property
    def is_empty(self) -> bool:
        """Whether the snapshot holds no records."""
        return not self.records

    def paths_for_hash(self, content_hash: str) -> frozenset[str]:
        """All paths whose record carries the given content hash."""
        return self._paths_by_hash.get(content_hash, frozenset())

    def stale_dependencies(self) -> list[tuple[str, DependencyEdge]]:
        """Find edges whose target changed since they were extracted.

        An edge is stale when its target is still indexed under a different
        hash than the one recorded on the edge, or when it was recorded as
        unresolved.

        Returns:
            Sorted (dependent path, edge) pairs.
        """
        stale: list[tuple[str, DependencyEdge]] = []
        for path in sorted(self.records):
            for edge in self.records[path].dependencies:
                target = self.records.get(edge.path)
                if target is None:
                    continue
                if edge.content_hash != target.content_hash:
                    stale.append((path, edge))
        return stale
