"""On-disk snapshot document schema and version migration.

A snapshot file is a TOML document::

    version = 2
    hash_algorithm = "sha256"

    [files."src/lib.rs"]
    mtime = 1700000000
    size = 120
    hash = "9f86d0..."
    deps = [{ path = "src/util.rs", hash = "2c26b4..." }]

Version 1 files have no ``version`` key and may encode a dependency as a bare
path string; a bare string is accepted in any version. Files written before
dependencies were tracked have no ``deps``, and files written before the
algorithm was recorded have no ``hash_algorithm`` and were hashed with SHA-256.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from overcode.storage.models import DependencyEdge, IndexRecord

SCHEMA_VERSION = 2
LEGACY_HASH_ALGORITHM = "sha256"


class DependencyEntry(BaseModel):
    """One ``{path, hash}`` dependency pair."""

    model_config = ConfigDict(extra="ignore")

    path: str = Field(min_length=1)
    hash: str = ""


class FileEntry(BaseModel):
    """One ``files.<path>`` table."""

    model_config = ConfigDict(extra="ignore")

    mtime: int = Field(default=0, ge=0)
    size: int = Field(default=0, ge=0)
    hash: str = ""
    deps: list[DependencyEntry] = Field(default_factory=list)

    @field_validator("deps", mode="before")
    @classmethod
    def normalize_deps(cls, v: Any) -> Any:
        """Accept a bare path string as a dependency with an unknown hash."""
        if isinstance(v, list):
            return [{"path": dep, "hash": ""} if isinstance(dep, str) else dep for dep in v]
        return v

    def to_record(self) -> IndexRecord:
        """Convert to an IndexRecord."""
        return IndexRecord(
            mtime=self.mtime,
            size=self.size,
            content_hash=self.hash,
            dependencies=tuple(
                DependencyEdge(path=dep.path, content_hash=dep.hash)
                for dep in self.deps
            ),
        )

    @classmethod
    def from_record(cls, record: IndexRecord) -> "FileEntry":
        """Build from an IndexRecord."""
        return cls(
            mtime=record.mtime,
            size=record.size,
            hash=record.content_hash,
            deps=[
                DependencyEntry(path=dep.path, hash=dep.content_hash)
                for dep in record.dependencies
            ],
        )


class SnapshotDocument(BaseModel):
    """Top-level snapshot document."""

    model_config = ConfigDict(extra="ignore")

    version: int = Field(default=SCHEMA_VERSION, ge=1)
    hash_algorithm: str = Field(default=LEGACY_HASH_ALGORITHM, min_length=1)
    files: dict[str, FileEntry] = Field(default_factory=dict)

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: int) -> int:
        """Reject documents from a newer writer."""
        if v > SCHEMA_VERSION:
            raise ValueError(f"unsupported snapshot version {v}")
        return v

    def to_records(self) -> dict[str, IndexRecord]:
        """Records keyed by path; entries without a hash are dropped."""
        return {
            path: entry.to_record()
            for path, entry in self.files.items()
            if entry.hash
        }

    @classmethod
    def from_records(
        cls,
        records: dict[str, IndexRecord],
        hash_algorithm: str = LEGACY_HASH_ALGORITHM,
    ) -> "SnapshotDocument":
        """Build a current-version document from records."""
        return cls(
            version=SCHEMA_VERSION,
            hash_algorithm=hash_algorithm,
            files={path: FileEntry.from_record(records[path]) for path in sorted(records)},
        )

    def to_toml_data(self) -> dict[str, Any]:
        """Plain data for the TOML writer; empty ``deps`` are omitted."""
        files: dict[str, Any] = {}
        for path, entry in self.files.items():
            table: dict[str, Any] = {
                "mtime": entry.mtime,
                "size": entry.size,
                "hash": entry.hash,
            }
            if entry.deps:
                table["deps"] = [{"path": dep.path, "hash": dep.hash} for dep in entry.deps]
            files[path] = table
        return {"version": self.version, "hash_algorithm": self.hash_algorithm, "files": files}


def _migrate_v1(data: dict[str, Any]) -> dict[str, Any]:
    """Stamp version 1 data as version 2.

    The two versions differ only in dependency encodings, which
    ``FileEntry`` accepts in either form.
    """
    data["version"] = 2
    return data


_MIGRATIONS = {1: _migrate_v1}


def migrate_document(data: dict[str, Any]) -> dict[str, Any]:
    """Upgrade raw snapshot data to the current schema version.

    Args:
        data: Parsed TOML data, modified in place.

    Returns:
        The migrated data.
    """
    version = data.get("version", 1)
    if not isinstance(version, int) or version < 1:
        return data  # left for validation to reject
    while version < SCHEMA_VERSION:
        data = _MIGRATIONS[version](data)
        version = data["version"]
    return data


def parse_document(data: dict[str, Any]) -> SnapshotDocument:
    """Migrate and validate raw snapshot data.

    Raises:
        pydantic.ValidationError: If the data does not fit the schema.
    """
    return SnapshotDocument.model_validate(migrate_document(data))
