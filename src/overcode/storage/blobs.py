"""Write-once content-addressed blob storage.

Each blob is a file under ``blobs/`` named by the hex digest of its content
and holding the raw bytes. Blobs are never deleted.
"""

from pathlib import Path

from overcode.core.exceptions import BlobNotFoundError, IndexIOError
from overcode.utils.fs import atomic_write_bytes
from overcode.utils.logging import get_logger, short_hash

logger = get_logger(__name__)


class BlobStore:
    """Stores file contents keyed by content hash."""

    def __init__(self, blobs_dir: Path) -> None:
        """Initialize blob store.

        Args:
            blobs_dir: Directory holding blob files. Not created here, see
                ``ensure_layout``.
        """
        self.blobs_dir = blobs_dir

    def ensure_layout(self) -> None:
        """Create the blob directory if missing."""
        try:
            self.blobs_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise IndexIOError(str(self.blobs_dir), "create directory", cause=e) from e

    def path_for(self, content_hash: str) -> Path:
        """Path of the blob file for a hash."""
        if not content_hash or "/" in content_hash or content_hash.startswith("."):
            raise ValueError(f"Invalid content hash: {content_hash!r}")
        return self.blobs_dir / content_hash

    def exists(self, content_hash: str) -> bool:
        """Check whether content for a hash is stored."""
        return self.path_for(content_hash).is_file()

    def save(self, content_hash: str, content: bytes) -> bool:
        """Store content under its hash unless already present.

        Args:
            content_hash: Hex digest of content.
            content: Raw file bytes.

        Returns:
            True if a new blob was written, False if it already existed.

        Raises:
            IndexIOError: If the blob cannot be written.
        """
        blob_path = self.path_for(content_hash)
        if blob_path.exists():
            return False

        try:
            atomic_write_bytes(blob_path, content)
        except OSError as e:
            raise IndexIOError(str(blob_path), "write blob", cause=e) from e

        logger.debug("Blob saved", content_hash=short_hash(content_hash), size=len(content))
        return True

    def read(self, content_hash: str) -> bytes:
        """Read stored content for a hash.

        Raises:
            BlobNotFoundError: If no blob exists for the hash.
            IndexIOError: If the blob exists but cannot be read.
        """
        blob_path = self.path_for(content_hash)
        if not blob_path.is_file():
            raise BlobNotFoundError(content_hash)
        try:
            return blob_path.read_bytes()
        except OSError as e:
            raise IndexIOError(str(blob_path), "read blob", cause=e) from e
