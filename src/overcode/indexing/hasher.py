"""Content hashing for change detection.

Provides the content digest that identifies a file's bytes in the index and
the blob store.
"""

import hashlib
from pathlib import Path

from overcode.core.exceptions import ConfigurationError, IndexIOError


class ContentHasher:
    """Computes content hashes for files."""

    def __init__(self, algorithm: str = "sha256") -> None:
        """Initialize hasher.

        Args:
            algorithm: Hash algorithm to use.

        Raises:
            ConfigurationError: If the algorithm is not available.
        """
        try:
            hashlib.new(algorithm)
        except ValueError as e:
            raise ConfigurationError(
                f"Unsupported hash algorithm: {algorithm}",
                details={"algorithm": algorithm},
                cause=e,
            ) from e
        self.algorithm = algorithm

    def hash_content(self, content: str | bytes) -> str:
        """Hash string or bytes content.

        Args:
            content: Content to hash.

        Returns:
            Hex digest of hash.
        """
        if isinstance(content, str):
            content = content.encode("utf-8")

        hasher = hashlib.new(self.algorithm)
        hasher.update(content)
        return hasher.hexdigest()

    def hash_file(self, file_path: Path) -> str:
        """Hash a file's full contents.

        The whole file is read into memory first; a read failure never yields
        a partial digest.

        Args:
            file_path: Path to file.

        Returns:
            Hex digest of the file contents.

        Raises:
            IndexIOError: If the file cannot be opened or read.
        """
        try:
            content = file_path.read_bytes()
        except OSError as e:
            raise IndexIOError(str(file_path), "hash", cause=e) from e
        return self.hash_content(content)
