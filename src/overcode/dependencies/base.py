"""Dependency extractor contract and registry.

An extractor reads a source file's text and returns the project-local files
it references, as forward-slash paths relative to the project root. External
and standard-library references are dropped, and unknown references are
omitted silently.
"""

import os
from pathlib import Path
from typing import Protocol

from overcode.utils.logging import get_logger

logger = get_logger(__name__)


class DependencyExtractor(Protocol):
    """Extracts project-local references from one language's sources."""

    suffixes: tuple[str, ...]

    def extract(self, file_path: Path, content: str, root: Path) -> list[str]:
        """Return sorted, deduplicated relative paths of referenced files."""
        ...


def relative_if_local(candidate: Path, root: Path) -> str | None:
    """Relative path of a candidate file if it exists under root.

    Args:
        candidate: Candidate file path, possibly with ``..`` components.
        root: Project root.

    Returns:
        Forward-slash path relative to root, or None when the candidate is
        missing, not a regular file, or outside root.
    """
    normalized = Path(os.path.normpath(candidate))
    if not normalized.is_relative_to(root):
        return None
    if not normalized.is_file():
        return None
    return normalized.relative_to(root).as_posix()


class ExtractorRegistry:
    """Dispatches files to extractors by suffix."""

    def __init__(self) -> None:
        self._by_suffix: dict[str, DependencyExtractor] = {}

    def register(self, extractor: DependencyExtractor) -> None:
        """Register an extractor for each of its suffixes."""
        for suffix in extractor.suffixes:
            self._by_suffix[suffix.lower()] = extractor

    def for_path(self, file_path: Path) -> DependencyExtractor | None:
        """Get the extractor for a file, if any."""
        return self._by_suffix.get(file_path.suffix.lower())

    @property
    def suffixes(self) -> list[str]:
        """Registered suffixes."""
        return sorted(self._by_suffix)

    def extract(self, file_path: Path, content: bytes, root: Path) -> list[str]:
        """Extract dependencies of a file from its raw bytes.

        Args:
            file_path: Absolute path of the file.
            content: File bytes; decoded as UTF-8 with replacement.
            root: Project root.

        Returns:
            Relative dependency paths; empty for unsupported file types.
        """
        extractor = self.for_path(file_path)
        if extractor is None:
            return []
        text = content.decode("utf-8", errors="replace")
        own_path = relative_if_local(file_path, root)
        deps = [dep for dep in extractor.extract(file_path, text, root) if dep and dep != own_path]
        if deps:
            logger.debug("Dependencies extracted", file=str(file_path), count=len(deps))
        return deps
