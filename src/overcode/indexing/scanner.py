"""Directory scanning with ignore rules.

Walks a source tree and yields the regular files that should be indexed.
Three kinds of rules apply:

- caller patterns: literal names/substrings or ``*`` globs (see
  ``IgnorePattern``),
- ignore files: VCS-ignore-style files named in configuration, applied from
  the root,
- ``.gitignore`` files found in the tree plus ``.git/info/exclude``, each
  scoped to its directory.

The tool's metadata directory is always excluded.
"""

import fnmatch
import os
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

import pathspec

from overcode.config import IndexingSettings
from overcode.core.exceptions import IndexIOError
from overcode.utils.logging import get_logger

logger = get_logger(__name__)

GITIGNORE_NAME = ".gitignore"
GIT_EXCLUDE_PATH = ".git/info/exclude"
_WILDCARD_CHARS = "*?["


@dataclass(frozen=True)
class FileEntry:
    """A file found by a scan.

    Attributes:
        path: Absolute path on disk.
        relative_path: Path relative to the scan root, forward slashes.
    """

    path: Path
    relative_path: str


class IgnorePattern:
    """A literal or wildcard ignore entry.

    A relative path is ignored when any of its components equals the
    pattern or matches it as a glob, when the whole path contains the
    pattern, or when the whole path matches it as a glob.
    """

    def __init__(self, pattern: str) -> None:
        self.pattern = pattern
        self.is_wildcard = any(char in pattern for char in _WILDCARD_CHARS)

    def __repr__(self) -> str:
        return f"IgnorePattern({self.pattern!r})"

    def matches(self, relative_path: str) -> bool:
        """Check a forward-slash relative path against this pattern."""
        if not self.pattern:
            return False

        for component in relative_path.split("/"):
            if component == self.pattern:
                return True
            if self.is_wildcard and fnmatch.fnmatchcase(component, self.pattern):
                return True

        if self.pattern in relative_path:
            return True

        return self.is_wildcard and fnmatch.fnmatchcase(relative_path, self.pattern)


@dataclass
class IgnoreRules:
    """Ignore configuration for one scan.

    Attributes:
        patterns: Literal or wildcard entries.
        ignore_files: Root-relative paths of VCS-ignore-style files.
        respect_gitignore: Honor ``.gitignore`` files and ``.git/info/exclude``.
        metadata_dir: Name of the tool's metadata directory.
    """

    patterns: list[str] = field(default_factory=list)
    ignore_files: list[str] = field(default_factory=list)
    respect_gitignore: bool = True
    metadata_dir: str = ".overcode"

    @classmethod
    def from_settings(
        cls,
        settings: IndexingSettings,
        extra_patterns: Iterable[str] | None = None,
    ) -> "IgnoreRules":
        """Build rules from indexing settings.

        Args:
            settings: Indexing settings.
            extra_patterns: Caller-supplied patterns added to the configured ones.
        """
        return cls(
            patterns=[*settings.ignore_patterns_list, *(extra_patterns or [])],
            ignore_files=settings.ignore_files_list,
            respect_gitignore=settings.respect_gitignore,
            metadata_dir=settings.metadata_dir,
        )


class _IgnoreMatcher:
    """Applies IgnoreRules during one walk of a root."""

    def __init__(self, root: Path, rules: IgnoreRules) -> None:
        self.rules = rules
        self.patterns = [IgnorePattern(p) for p in rules.patterns if p]
        self._specs: dict[str, pathspec.PathSpec] = {}

        self._root_lines: list[str] = []
        for name in rules.ignore_files:
            self._root_lines.extend(self._read_lines(root / name, required=True))
        if rules.respect_gitignore:
            self._root_lines.extend(self._read_lines(root / GIT_EXCLUDE_PATH, required=False))

    @staticmethod
    def _read_lines(path: Path, required: bool) -> list[str]:
        try:
            return path.read_text(encoding="utf-8", errors="replace").splitlines()
        except FileNotFoundError:
            if required:
                logger.warning("Ignore file not found", path=str(path))
            return []
        except OSError as e:
            logger.warning("Failed to read ignore file", path=str(path), error=str(e))
            return []

    def enter_directory(self, directory: Path, rel_dir: str) -> None:
        """Load the directory's .gitignore, if any."""
        lines: list[str] = []
        if self.rules.respect_gitignore:
            lines = self._read_lines(directory / GITIGNORE_NAME, required=False)
        if not rel_dir:
            lines = self._root_lines + lines
        if lines:
            self._specs[rel_dir] = pathspec.GitIgnoreSpec.from_lines(lines)

    def is_ignored(self, relative_path: str, is_dir: bool) -> bool:
        """Check a path against every rule."""
        components = relative_path.split("/")
        if self.rules.metadata_dir in components:
            return True

        if any(pattern.matches(relative_path) for pattern in self.patterns):
            return True

        # Only specs of the path's ancestor directories apply.
        for depth in range(len(components)):
            spec = self._specs.get("/".join(components[:depth]))
            if spec is None:
                continue
            local = "/".join(components[depth:])
            if spec.match_file(local + "/" if is_dir else local):
                return True
        return False


def _join(rel_dir: str, name: str) -> str:
    return f"{rel_dir}/{name}" if rel_dir else name


def scan(root: Path, rules: IgnoreRules | None = None) -> list[FileEntry]:
    """Scan a tree for indexable files.

    Unreadable subdirectories are skipped; only an unreadable root is an
    error. Directory symlinks are not followed.

    Args:
        root: Directory to scan.
        rules: Ignore rules. Defaults to excluding only the metadata directory
            and gitignored paths.

    Returns:
        Regular files sorted by relative path.

    Raises:
        IndexIOError: If the root cannot be read.
    """
    rules = rules or IgnoreRules()
    try:
        with os.scandir(root):
            pass
    except OSError as e:
        raise IndexIOError(str(root), "scan", cause=e) from e

    matcher = _IgnoreMatcher(root, rules)
    entries: list[FileEntry] = []
    ignored = 0

    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        rel_dir = current.relative_to(root).as_posix()
        if rel_dir == ".":
            rel_dir = ""
        matcher.enter_directory(current, rel_dir)

        kept_dirs = []
        for name in sorted(dirnames):
            if matcher.is_ignored(_join(rel_dir, name), is_dir=True):
                ignored += 1
            else:
                kept_dirs.append(name)
        dirnames[:] = kept_dirs

        for name in sorted(filenames):
            relative_path = _join(rel_dir, name)
            if matcher.is_ignored(relative_path, is_dir=False):
                ignored += 1
                continue
            full_path = current / name
            if not full_path.is_file():
                continue
            entries.append(FileEntry(path=full_path, relative_path=relative_path))

    entries.sort(key=lambda entry: entry.relative_path)
    logger.debug("Scan finished", root=str(root), files=len(entries), ignored=ignored)
    return entries
