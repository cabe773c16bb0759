"""Rust dependency extraction from ``use`` and ``mod`` declarations.

Handles:

- ``use crate::a::b;`` resolved from the crate source root, then the project root
- ``use super::a;`` resolved from the parent module's directory
- ``use self::a;`` resolved from the file's own directory
- brace groups such as ``use crate::a::{b, c as d};``
- ``mod a;`` resolved to ``a.rs`` or ``a/mod.rs`` beside the declaring file

Imports rooted at ``std``, ``core`` or ``alloc`` are external. Paths anchored at
``crate``, ``super`` or ``self`` are always local, even through a project
module that happens to be named ``core``.

A module path is tried longest-first, so ``use crate::util::helper`` falls
back to ``util.rs`` when ``helper`` is an item rather than a module.
"""

import re
from pathlib import Path

from overcode.dependencies.base import relative_if_local

_VISIBILITY = r"(?:pub(?:\s*\([^)]*\))?\s+)?"
USE_PATTERN = re.compile(rf"^{_VISIBILITY}use\s+(crate|super|self)::([^;]*);?")
MOD_PATTERN = re.compile(rf"^{_VISIBILITY}mod\s+([A-Za-z_]\w*)\s*;")
STD_USE_PATTERN = re.compile(rf"^{_VISIBILITY}use\s+(?:::)?(?:std|core|alloc)::")
_IDENTIFIER = re.compile(r"^[A-Za-z_]\w*$")

# Files whose child modules live in their own directory.
_MODULE_ROOT_FILES = frozenset({"mod.rs", "lib.rs", "main.rs"})
_CRATE_ROOT_FILES = ("lib.rs", "main.rs")


def _strip_alias(path: str) -> str:
    return re.split(r"\s+as\s+", path.strip(), maxsplit=1)[0].strip()


def _split_segments(path: str) -> list[str] | None:
    segments = [segment.strip() for segment in path.split("::") if segment.strip()]
    if not segments or not all(_IDENTIFIER.match(segment) for segment in segments):
        return None
    return segments


def parse_use_tree(tree: str) -> list[list[str]]:
    """Expand the part of a ``use`` after its anchor into module paths.

    Args:
        tree: Text such as ``util::helper``, ``a::{b, c as d}`` or ``m::*``.

    Returns:
        Candidate module paths as segment lists.
    """
    tree = tree.strip()
    if "{" not in tree:
        tree = _strip_alias(tree)
        if tree.endswith("::*"):
            tree = tree[:-3]
        segments = _split_segments(tree)
        return [segments] if segments else []

    brace = tree.index("{")
    base = tree[:brace].rstrip(":").strip()
    base_segments = _split_segments(base) if base else []
    if base_segments is None:
        return []

    closing = tree.rfind("}")
    inner = tree[brace + 1 : closing if closing > brace else len(tree)]
    paths: list[list[str]] = []
    for item in inner.split(","):
        item = _strip_alias(item.split("{", 1)[0].rstrip(":"))
        if item in ("", "*", "self"):
            if base_segments:
                paths.append(base_segments)
            continue
        segments = _split_segments(item)
        if segments:
            paths.append(base_segments + segments)
    return paths


class RustDependencyExtractor:
    """Extracts project-local module references from Rust sources."""

    suffixes = (".rs",)

    def extract(self, file_path: Path, content: str, root: Path) -> list[str]:
        """Extract referenced module files.

        Args:
            file_path: Absolute path of the Rust file.
            content: File text.
            root: Project root.

        Returns:
            Sorted, deduplicated relative paths.
        """
        deps: set[str] = set()

        for raw_line in content.splitlines():
            line = raw_line.strip()
            if line.startswith(("//", "/*", "*")):
                continue

            if STD_USE_PATTERN.match(line):
                continue

            use_match = USE_PATTERN.match(line)
            if use_match:
                anchor, tree = use_match.groups()
                anchors = self._anchor_dirs(file_path, anchor, root)
                for segments in parse_use_tree(tree):
                    dep = self._resolve_module(anchors, segments, root)
                    if dep:
                        deps.add(dep)
                continue

            mod_match = MOD_PATTERN.match(line)
            if mod_match:
                dep = self._resolve_mod_declaration(file_path, mod_match.group(1), root)
                if dep:
                    deps.add(dep)

        return sorted(deps)

    def _anchor_dirs(self, file_path: Path, anchor: str, root: Path) -> list[Path]:
        """Directories a ``use`` path is resolved against, in order."""
        file_dir = file_path.parent
        if anchor == "crate":
            candidates = [find_crate_root(file_path, root), root]
        elif anchor == "super":
            parent_module_dir = file_dir.parent if file_path.name in _MODULE_ROOT_FILES else file_dir
            candidates = [parent_module_dir, file_dir.parent]
        else:
            candidates = [file_dir, _module_dir(file_path)]

        anchors: list[Path] = []
        for candidate in candidates:
            if candidate not in anchors:
                anchors.append(candidate)
        return anchors

    def _resolve_module(self, anchors: list[Path], segments: list[str], root: Path) -> str | None:
        """Resolve a module path to ``<path>.rs`` or ``<path>/mod.rs``."""
        for length in range(len(segments), 0, -1):
            module_path = Path(*segments[:length])
            for anchor in anchors:
                for candidate in (
                    anchor / module_path.with_suffix(".rs"),
                    anchor / module_path / "mod.rs",
                ):
                    dep = relative_if_local(candidate, root)
                    if dep:
                        return dep
        return None

    def _resolve_mod_declaration(self, file_path: Path, name: str, root: Path) -> str | None:
        """Resolve ``mod name;`` to the module's file."""
        file_dir = file_path.parent
        candidates = [file_dir / f"{name}.rs", file_dir / name / "mod.rs"]
        module_dir = _module_dir(file_path)
        if module_dir != file_dir:
            candidates += [module_dir / f"{name}.rs", module_dir / name / "mod.rs"]

        for candidate in candidates:
            dep = relative_if_local(candidate, root)
            if dep:
                return dep
        return None


def _module_dir(file_path: Path) -> Path:
    """Directory holding a module file's child modules."""
    if file_path.name in _MODULE_ROOT_FILES:
        return file_path.parent
    return file_path.parent / file_path.stem


def find_crate_root(file_path: Path, root: Path) -> Path:
    """Find the source root of the crate containing a file.

    Walks up from the file's directory to the project root looking for a
    directory with ``lib.rs`` or ``main.rs``. Falls back to ``<root>/src``
    when it exists, else the project root.
    """
    current = file_path.parent
    while current.is_relative_to(root):
        if any((current / name).is_file() for name in _CRATE_ROOT_FILES):
            return current
        if current == root:
            break
        current = current.parent

    src_dir = root / "src"
    return src_dir if src_dir.is_dir() else root
