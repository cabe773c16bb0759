"""Python dependency extraction from import statements.

Recognizes ``import a.b`` and ``from a.b import c`` in absolute and dotted
relative forms. Modules resolve to ``<name>.py`` or, for packages, to the
package's ``__init__.py``. Absolute imports are looked up beside the
importing file first, then from the project root.
"""

import re
from pathlib import Path

from overcode.dependencies.base import relative_if_local

IMPORT_PATTERN = re.compile(r"^import\s+(.+)$")
FROM_PATTERN = re.compile(r"^from\s+(\.+|\.*[A-Za-z_][\w.]*)\s+import\s+(.+)$")
_MODULE_NAME = re.compile(r"^[A-Za-z_][\w.]*$")
_NAME = re.compile(r"^[A-Za-z_]\w*$")

INIT_FILE = "__init__.py"

STDLIB_MODULES = frozenset(
    {
        "__future__", "abc", "argparse", "array", "ast", "asyncio", "atexit",
        "base64", "binascii", "bisect", "builtins", "bz2", "calendar", "cmath",
        "codecs", "collections", "concurrent", "configparser", "contextlib",
        "contextvars", "copy", "csv", "ctypes", "dataclasses", "datetime",
        "decimal", "difflib", "dis", "doctest", "email", "enum", "errno",
        "fnmatch", "fractions", "functools", "gc", "getpass", "gettext", "glob",
        "gzip", "hashlib", "heapq", "hmac", "html", "http", "importlib",
        "inspect", "io", "ipaddress", "itertools", "json", "locale", "logging",
        "lzma", "math", "mimetypes", "multiprocessing", "numbers", "operator",
        "os", "pathlib", "pdb", "pickle", "platform", "pprint", "profile",
        "queue", "random", "re", "secrets", "select", "selectors", "shlex",
        "shutil", "signal", "socket", "sqlite3", "ssl", "statistics", "string",
        "struct", "subprocess", "sys", "tarfile", "tempfile", "textwrap",
        "threading", "time", "timeit", "tomllib", "traceback", "types",
        "typing", "unicodedata", "unittest", "urllib", "uuid", "warnings",
        "weakref", "xml", "zipfile", "zlib",
    }
)


def _strip_comment(line: str) -> str:
    return line.split("#", 1)[0].strip()


def _imported_names(clause: str) -> list[str]:
    """Names from the ``import ...`` clause of a ``from`` statement."""
    clause = clause.strip().strip("()\\").strip()
    names = []
    for part in clause.split(","):
        name = re.split(r"\s+as\s+", part.strip(), maxsplit=1)[0].strip()
        if _NAME.match(name):
            names.append(name)
    return names


def _module_candidates(base: Path, module_path: str) -> list[Path]:
    """``<module>.py`` then ``<module>/__init__.py`` under base."""
    target = base.joinpath(*module_path.split("."))
    return [target.with_suffix(".py"), target / INIT_FILE]


class PythonDependencyExtractor:
    """Extracts project-local imports from Python sources."""

    suffixes = (".py",)

    def extract(self, file_path: Path, content: str, root: Path) -> list[str]:
        """Extract imported project modules.

        Args:
            file_path: Absolute path of the Python file.
            content: File text.
            root: Project root.

        Returns:
            Sorted, deduplicated relative paths.
        """
        deps: set[str] = set()

        for raw_line in content.splitlines():
            line = _strip_comment(raw_line)
            if not line:
                continue

            import_match = IMPORT_PATTERN.match(line)
            if import_match:
                for part in import_match.group(1).split(","):
                    module = re.split(r"\s+as\s+", part.strip(), maxsplit=1)[0].strip()
                    if _MODULE_NAME.match(module):
                        deps.update(self._resolve_absolute(file_path, module, [], root))
                continue

            from_match = FROM_PATTERN.match(line)
            if from_match:
                module, clause = from_match.groups()
                names = _imported_names(clause)
                if module.startswith("."):
                    deps.update(self._resolve_relative(file_path, module, names, root))
                else:
                    deps.update(self._resolve_absolute(file_path, module, names, root))

        return sorted(deps)

    def _resolve_absolute(
        self,
        file_path: Path,
        module: str,
        names: list[str],
        root: Path,
    ) -> list[str]:
        """Resolve ``module`` (and ``module.<name>`` submodules) absolutely."""
        if module.split(".")[0] in STDLIB_MODULES:
            return []

        for base in (file_path.parent, root):
            found = self._resolve_from(base, module, names, root)
            if found:
                return found
        return []

    def _resolve_relative(
        self,
        file_path: Path,
        module: str,
        names: list[str],
        root: Path,
    ) -> list[str]:
        """Resolve a dotted relative import.

        One leading dot is the importing file's package directory; each
        further dot moves up one package.
        """
        level = len(module) - len(module.lstrip("."))
        module_part = module[level:]

        base = file_path.parent
        for _ in range(level - 1):
            if base == root or not base.is_relative_to(root):
                return []
            base = base.parent

        if module_part:
            return self._resolve_from(base, module_part, names, root)

        found = []
        for name in names:
            dep = self._first_local(_module_candidates(base, name), root)
            if dep:
                found.append(dep)
        return found

    def _resolve_from(self, base: Path, module: str, names: list[str], root: Path) -> list[str]:
        found = []
        dep = self._first_local(_module_candidates(base, module), root)
        if dep:
            found.append(dep)
        for name in names:
            submodule = self._first_local(_module_candidates(base, f"{module}.{name}"), root)
            if submodule:
                found.append(submodule)
        return found

    @staticmethod
    def _first_local(candidates: list[Path], root: Path) -> str | None:
        for candidate in candidates:
            dep = relative_if_local(candidate, root)
            if dep:
                return dep
        return None
