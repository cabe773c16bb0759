"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test modules.
"""

import os
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

# Set test environment before importing app modules
os.environ["APP_ENV"] = "development"
os.environ["APP_LOG_LEVEL"] = "DEBUG"


@pytest.fixture
def mock_settings() -> Generator[Any, None, None]:
    """Provide settings isolated from the caller's environment.

    Yields:
        Settings instance built from defaults.
    """
    with patch.dict(
        os.environ,
        {
            "APP_ENV": "development",
            "APP_LOG_LEVEL": "DEBUG",
            "OVERCODE_METADATA_DIR": ".overcode",
            "OVERCODE_IGNORE_PATTERNS": ".git",
            "OVERCODE_IGNORE_FILES": "",
            "OVERCODE_RESPECT_GITIGNORE": "true",
        },
    ):
        from overcode.config import get_settings

        get_settings.cache_clear()
        yield get_settings()
        get_settings.cache_clear()


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """Create an empty project directory."""
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def write_file(project_root: Path) -> Callable[..., Path]:
    """Write a file under the project root, creating parent directories.

    Returns:
        Function taking a relative path and str or bytes content.
    """

    def _write(relative_path: str, content: str | bytes) -> Path:
        path = project_root / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def set_mtime() -> Callable[[Path, int], None]:
    """Set a file's mtime (and atime) to a whole-second value."""

    def _set(path: Path, mtime: int) -> None:
        os.utime(path, (mtime, mtime))

    return _set


@pytest.fixture
def rust_crate(write_file: Callable[..., Path]) -> Path:
    """A small Rust crate with modules and std imports."""
    write_file(
        "src/lib.rs",
        "use std::collections::HashMap;\n"
        "use crate::util;\n"
        "mod parser;\n"
        "pub mod net;\n",
    )
    write_file("src/util.rs", "pub fn helper() {}\n")
    write_file("src/parser.rs", "use super::util::helper;\nuse self::inner;\n")
    write_file("src/net/mod.rs", "pub fn connect() {}\n")
    return write_file("Cargo.toml", '[package]\nname = "demo"\n').parent


# Markers for test categories
def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
