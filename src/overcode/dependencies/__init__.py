"""Dependency extraction for project-local references.

Provides the extractor contract, the suffix registry, and the Rust and
Python extractors.
"""

from overcode.dependencies.base import (
    DependencyExtractor,
    ExtractorRegistry,
    relative_if_local,
)
from overcode.dependencies.python import PythonDependencyExtractor
from overcode.dependencies.rust import RustDependencyExtractor


def default_registry() -> ExtractorRegistry:
    """Registry with the Rust (``.rs``) and Python (``.py``) extractors."""
    registry = ExtractorRegistry()
    registry.register(RustDependencyExtractor())
    registry.register(PythonDependencyExtractor())
    return registry


__all__ = [
    "DependencyExtractor",
    "ExtractorRegistry",
    "PythonDependencyExtractor",
    "RustDependencyExtractor",
    "default_registry",
    "relative_if_local",
]
