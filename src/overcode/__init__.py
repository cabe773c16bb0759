"""overcode - Incremental, content-addressed source tree indexing.

An indexer that:
- Detects changed files by mtime and size
- Stores file contents once per content hash
- Extracts project-local dependency edges (Rust and Python)
- Keeps an append-only history of index snapshots
"""

__version__ = "0.1.0"
