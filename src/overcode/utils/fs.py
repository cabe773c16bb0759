"""Filesystem helpers shared by the stores."""

import os
import tempfile
from pathlib import Path


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Write data to path atomically.

    The data goes to a temporary file in the same directory which is then
    renamed over the target, so readers never observe a partial file.

    Raises:
        OSError: If the temporary file cannot be written or renamed.
    """
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise
