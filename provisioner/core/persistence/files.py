"""
File persistence — private directories, atomic descriptor writes, and
owner-only secret files.

Permissions are always applied before content is written: a secret
never sits on disk, even briefly, under a looser mode.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)

PRIVATE_DIR_MODE = 0o700
PRIVATE_FILE_MODE = 0o600
PUBLIC_FILE_MODE = 0o644


def ensure_private_dir(path: Path) -> Path:
    """Create *path* (and parents) and restrict it to the owning user."""
    path.mkdir(parents=True, exist_ok=True, mode=PRIVATE_DIR_MODE)
    os.chmod(path, PRIVATE_DIR_MODE)
    return path


def write_file_atomic(path: Path, content: str, *, private: bool = False) -> None:
    """Write *content* to *path* via temp-file-then-rename.

    The temp file is created in the same directory so the rename is
    atomic. Its mode is set before writing; ``private`` selects 0600,
    otherwise 0644.
    """
    mode = PRIVATE_FILE_MODE if private else PUBLIC_FILE_MODE
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".prov_", suffix=".tmp")
    tmp = Path(tmp_name)
    try:
        os.fchmod(fd, mode)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(content)
        tmp.replace(path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise
    logger.debug("Wrote %s (mode=%o)", path, mode)


def write_private_file(path: Path, content: str) -> None:
    """Write a secret to *path* with owner-only permissions.

    ``fchmod`` runs before the write so a pre-existing file with a
    looser mode is tightened first.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, PRIVATE_FILE_MODE)
    try:
        os.fchmod(fd, PRIVATE_FILE_MODE)
        os.write(fd, content.encode("utf-8"))
    finally:
        os.close(fd)
    logger.debug("Wrote private file %s", path)


def remove_tree(path: Path) -> bool:
    """Delete *path* recursively. Returns False when it did not exist."""
    if not path.exists():
        return False
    shutil.rmtree(path)
    logger.debug("Removed %s", path)
    return True
