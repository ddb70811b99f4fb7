# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Filesystem helpers for modpack.

These are thin wrappers around pathlib and shutil whose only job is to keep
the "does it exist?" checks in one place. They raise the underlying OSError
on real failures. Callers add the build context (which step, which path).
"""

import shutil
from pathlib import Path


def safe_delete(file_path: Path) -> bool:
    """
    Delete a file if it exists. Returns whether anything was actually deleted.

    This never throws on a missing file — that's the "safe" part.

    Raises:
        OSError: If the file exists but can't be deleted (permissions, etc).
    """
    if file_path.exists():
        file_path.unlink()
        return True
    return False


def remove_tree(path: Path) -> bool:
    """
    Recursively delete a directory if it exists. Returns whether anything was deleted.

    A plain file at `path` is removed as well, so a stray file where the output
    directory should be cannot block a clean build.

    Raises:
        OSError: If the path exists but can't be removed.
    """
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
        return True
    return safe_delete(path)


def copy_file(source: Path, destination: Path) -> Path:
    """
    Copy a single file, overwriting the destination and keeping its mode bits.

    Parent directories of the destination are created as needed.

    Raises:
        OSError: If the copy fails.
    """
    destination.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(source, destination)
    return destination
