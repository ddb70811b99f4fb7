# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Deterministic module zip creation.

The same staging tree must always produce the same bytes, so a rebuild can be
checked by digest alone. Three things normally leak into a zip and make it
differ between runs, and each is pinned here:
  - entry order: paths are sorted, and a directory comes before its contents
  - timestamps: every entry gets 1980-01-01 00:00:00, the earliest zip date
  - compression: DEFLATE at level 9 for every file

Entry names are relative to the staging root, so extracting the zip gives the
staging tree's contents directly, with no wrapping directory. That is what the
root manager expects from a module zip.
"""

import logging
import os
import stat
import zipfile
from dataclasses import dataclass
from pathlib import Path

from modpack.logging.logger import get_logger
from modpack.packaging.exceptions import ArchiveError
from modpack.utils.hashing import compute_sha256

_logger: logging.Logger = get_logger(__name__)

FIXED_DATE_TIME = (1980, 1, 1, 0, 0, 0)
COMPRESSION = zipfile.ZIP_DEFLATED
COMPRESSION_LEVEL = 9
DEFAULT_DIR_MODE = 0o755


@dataclass(frozen=True)
class ArchiveResult:
    """A written archive and what went into it."""

    path: Path
    entry_count: int
    sha256: str


def archive_name(product_name: str, version: str) -> str:
    """File name of the module zip, e.g. `Meta-Hybrid-v1.2.0-3-gabc123.zip`."""
    return f"{product_name}-{version}.zip"


def collect_entries(staging_root: Path) -> list[tuple[str, Path]]:
    """
    List (archive name, source path) for every entry, in archive order.

    Regular files become entries. A directory gets an entry of its own, with
    a name ending in "/", only when nothing beneath it produced one. That
    covers truly empty directories and also directories holding nothing but
    symlinked directories or special files, which would otherwise vanish on
    extraction. Sorting on the relative POSIX path keeps a directory ahead of
    everything inside it.
    """
    entries: list[tuple[str, Path]] = []
    directories: list[tuple[str, Path]] = []
    for dirpath, dirnames, filenames in os.walk(staging_root):
        dirnames.sort()
        current = Path(dirpath)
        rel_dir = current.relative_to(staging_root).as_posix()
        prefix = "" if rel_dir == "." else rel_dir + "/"
        if prefix:
            directories.append((prefix, current))

        for name in filenames:
            path = current / name
            if path.is_file():
                entries.append((prefix + name, path))

    # Children are walked after their parents, so going backwards settles
    # every subdirectory before the directory containing it.
    for prefix, path in reversed(directories):
        if not any(name.startswith(prefix) for name, _ in entries):
            entries.append((prefix, path))

    entries.sort(key=lambda entry: entry[0])
    return entries


def _zip_info(arcname: str, mode: int) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo(filename=arcname, date_time=FIXED_DATE_TIME)
    info.create_system = 3  # unix, so external_attr carries permission bits
    info.external_attr = (mode & 0xFFFF) << 16
    if arcname.endswith("/"):
        info.external_attr |= 0x10  # MS-DOS directory flag
        info.compress_type = zipfile.ZIP_STORED
    else:
        info.compress_type = COMPRESSION
    return info


def create_archive(staging_root: Path, archive_path: Path) -> ArchiveResult:
    """
    Zip the staging tree into `archive_path`, replacing any existing file.

    Args:
        staging_root: The finalized staging directory.
        archive_path: Output file. Its parent must exist.

    Returns:
        ArchiveResult with entry count and SHA256 of the written zip.

    Raises:
        ArchiveError: If the staging root is missing or writing fails.
    """
    if not staging_root.is_dir():
        raise ArchiveError(f"Staging directory not found: {staging_root}")

    entries = collect_entries(staging_root)
    _logger.info(
        "Creating archive",
        extra={"path": str(archive_path), "entry_count": len(entries)},
    )

    try:
        with zipfile.ZipFile(archive_path, "w", compression=COMPRESSION, compresslevel=COMPRESSION_LEVEL) as zf:
            for arcname, source in entries:
                if arcname.endswith("/"):
                    zf.writestr(_zip_info(arcname, stat.S_IFDIR | DEFAULT_DIR_MODE), b"")
                    continue
                mode = source.stat().st_mode
                info = _zip_info(arcname, stat.S_IFREG | stat.S_IMODE(mode))
                zf.writestr(info, source.read_bytes(), compress_type=COMPRESSION, compresslevel=COMPRESSION_LEVEL)
    except OSError as err:
        raise ArchiveError(f"Cannot write archive {archive_path}: {err}") from err

    digest = compute_sha256(archive_path)
    _logger.info(
        "Archive written",
        extra={"path": str(archive_path), "entry_count": len(entries), "sha256": digest},
    )
    return ArchiveResult(path=archive_path, entry_count=len(entries), sha256=digest)
