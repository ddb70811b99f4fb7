# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Hashing utilities for modpack.

Two very different jobs live here:
  - SHA256 of files, so a build can report a digest for its archive and two
    runs over the same tree can be compared byte for byte.
  - A stable, non-cryptographic hash of short strings, used to derive the
    module's numeric version code. It must give the same number on every
    machine and every Python build, which rules out the builtin hash().
"""

import hashlib
import zlib
from pathlib import Path

HASH_BUFFER_SIZE = 65536  # 64 KiB


def compute_sha256(file_path: Path) -> str:
    """
    Compute the SHA256 hex digest of a file.

    Reads the file in chunks so a large archive never has to fit in memory.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        OSError: If the file can't be read.
    """
    hasher = hashlib.sha256()
    with open(file_path, "rb") as f:
        while True:
            chunk = f.read(HASH_BUFFER_SIZE)
            if not chunk:
                break
            hasher.update(chunk)
    return hasher.hexdigest()


def stable_hash(text: str) -> int:
    """
    CRC-32 of the UTF-8 encoding of `text`, as an unsigned 32-bit integer.

    zlib.crc32 has returned an unsigned value since Python 3.0, the mask keeps
    that explicit.
    """
    return zlib.crc32(text.encode("utf-8")) & 0xFFFFFFFF
