# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
In-place patching of module.prop.

module.prop is a flat key=value file that the root manager reads at install
time. We only own two keys, `version` and `versionCode`. Everything else (id,
name, author, description, comments, blank lines) belongs to whoever maintains
module/ and must come out exactly as it went in.

So this is a line rewrite, not a parser: any line starting with `version=` or
`versionCode=` is replaced whole, every other line passes through. If a key
appears twice, both copies are rewritten.
"""

import logging
from pathlib import Path

from modpack.logging.logger import get_logger
from modpack.packaging.exceptions import StagingError
from modpack.packaging.version import VersionInfo

_logger: logging.Logger = get_logger(__name__)

VERSION_PREFIX = "version="
VERSION_CODE_PREFIX = "versionCode="


def patch_line(line: str, info: VersionInfo) -> str:
    if line.startswith(VERSION_PREFIX):
        return f"{VERSION_PREFIX}{info.version}"
    if line.startswith(VERSION_CODE_PREFIX):
        return f"{VERSION_CODE_PREFIX}{info.version_code}"
    return line


def split_lines(text: str) -> list[str]:
    """
    Split manifest text on "\\n" only, dropping a "\\r" before each break.

    str.splitlines() also breaks on form feeds, NEL and the Unicode line
    separators, any of which can legitimately sit inside a value. A single
    trailing newline does not produce an extra empty line.
    """
    lines = [line.removesuffix("\r") for line in text.split("\n")]
    if len(lines) > 1 and lines[-1] == "":
        lines.pop()
    return lines


def patch_lines(lines: list[str], info: VersionInfo) -> list[str]:
    return [patch_line(line, info) for line in lines]


def patch_manifest(manifest_path: Path, info: VersionInfo) -> bool:
    """
    Rewrite the version lines of a manifest file in place.

    The result is the patched lines joined with "\\n", with no trailing newline.
    Running it twice with the same VersionInfo gives the same file.

    Args:
        manifest_path: Path to module.prop inside the staging tree.
        info: The resolved version.

    Returns:
        True if the file was rewritten, False if it does not exist.

    Raises:
        StagingError: If the file exists but cannot be read or written.
    """
    if not manifest_path.is_file():
        _logger.debug("No manifest to patch", extra={"path": str(manifest_path)})
        return False

    try:
        with open(manifest_path, encoding="utf-8", newline="") as f:
            lines = split_lines(f.read())
    except (OSError, UnicodeDecodeError) as err:
        raise StagingError("read manifest", manifest_path, err) from err

    patched = patch_lines(lines, info)

    try:
        with open(manifest_path, "w", encoding="utf-8", newline="\n") as f:
            f.write("\n".join(patched))
    except OSError as err:
        raise StagingError("write manifest", manifest_path, err) from err

    _logger.info(
        "Manifest patched",
        extra={
            "path": str(manifest_path),
            "version": info.version,
            "version_code": info.version_code,
            "lines_changed": sum(1 for old, new in zip(lines, patched) if old != new),
        },
    )
    return True
