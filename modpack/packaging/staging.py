# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Staging tree assembly.

The staging tree is the exact content of the module zip, laid out on disk:

    output/staging/
    ├─ binaries/
    │  ├─ arm64-v8a/<binary>
    │  ├─ armeabi-v7a/<binary>
    │  └─ x86_64/<binary>
    ├─ module.prop
    ├─ customize.sh
    └─ ...                 (everything else from module/, including the built web UI)

Order of operations:
  1. The whole output root is deleted and recreated. Nothing from an earlier
     run can leak into this one.
  2. Each selected architecture's binary is copied to binaries/<token>/. A
     missing binary is a warning, not an error: a dev build for one ABI is
     still worth packaging.
  3. module/ is copied over the top, children only, overwriting on collision.
     Because this happens after step 2, a file in module/binaries/<token>/
     with the binary's name would replace the compiled one. That is the
     behaviour the install script has always been packaged with, so it stays.
  4. Exclusion markers (.gitignore) are removed from the staging root.
"""

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence

from modpack.logging.logger import get_logger
from modpack.packaging.arch import Architecture
from modpack.packaging.exceptions import StagingError
from modpack.utils.filesystem import copy_file, remove_tree, safe_delete
from modpack.utils.paths import ensure_directory, validate_path_within_project

_logger: logging.Logger = get_logger(__name__)

STAGING_DIR_NAME = "staging"
BINARIES_DIR_NAME = "binaries"


@dataclass(frozen=True)
class StagingResult:
    """What ended up in the staging tree."""

    staging_root: Path
    staged: tuple[Architecture, ...] = ()
    missing: tuple[Architecture, ...] = ()
    removed_markers: tuple[str, ...] = field(default_factory=tuple)


def prepare_output_root(output_root: Path, project_root: Path) -> Path:
    """
    Wipe the output root and create an empty staging directory inside it.

    Args:
        output_root: Directory holding staging/ and the final zip.
        project_root: The output root must resolve to somewhere below this.

    Returns:
        Path to the fresh, empty staging directory.

    Raises:
        StagingError: If the output root is outside the project, or removal
                      or creation fails.
    """
    try:
        validate_path_within_project(output_root, project_root)
    except ValueError as err:
        raise StagingError("clean output root", output_root, err) from err

    try:
        if remove_tree(output_root):
            _logger.info("Removed previous output", extra={"path": str(output_root)})
    except OSError as err:
        raise StagingError("remove output root", output_root, err) from err

    staging_root = output_root / STAGING_DIR_NAME
    try:
        ensure_directory(staging_root)
    except OSError as err:
        raise StagingError("create staging directory", staging_root, err) from err

    return staging_root


def stage_binary(staging_root: Path, arch: Architecture, source_binary: Path) -> bool:
    """
    Copy one architecture's compiled binary to binaries/<token>/<name>.

    The per-architecture directory is created even when the binary is missing.

    Returns:
        True if the binary was copied, False if it was not found.

    Raises:
        StagingError: If the directory cannot be created or the copy fails.
    """
    arch_dir = staging_root / BINARIES_DIR_NAME / arch.token
    try:
        ensure_directory(arch_dir)
    except OSError as err:
        raise StagingError("create binary directory", arch_dir, err) from err

    if not source_binary.is_file():
        _logger.warning(
            "Binary not found, skipping architecture",
            extra={"arch": arch.token, "path": str(source_binary)},
        )
        return False

    destination = arch_dir / source_binary.name
    try:
        copy_file(source_binary, destination)
    except OSError as err:
        raise StagingError("copy binary", source_binary, err) from err

    _logger.info(
        "Staged binary",
        extra={"arch": arch.token, "source": str(source_binary), "destination": str(destination)},
    )
    return True


def overlay_module(source_dir: Path, staging_root: Path) -> int:
    """
    Copy the children of `source_dir` into `staging_root`, overwriting on collision.

    Returns:
        Number of files copied.

    Raises:
        StagingError: If the source is not a directory or the copy fails.
    """
    if not source_dir.is_dir():
        raise StagingError("copy module directory", source_dir, "not a directory")

    try:
        shutil.copytree(source_dir, staging_root, dirs_exist_ok=True)
    except (OSError, shutil.Error) as err:
        raise StagingError("copy module directory", source_dir, err) from err

    copied = sum(1 for path in source_dir.rglob("*") if path.is_file())
    _logger.info(
        "Copied module scripts",
        extra={"source": str(source_dir), "file_count": copied},
    )
    return copied


def remove_exclusion_markers(staging_root: Path, markers: Iterable[str]) -> list[str]:
    """
    Delete development-only marker files from the staging root.

    Only the root is cleaned. Markers are file names, not patterns.

    Returns:
        Names of the markers that were actually present and removed.

    Raises:
        StagingError: If a marker exists but cannot be deleted.
    """
    removed: list[str] = []
    for marker in markers:
        marker_path = staging_root / marker
        try:
            if safe_delete(marker_path):
                removed.append(marker)
        except OSError as err:
            raise StagingError("remove exclusion marker", marker_path, err) from err

    if removed:
        _logger.debug("Removed exclusion markers", extra={"markers": removed})
    return removed


def assemble_staging(
    staging_root: Path,
    binaries: Sequence[tuple[Architecture, Path]],
    module_dir: Path,
    exclusion_markers: Iterable[str] = (".gitignore",),
    before_each: Optional[Callable[[Architecture], None]] = None,
) -> StagingResult:
    """
    Build the staging tree from compiled binaries and the module overlay.

    Expects `staging_root` to exist and be empty (see prepare_output_root).

    Args:
        staging_root: The staging directory.
        binaries: (architecture, compiled binary path) in staging order.
        module_dir: The scripts/metadata directory copied on top.
        exclusion_markers: File names removed from the staging root afterwards.
        before_each: Called with each architecture right before its binary is
                     staged. The orchestrator compiles there, so a compiler
                     failure stops staging at that architecture.

    Returns:
        StagingResult listing staged and missing architectures.
    """
    staged: list[Architecture] = []
    missing: list[Architecture] = []
    for arch, source_binary in binaries:
        if before_each is not None:
            before_each(arch)
        if stage_binary(staging_root, arch, source_binary):
            staged.append(arch)
        else:
            missing.append(arch)

    overlay_module(module_dir, staging_root)
    removed = remove_exclusion_markers(staging_root, exclusion_markers)

    return StagingResult(
        staging_root=staging_root,
        staged=tuple(staged),
        missing=tuple(missing),
        removed_markers=tuple(removed),
    )
