# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Path utilities for modpack.

The build deletes its output directory wholesale on every run, so every path
that comes from configuration is checked against the project root first.
"""

from pathlib import Path


def ensure_directory(path: Path) -> Path:
    """Create a directory (and parents) if it doesn't exist. Returns the path for chaining."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def validate_path_within_project(target: Path, project_root: Path) -> Path:
    """
    Make sure a path doesn't escape the project directory.

    Both paths are resolved to their absolute forms before comparing, so
    `../../somewhere` and symlinked detours get caught.

    Args:
        target: The path to validate.
        project_root: The project root directory.

    Returns:
        The resolved absolute path if it's safe.

    Raises:
        ValueError: If the path escapes the project root or is the root itself.
    """
    resolved_target = target.resolve()
    resolved_root = project_root.resolve()

    if resolved_target == resolved_root or not resolved_target.is_relative_to(resolved_root):
        raise ValueError(
            f"Path '{target}' resolves to '{resolved_target}' which is not inside "
            f"the project root '{resolved_root}'. This is not allowed."
        )

    return resolved_target
