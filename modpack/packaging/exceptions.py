# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Exceptions raised by the build pipeline.

Everything here is fatal: the orchestrator stops at the first one and no
archive is produced. The two non-fatal conditions of the pipeline, a missing
compiled binary and an unusable version source, are handled where they occur
and never become exceptions.
"""

from pathlib import Path
from typing import Optional


class ModpackError(Exception):
    """Base for all build pipeline errors."""


class ToolFailedError(ModpackError):
    """An external tool (git, pnpm, cargo) exited with a non-zero status."""

    def __init__(self, tool: str, returncode: int, arch: Optional[str] = None) -> None:
        self.tool = tool
        self.returncode = returncode
        self.arch = arch
        where = f" for {arch}" if arch else ""
        super().__init__(f"{tool} failed{where} (exit status {returncode})")


class StagingError(ModpackError):
    """A filesystem operation on the output or staging tree failed."""

    def __init__(self, operation: str, path: Path, reason: object) -> None:
        self.operation = operation
        self.path = path
        super().__init__(f"Cannot {operation} '{path}': {reason}")


class ArchiveError(ModpackError):
    """Writing the module zip failed."""
