# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
The one place that spawns processes.

Every external tool the build uses goes through a CommandRunner: command name,
arguments, working directory, extra environment in, exit status and (optionally)
captured stdout out. Tests swap in a recording fake and never spawn anything.

There is no timeout. A hung compiler hangs the build, the same as running it
by hand would.
"""

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Protocol, Sequence

from modpack.logging.logger import get_logger
from modpack.packaging.exceptions import ToolFailedError

_logger: logging.Logger = get_logger(__name__)

# Exit status reported when the executable could not be started at all,
# matching what a POSIX shell reports for "command not found".
SPAWN_FAILURE_STATUS = 127


@dataclass(frozen=True)
class CommandResult:
    """Exit status and, when capture was requested, decoded stdout."""

    returncode: int
    stdout: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner(Protocol):
    def run(
        self,
        command: str,
        args: Sequence[str] = (),
        cwd: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
        capture: bool = False,
    ) -> CommandResult: ...


class SubprocessRunner:
    """
    CommandRunner backed by subprocess.run.

    Without `capture` the child inherits our stdout/stderr so compiler output
    streams to the terminal as it happens. With `capture`, stdout is collected
    and stderr is discarded. Only `git describe` needs that. Captured bytes that
    are not valid UTF-8 are decoded with U+FFFD replacements rather than raising.

    `env` is merged over the current environment, not substituted for it.
    """

    def run(
        self,
        command: str,
        args: Sequence[str] = (),
        cwd: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
        capture: bool = False,
    ) -> CommandResult:
        argv = [command, *args]
        _logger.debug(
            "Executing command",
            extra={"argv": argv, "cwd": str(cwd) if cwd is not None else None},
        )

        full_env = None
        if env:
            full_env = {**os.environ, **env}

        try:
            completed = subprocess.run(
                argv,
                cwd=cwd,
                env=full_env,
                stdout=subprocess.PIPE if capture else None,
                stderr=subprocess.DEVNULL if capture else None,
                check=False,
            )
        except OSError as err:
            _logger.debug(
                "Command could not be started",
                extra={"command": command, "error": str(err)},
            )
            return CommandResult(returncode=SPAWN_FAILURE_STATUS)

        stdout = (completed.stdout or b"").decode("utf-8", errors="replace")
        return CommandResult(returncode=completed.returncode, stdout=stdout)


def check(result: CommandResult, tool: str, arch: Optional[str] = None) -> CommandResult:
    """
    Raise ToolFailedError unless the command exited 0.

    Args:
        result: What the runner returned.
        tool: Human-readable tool name for the error message ("pnpm install").
        arch: Architecture token, when the step is per-architecture.
    """
    if not result.ok:
        raise ToolFailedError(tool, result.returncode, arch=arch)
    return result
