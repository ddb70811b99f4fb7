# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Version resolution.

The version string comes from the first source that produces one:

    1. an explicit override in the environment
    2. `git describe --tags --always --dirty`
    3. the first `version = "..."` line of the packaging config, plus "-dev"
    4. the sentinel "unknown"

Each source is a small function that returns the version or None. They are
tried in order and the first hit wins. A source that fails for any reason (unset
variable, not a git checkout, no Cargo.toml) is simply skipped. Resolution
never fails.

The version code is either an explicit override too, or derived from the
version string: CRC-32 modulo 100000. Same string, same code, on any machine.
The installer treats a higher code as an upgrade, and there is no persistent
counter to draw from.
"""

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping, Optional

from modpack.logging.logger import get_logger
from modpack.packaging.runner import CommandRunner
from modpack.utils.hashing import stable_hash

_logger: logging.Logger = get_logger(__name__)

UNKNOWN_VERSION = "unknown"
DEV_SUFFIX = "-dev"
VERSION_CODE_MODULUS = 100000

GIT_DESCRIBE_ARGS = ("describe", "--tags", "--always", "--dirty")
UNDECODABLE_MARKER = "\ufffd"

_QUOTED_VALUE = re.compile(r"""=\s*(["'])(?P<value>[^"']*)\1""")


@dataclass(frozen=True)
class VersionInfo:
    """The resolved version. Created once per build, read by every later step."""

    version: str
    version_code: str
    source: str = "fallback"


VersionSource = Callable[[], Optional[str]]


def version_from_env(env: Mapping[str, str], name: str) -> Optional[str]:
    value = env.get(name)
    if value:
        return value
    return None


def version_from_git(runner: CommandRunner, project_root: Path) -> Optional[str]:
    """Trimmed `git describe` output, or None when git fails or prints something that is not UTF-8."""
    result = runner.run("git", GIT_DESCRIBE_ARGS, cwd=project_root, capture=True)
    if not result.ok:
        _logger.debug("git describe failed", extra={"returncode": result.returncode})
        return None
    described = result.stdout.strip()
    if UNDECODABLE_MARKER in described:
        _logger.debug("git describe output is not valid UTF-8", extra={"output": described})
        return None
    return described or None


def version_from_config(config_path: Path) -> Optional[str]:
    """
    Scan a key = "value" config file for its first version line.

    Only lines whose stripped text starts with the `version` key count, so
    `rust-version = "1.75"` is ignored. The first such line with a quoted value
    wins. Lines like `version.workspace = true` have no quoted value and are
    skipped.
    """
    try:
        text = config_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as err:
        _logger.debug(
            "Version file unreadable",
            extra={"path": str(config_path), "error": str(err)},
        )
        return None

    for line in text.splitlines():
        stripped = line.strip()
        if not stripped.startswith("version"):
            continue
        key = stripped.split("=", 1)[0].strip()
        if key != "version":
            continue
        match = _QUOTED_VALUE.search(stripped)
        if match and match.group("value"):
            return match.group("value") + DEV_SUFFIX

    _logger.debug("No version line in version file", extra={"path": str(config_path)})
    return None


def derive_version_code(version: str) -> str:
    """Deterministic version code: stable hash of the version string, mod 100000."""
    return str(stable_hash(version) % VERSION_CODE_MODULUS)


def first_available(sources: list[tuple[str, VersionSource]]) -> tuple[str, str]:
    """Return (source name, value) of the first source that yields a value."""
    for name, source in sources:
        value = source()
        if value:
            return name, value
    return "fallback", UNKNOWN_VERSION


def resolve_version(
    runner: CommandRunner,
    project_root: Path,
    version_file: Path,
    version_env: str = "MODPACK_VERSION",
    version_code_env: str = "MODPACK_VERSION_CODE",
    env: Optional[Mapping[str, str]] = None,
) -> VersionInfo:
    """
    Resolve the version string and version code for this build.

    Args:
        runner: Used for the `git describe` query.
        project_root: Working directory for git.
        version_file: Fallback config file (usually Cargo.toml).
        version_env: Name of the version override variable.
        version_code_env: Name of the version code override variable.
        env: Environment to read overrides from. Defaults to os.environ.

    Returns:
        The resolved VersionInfo. Never raises for an unusable source.
    """
    env = os.environ if env is None else env

    sources: list[tuple[str, VersionSource]] = [
        ("env", lambda: version_from_env(env, version_env)),
        ("git", lambda: version_from_git(runner, project_root)),
        ("config", lambda: version_from_config(version_file)),
    ]
    source, version = first_available(sources)

    version_code = version_from_env(env, version_code_env) or derive_version_code(version)

    info = VersionInfo(version=version, version_code=version_code, source=source)
    _logger.info(
        "Version resolved",
        extra={"version": info.version, "version_code": info.version_code, "source": info.source},
    )
    return info
