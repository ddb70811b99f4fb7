# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
External tools the build drives: the web UI bundler, cargo-ndk, and clippy.

All of them are opaque. We hand them arguments and look at the exit status,
nothing else. Each function here raises ToolFailedError on a non-zero exit and
returns None on success.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Mapping, Optional

from modpack.logging.logger import get_logger
from modpack.packaging.arch import Architecture
from modpack.packaging.runner import CommandRunner, check
from modpack.utils.filesystem import safe_delete

_logger: logging.Logger = get_logger(__name__)

WEBUI_CONSTANTS_PATH = Path("src", "lib", "constants_gen.ts")
LEGACY_WEBUI_CONSTANTS_PATH = Path("src", "lib", "constants_gen.js")

RUNTIME_PATHS: dict[str, str] = {
    "CONFIG": "/data/adb/meta-hybrid/config.toml",
    "MODE_CONFIG": "/data/adb/meta-hybrid/module_mode.conf",
    "IMAGE_MNT": "/data/adb/meta-hybrid/mnt",
    "DAEMON_STATE": "/data/adb/meta-hybrid/run/daemon_state.json",
    "DAEMON_LOG": "/data/adb/meta-hybrid/daemon.log",
}
BUILTIN_PARTITIONS: tuple[str, ...] = ("system", "vendor", "product", "system_ext", "odm", "oem", "apex")

COMPILE_ENV: dict[str, str] = {"RUSTFLAGS": "-C default-linker-libraries"}

CLIPPY_ARGS: tuple[str, ...] = (
    "clippy",
    "--workspace",
    "--all-targets",
    "--all-features",
    "--",
    "-D",
    "warnings",
)


def pnpm_executable() -> str:
    return "pnpm.cmd" if sys.platform == "win32" else "pnpm"


def cargo_executable(env: Optional[Mapping[str, str]] = None) -> str:
    """The cargo binary to run: $CARGO when set (as it is under `cargo run`), else `cargo`."""
    env = os.environ if env is None else env
    return env.get("CARGO") or "cargo"


def profile_name(release: bool) -> str:
    return "release" if release else "debug"


def binary_path(target_dir: Path, arch: Architecture, binary_name: str, release: bool) -> Path:
    """Where cargo leaves the compiled binary: target/<triple>/<profile>/<name>."""
    return target_dir / arch.triple / profile_name(release) / binary_name


def render_webui_constants(version: str, is_release: bool) -> str:
    """TypeScript source for the generated constants module the web UI imports."""
    paths = "\n".join(f'  {key}: "{value}",' for key, value in RUNTIME_PATHS.items())
    partitions = ", ".join(f'"{name}"' for name in BUILTIN_PARTITIONS)
    return (
        f'export const APP_VERSION = "{version}";\n'
        f"export const IS_RELEASE = {'true' if is_release else 'false'};\n"
        f"export const RUST_PATHS = {{\n"
        f"{paths}\n"
        f"}} as const;\n"
        f"export const BUILTIN_PARTITIONS = [{partitions}] as const;\n"
    )


def write_webui_constants(webui_dir: Path, version: str, is_release: bool) -> Path:
    """
    Generate src/lib/constants_gen.ts so the web UI shows the version it ships with.

    A stale constants_gen.js from older layouts is removed so the bundler can't
    pick it up instead.
    """
    target = webui_dir / WEBUI_CONSTANTS_PATH
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(render_webui_constants(version, is_release), encoding="utf-8")
    safe_delete(webui_dir / LEGACY_WEBUI_CONSTANTS_PATH)
    return target


def build_webui(runner: CommandRunner, webui_dir: Path, version: str, release: bool) -> None:
    """
    Build the web UI: generate constants, then `pnpm install` and `pnpm run build`.

    The bundler's own config decides where the output lands (inside module/),
    so the build has nothing to copy afterwards.

    Raises:
        ToolFailedError: If either pnpm step exits non-zero.
    """
    _logger.info("Building WebUI", extra={"webui_dir": str(webui_dir), "release": release})
    write_webui_constants(webui_dir, version, release)

    pnpm = pnpm_executable()
    check(runner.run(pnpm, ("install",), cwd=webui_dir), "pnpm install")
    check(runner.run(pnpm, ("run", "build"), cwd=webui_dir), "pnpm run build")


def compile_core(
    runner: CommandRunner,
    project_root: Path,
    arch: Architecture,
    release: bool,
    ndk_platform: int = 31,
) -> None:
    """
    Cross-compile the native core for one architecture with cargo-ndk.

    Raises:
        ToolFailedError: If cargo exits non-zero.
    """
    _logger.info("Compiling core", extra={"arch": arch.token, "profile": profile_name(release)})
    args = ["ndk", "--platform", str(ndk_platform), "-t", arch.token, "build", "-Z", "build-std"]
    if release:
        args.append("-r")
    result = runner.run("cargo", args, cwd=project_root, env=COMPILE_ENV)
    check(result, "cargo ndk build", arch=arch.token)


def run_lint(runner: CommandRunner, project_root: Path, env: Optional[Mapping[str, str]] = None) -> None:
    """
    Run clippy with warnings denied. Any diagnostic fails the lint.

    Raises:
        ToolFailedError: If clippy exits non-zero.
    """
    _logger.info("Running clippy")
    result = runner.run(cargo_executable(env), CLIPPY_ARGS, cwd=project_root)
    check(result, "cargo clippy")
    _logger.info("Clippy checks passed")
