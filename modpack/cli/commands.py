# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Subcommand handlers for the modpack CLI.

Each function here corresponds to one CLI subcommand, takes the parsed
argparse namespace and returns an exit code. Exceptions stop here: every
failure is logged with enough context to act on and mapped to one of the codes
in exit_codes.py.

No print() calls. Everything goes through the structured logger.
"""

import argparse
import logging
from pathlib import Path

from modpack.cli.exit_codes import CONFIG_ERROR, RUNTIME_ERROR, SUCCESS, USER_ERROR, VALIDATION_ERROR
from modpack.config.exceptions import ConfigError
from modpack.config.loader import default_config, load_config
from modpack.config.schema import ModpackConfig
from modpack.logging.logger import get_logger
from modpack.packaging.exceptions import ModpackError, ToolFailedError
from modpack.runtime.bootstrap import bootstrap


def _resolve_project_root(args: argparse.Namespace) -> Path:
    """The directory every configured path is relative to. Defaults to the working directory."""
    if args.project_root is not None:
        return Path(args.project_root).resolve()
    return Path.cwd()


def _load_and_bootstrap(
    args: argparse.Namespace,
    command_name: str,
) -> tuple[int, ModpackConfig | None, logging.Logger, Path]:
    """
    The shared setup that every command needs: load config, run bootstrap.

    Returns a tuple of (exit_code, config, logger, project_root). If exit_code
    is not SUCCESS, the caller should return it immediately; something went
    wrong during setup.
    """
    logger = get_logger(f"modpack.cli.{command_name}", log_level=args.log_level)
    project_root = _resolve_project_root(args)

    if not project_root.is_dir():
        logger.error(
            "Project root is not a directory",
            extra={"command": command_name, "project_root": str(project_root)},
        )
        return USER_ERROR, None, logger, project_root

    config = default_config()
    if args.config is not None:
        config_path = Path(args.config)
        if not config_path.is_absolute():
            config_path = project_root / config_path
        try:
            config = load_config(config_path)
        except ConfigError as err:
            logger.error(
                "Configuration error",
                extra={"command": command_name, "error": str(err)},
            )
            return CONFIG_ERROR, None, logger, project_root

    try:
        bootstrap(config.global_config, project_root, log_level=args.log_level)
    except RuntimeError as err:
        logger.error("Environment check failed", extra={"command": command_name, "error": str(err)})
        return RUNTIME_ERROR, None, logger, project_root

    logger = get_logger(f"modpack.cli.{command_name}")
    return SUCCESS, config, logger, project_root


def handle_build(args: argparse.Namespace) -> int:
    """Clean, version, compile, stage, patch, and zip the module."""
    exit_code, config, logger, project_root = _load_and_bootstrap(args, "build")
    if exit_code != SUCCESS or config is None:
        return exit_code

    from modpack.packaging.arch import Architecture
    from modpack.packaging.orchestrator import BuildOptions, BuildOrchestrator

    architectures = None
    if args.arch is not None:
        architectures = [Architecture.parse(args.arch)]

    options = BuildOptions(
        release=args.release,
        skip_webui=args.skip_webui,
        architectures=architectures,
        dry_run=args.dry_run,
    )

    try:
        result = BuildOrchestrator(project_root, config.build).run(options)
    except ToolFailedError as err:
        logger.error(
            "Build aborted: external tool failed",
            extra={"tool": err.tool, "arch": err.arch, "returncode": err.returncode, "error": str(err)},
        )
        return RUNTIME_ERROR
    except (ModpackError, OSError) as err:
        logger.error(
            f"Build aborted: {type(err).__name__}",
            extra={"error_type": type(err).__name__, "error": str(err)},
        )
        return RUNTIME_ERROR
    except Exception as err:
        logger.error("Build failed", extra={"error": str(err)}, exc_info=True)
        return RUNTIME_ERROR

    if result.archive is not None:
        logger.info(
            "Build finished",
            extra={"archive": str(result.archive.path), "version": result.version.version if result.version else None},
        )
    return SUCCESS


def handle_lint(args: argparse.Namespace) -> int:
    """Run clippy over the whole workspace with warnings denied."""
    exit_code, config, logger, project_root = _load_and_bootstrap(args, "lint")
    if exit_code != SUCCESS:
        return exit_code

    from modpack.packaging.runner import SubprocessRunner
    from modpack.packaging.toolchain import run_lint

    if args.dry_run:
        logger.info("Dry run, would run clippy", extra={"project_root": str(project_root)})
        return SUCCESS

    try:
        run_lint(SubprocessRunner(), project_root)
    except ToolFailedError as err:
        logger.error(
            "Clippy found issues! Please fix them before committing.",
            extra={"returncode": err.returncode},
        )
        return VALIDATION_ERROR
    except Exception as err:
        logger.error("Lint failed", extra={"error": str(err)}, exc_info=True)
        return RUNTIME_ERROR

    return SUCCESS
