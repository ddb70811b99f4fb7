# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
CLI entrypoint for modpack.

This is the single root command. Every operation is a subcommand of `modpack`.
There are no interactive prompts: the tool runs the same on a laptop and in CI.

The global options (--config, --log-level, --dry-run, --project-root) are
inherited by every subcommand through argparse's parent parser mechanism.

Usage:
    modpack <subcommand> [options]
    modpack build --release
    modpack build --skip-webui --arch arm64
    modpack lint
"""

import argparse
import sys

from modpack.cli.commands import handle_build, handle_lint
from modpack.cli.exit_codes import USER_ERROR
from modpack.packaging.arch import choices


def _build_global_parser() -> argparse.ArgumentParser:
    """
    Build the parent parser with global options.

    These options get inherited by every subcommand. We use a separate parent
    parser (with add_help=False) so that help text doesn't collide between the
    parent and the subcommand parsers.
    """
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to YAML configuration file (relative paths are taken from the project root).",
    )
    parent.add_argument(
        "--log-level",
        type=str,
        default=None,
        dest="log_level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging verbosity level (overrides the config file).",
    )
    parent.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        dest="dry_run",
        help="Resolve the version and show what would be built, without building.",
    )
    parent.add_argument(
        "--project-root",
        type=str,
        default=None,
        dest="project_root",
        help="Project directory (default: current working directory).",
    )
    return parent


def _register_subcommands(
    subparsers: argparse._SubParsersAction,  # type: ignore[type-arg]
    parent: argparse.ArgumentParser,
) -> None:
    """
    Register both subcommands with their handler functions.

    Each subcommand gets the global options from the parent parser and sets
    its handler function via set_defaults(func=...).
    """
    build_parser = subparsers.add_parser(
        "build",
        parents=[parent],
        help="Build all components and package the module zip.",
    )
    build_parser.add_argument(
        "--release",
        action="store_true",
        default=False,
        help="Compile with the release profile and mark the web UI as a release build.",
    )
    build_parser.add_argument(
        "--skip-webui",
        action="store_true",
        default=False,
        dest="skip_webui",
        help="Do not run the web UI install and build steps.",
    )
    build_parser.add_argument(
        "--arch",
        type=str,
        default=None,
        choices=choices(),
        help="Build only this architecture (default: all).",
    )
    build_parser.set_defaults(func=handle_build)

    lint_parser = subparsers.add_parser(
        "lint",
        parents=[parent],
        help="Run clippy with warnings treated as errors.",
    )
    lint_parser.set_defaults(func=handle_lint)


def main() -> None:
    """
    Main CLI entrypoint. This is what pyproject.toml's [project.scripts] points to.

    If no subcommand is given, we show help and exit with USER_ERROR.
    """
    parent = _build_global_parser()

    root_parser = argparse.ArgumentParser(
        prog="modpack",
        description="modpack: build and package the root module zip.",
        parents=[parent],
    )
    subparsers = root_parser.add_subparsers(dest="command")
    _register_subcommands(subparsers, parent)

    args = root_parser.parse_args()

    if not hasattr(args, "func") or args.func is None:
        root_parser.print_help()
        sys.exit(USER_ERROR)

    exit_code = args.func(args)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
