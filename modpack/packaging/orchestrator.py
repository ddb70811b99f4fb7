# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Build orchestration: one full, clean module build per call.

The pipeline is a straight line:

    CLEAN → VERSION_RESOLVED → [WEB_BUILT] → COMPILED (per arch) → STAGED
          → MANIFEST_PATCHED → PACKAGED → DONE

The web UI step is skipped with `skip_webui`. The compile step runs once per
selected architecture, and each architecture's binary is staged right after it
is compiled. Any tool failure or filesystem error moves the build to FAILED
and is re-raised. Nothing after the failing step runs, so a failed build never
leaves an archive behind.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Mapping, Optional, Sequence

from modpack.config.schema import BuildConfig
from modpack.logging.logger import get_logger
from modpack.packaging.arch import Architecture
from modpack.packaging.archive import ArchiveResult, archive_name, create_archive
from modpack.packaging.exceptions import ModpackError
from modpack.packaging.manifest import patch_manifest
from modpack.packaging.runner import CommandRunner, SubprocessRunner
from modpack.packaging.staging import (
    STAGING_DIR_NAME,
    StagingResult,
    assemble_staging,
    prepare_output_root,
)
from modpack.packaging.toolchain import binary_path, build_webui, compile_core
from modpack.packaging.version import VersionInfo, resolve_version

_logger: logging.Logger = get_logger(__name__)


class BuildStage(str, Enum):
    CLEAN = "clean"
    VERSION_RESOLVED = "version_resolved"
    WEB_BUILT = "web_built"
    COMPILED = "compiled"
    STAGED = "staged"
    MANIFEST_PATCHED = "manifest_patched"
    PACKAGED = "packaged"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class BuildOptions:
    """Per-invocation switches, straight from the CLI."""

    release: bool = False
    skip_webui: bool = False
    architectures: Optional[Sequence[Architecture]] = None
    dry_run: bool = False


@dataclass
class BuildResult:
    """Everything a finished (or dry-run) build produced."""

    stage: BuildStage
    version: Optional[VersionInfo] = None
    staging: Optional[StagingResult] = None
    archive: Optional[ArchiveResult] = None
    history: list[BuildStage] = field(default_factory=list)


class BuildOrchestrator:
    """
    Runs the build pipeline against a project directory.

    Args:
        project_root: Directory all configured paths are relative to.
        config: Build settings (paths, names, env var names, defaults).
        runner: Process runner. Tests pass a fake.
        env: Environment for version overrides. Defaults to os.environ.
    """

    def __init__(
        self,
        project_root: Path,
        config: Optional[BuildConfig] = None,
        runner: Optional[CommandRunner] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.project_root = project_root
        self.config = config or BuildConfig()
        self.runner: CommandRunner = runner or SubprocessRunner()
        self.env = env
        self.stage = BuildStage.CLEAN
        self.history: list[BuildStage] = []

    def _path(self, relative: str) -> Path:
        return self.project_root / relative

    @property
    def output_root(self) -> Path:
        return self._path(self.config.directories.output)

    def _advance(self, stage: BuildStage, **context: object) -> None:
        self.stage = stage
        self.history.append(stage)
        _logger.debug("Build stage reached", extra={"stage": stage.value, **context})

    def _selected(self, options: BuildOptions) -> list[Architecture]:
        if options.architectures:
            return list(options.architectures)
        return self.config.selected_architectures()

    def run(self, options: Optional[BuildOptions] = None) -> BuildResult:
        """
        Execute the whole pipeline.

        Returns:
            BuildResult at stage DONE (or VERSION_RESOLVED for a dry run).

        Raises:
            ToolFailedError: A subprocess exited non-zero.
            StagingError / ArchiveError: A filesystem step failed.
            OSError: Writing the generated web UI constants failed.
        """
        options = options or BuildOptions()
        self.stage = BuildStage.CLEAN
        self.history = []
        try:
            return self._run(options)
        except (ModpackError, OSError) as err:
            failed_at = self.stage
            self._advance(BuildStage.FAILED)
            _logger.error(
                "Build failed",
                extra={"failed_after": failed_at.value, "error": str(err)},
            )
            raise

    def _run(self, options: BuildOptions) -> BuildResult:
        archs = self._selected(options)
        cfg = self.config
        _logger.info(
            "Build started",
            extra={
                "release": options.release,
                "skip_webui": options.skip_webui,
                "architectures": [arch.token for arch in archs],
                "dry_run": options.dry_run,
            },
        )

        if not options.dry_run:
            staging_root = prepare_output_root(self.output_root, self.project_root)
        else:
            staging_root = self.output_root / STAGING_DIR_NAME
        self._advance(BuildStage.CLEAN)

        version = resolve_version(
            self.runner,
            self.project_root,
            self._path(cfg.version_file),
            version_env=cfg.version_env,
            version_code_env=cfg.version_code_env,
            env=self.env,
        )
        self._advance(BuildStage.VERSION_RESOLVED, version=version.version)

        if options.dry_run:
            _logger.info(
                "Dry run, nothing built",
                extra={
                    "would_write": str(self.output_root / archive_name(cfg.product_name, version.version)),
                    "webui": not options.skip_webui,
                    "architectures": [arch.token for arch in archs],
                },
            )
            return BuildResult(stage=self.stage, version=version, history=list(self.history))

        if not options.skip_webui:
            build_webui(self.runner, self._path(cfg.directories.webui), version.version, options.release)
            self._advance(BuildStage.WEB_BUILT)

        def compile_arch(arch: Architecture) -> None:
            compile_core(self.runner, self.project_root, arch, options.release, cfg.ndk_platform)
            self._advance(BuildStage.COMPILED, arch=arch.token)

        target_dir = self._path(cfg.directories.target)
        staging = assemble_staging(
            staging_root,
            [(arch, binary_path(target_dir, arch, cfg.binary_name, options.release)) for arch in archs],
            self._path(cfg.directories.module),
            exclusion_markers=cfg.exclusion_markers,
            before_each=compile_arch,
        )
        self._advance(BuildStage.STAGED)

        _logger.info("Injecting version", extra={"version": version.version})
        patch_manifest(staging_root / cfg.manifest_name, version)
        self._advance(BuildStage.MANIFEST_PATCHED)

        archive = create_archive(staging_root, self.output_root / archive_name(cfg.product_name, version.version))
        self._advance(BuildStage.PACKAGED)

        self._advance(BuildStage.DONE)
        _logger.info(
            "Build complete",
            extra={
                "archive": str(archive.path),
                "sha256": archive.sha256,
                "staged": [arch.token for arch in staging.staged],
                "missing": [arch.token for arch in staging.missing],
            },
        )
        return BuildResult(
            stage=self.stage,
            version=version,
            staging=staging,
            archive=archive,
            history=list(self.history),
        )
