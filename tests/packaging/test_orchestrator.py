# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
End-to-end tests for the build pipeline with a fake toolchain.

The fake runner stands in for git, pnpm and cargo. Binaries are pre-placed
where cargo would have put them, so every other step (cleaning, staging,
patching, zipping) runs for real against a temp project.
"""

import logging
import zipfile
from pathlib import Path

import pytest

from modpack.config.schema import BuildConfig
from modpack.packaging.arch import Architecture
from modpack.packaging.exceptions import ToolFailedError
from modpack.packaging.orchestrator import BuildOptions, BuildOrchestrator, BuildStage
from modpack.packaging.runner import CommandResult
from modpack.packaging.version import derive_version_code

ENV = {"MODPACK_VERSION": "1.2.3-dev"}


def _orchestrator(project: Path, runner, **config) -> BuildOrchestrator:
    return BuildOrchestrator(project, BuildConfig(**config), runner=runner, env=ENV)


def _names(archive: Path) -> set[str]:
    with zipfile.ZipFile(archive) as zf:
        return set(zf.namelist())


class TestFullBuild:
    def test_produces_versioned_archive(self, project_dir: Path, fake_runner) -> None:
        result = _orchestrator(project_dir, fake_runner).run(BuildOptions())

        assert result.stage is BuildStage.DONE
        assert result.archive is not None
        assert result.archive.path == project_dir / "output" / "Meta-Hybrid-1.2.3-dev.zip"
        names = _names(result.archive.path)
        for arch in Architecture:
            assert f"binaries/{arch.token}/meta-hybrid" in names
        assert "customize.sh" in names
        assert "empty/" in names
        assert ".gitignore" not in names

    def test_manifest_is_patched_inside_archive(self, project_dir: Path, fake_runner) -> None:
        result = _orchestrator(project_dir, fake_runner).run(BuildOptions())

        with zipfile.ZipFile(result.archive.path) as zf:
            lines = zf.read("module.prop").decode("utf-8").split("\n")
        assert lines == [
            "id=meta_hybrid",
            "name=Meta Hybrid",
            "version=1.2.3-dev",
            f"versionCode={derive_version_code('1.2.3-dev')}",
            "# comment",
        ]

    def test_source_manifest_is_untouched(self, project_dir: Path, fake_runner) -> None:
        before = (project_dir / "module" / "module.prop").read_bytes()
        _orchestrator(project_dir, fake_runner).run(BuildOptions())
        assert (project_dir / "module" / "module.prop").read_bytes() == before

    def test_stage_history(self, project_dir: Path, fake_runner) -> None:
        result = _orchestrator(project_dir, fake_runner).run(BuildOptions())

        assert result.history == [
            BuildStage.CLEAN,
            BuildStage.VERSION_RESOLVED,
            BuildStage.WEB_BUILT,
            BuildStage.COMPILED,
            BuildStage.COMPILED,
            BuildStage.COMPILED,
            BuildStage.STAGED,
            BuildStage.MANIFEST_PATCHED,
            BuildStage.PACKAGED,
            BuildStage.DONE,
        ]

    def test_commands_run_in_pipeline_order(self, project_dir: Path, fake_runner) -> None:
        _orchestrator(project_dir, fake_runner).run(BuildOptions(release=False))

        commands = fake_runner.commands()
        assert [cmd.split(" ", 1)[1] for cmd in commands[:2]] == ["install", "run build"]
        targets = [call.args[4] for call in fake_runner.calls if call.command == "cargo"]
        assert targets == ["arm64-v8a", "armeabi-v7a", "x86_64"]

    def test_rebuild_leaves_no_stale_files(self, project_dir: Path, fake_runner) -> None:
        orchestrator = _orchestrator(project_dir, fake_runner)
        orchestrator.run(BuildOptions())
        stale = project_dir / "output" / "staging" / "stale.txt"
        stale.write_text("left over", encoding="utf-8")
        old_zip = project_dir / "output" / "Meta-Hybrid-old.zip"
        old_zip.write_bytes(b"")

        result = orchestrator.run(BuildOptions())

        assert not stale.exists()
        assert not old_zip.exists()
        assert "stale.txt" not in _names(result.archive.path)

    def test_rebuild_is_byte_identical(self, project_dir: Path, fake_runner) -> None:
        first = _orchestrator(project_dir, fake_runner).run(BuildOptions()).archive.sha256
        second = _orchestrator(project_dir, fake_runner).run(BuildOptions()).archive.sha256
        assert first == second


class TestPartialBuilds:
    def test_missing_binary_is_packaged_without_it(self, project_dir: Path, fake_runner, log_records) -> None:
        (project_dir / "target" / Architecture.ARM.triple / "debug" / "meta-hybrid").unlink()

        result = _orchestrator(project_dir, fake_runner).run(BuildOptions())

        assert result.stage is BuildStage.DONE
        assert result.staging.missing == (Architecture.ARM,)
        names = _names(result.archive.path)
        assert "binaries/arm64-v8a/meta-hybrid" in names
        assert "binaries/x86_64/meta-hybrid" in names
        assert "binaries/armeabi-v7a/meta-hybrid" not in names
        assert len(log_records.at_level(logging.WARNING)) == 1

    def test_skip_webui_runs_no_bundler(self, project_dir: Path, fake_runner) -> None:
        result = _orchestrator(project_dir, fake_runner).run(BuildOptions(skip_webui=True))

        assert result.stage is BuildStage.DONE
        assert not fake_runner.invoked("pnpm")
        assert not fake_runner.invoked("pnpm.cmd")
        assert BuildStage.WEB_BUILT not in result.history
        assert not (project_dir / "webui" / "src").exists()

    def test_single_architecture(self, project_dir: Path, fake_runner) -> None:
        result = _orchestrator(project_dir, fake_runner).run(
            BuildOptions(skip_webui=True, architectures=[Architecture.X86_64])
        )

        names = _names(result.archive.path)
        assert "binaries/x86_64/meta-hybrid" in names
        assert not any(name.startswith("binaries/arm64-v8a/") for name in names)
        assert [call.args[4] for call in fake_runner.calls if call.command == "cargo"] == ["x86_64"]

    def test_config_default_architectures(self, project_dir: Path, fake_runner) -> None:
        orchestrator = _orchestrator(project_dir, fake_runner, architectures=["arm64"])
        result = orchestrator.run(BuildOptions(skip_webui=True))
        assert result.staging.staged == (Architecture.ARM64,)

    def test_release_profile_binaries(self, project_dir: Path, fake_runner) -> None:
        for arch in Architecture:
            path = project_dir / "target" / arch.triple / "release" / "meta-hybrid"
            path.parent.mkdir(parents=True)
            path.write_bytes(f"RELEASE-{arch.token}".encode("utf-8"))

        result = _orchestrator(project_dir, fake_runner).run(BuildOptions(release=True, skip_webui=True))

        with zipfile.ZipFile(result.archive.path) as zf:
            assert zf.read("binaries/arm64-v8a/meta-hybrid") == b"RELEASE-arm64-v8a"


class TestFailures:
    def test_compile_failure_aborts_without_archive(self, project_dir: Path, fake_runner) -> None:
        fake_runner.results["cargo ndk --platform 31 -t armeabi-v7a"] = CommandResult(101)
        orchestrator = _orchestrator(project_dir, fake_runner)

        with pytest.raises(ToolFailedError) as excinfo:
            orchestrator.run(BuildOptions(skip_webui=True))

        assert excinfo.value.arch == "armeabi-v7a"
        assert orchestrator.stage is BuildStage.FAILED
        assert not list((project_dir / "output").glob("*.zip"))
        targets = [call.args[4] for call in fake_runner.calls if call.command == "cargo"]
        assert targets == ["arm64-v8a", "armeabi-v7a"]

    def test_webui_failure_aborts_before_compiling(self, project_dir: Path, fake_runner) -> None:
        fake_runner.results["pnpm run"] = CommandResult(1)
        fake_runner.results["pnpm.cmd run"] = CommandResult(1)

        with pytest.raises(ToolFailedError, match="pnpm run build"):
            _orchestrator(project_dir, fake_runner).run(BuildOptions())
        assert not fake_runner.invoked("cargo")

    def test_missing_module_dir_is_fatal(self, project_dir: Path, fake_runner) -> None:
        from modpack.packaging.exceptions import StagingError

        orchestrator = _orchestrator(project_dir, fake_runner, directories={"module": "nope"})
        with pytest.raises(StagingError):
            orchestrator.run(BuildOptions(skip_webui=True))
        assert orchestrator.history[-1] is BuildStage.FAILED


class TestDryRun:
    def test_dry_run_builds_nothing(self, project_dir: Path, fake_runner) -> None:
        (project_dir / "output").mkdir()
        (project_dir / "output" / "keep.zip").write_bytes(b"")

        result = _orchestrator(project_dir, fake_runner).run(BuildOptions(dry_run=True))

        assert result.stage is BuildStage.VERSION_RESOLVED
        assert result.version.version == "1.2.3-dev"
        assert result.archive is None
        assert (project_dir / "output" / "keep.zip").exists()
        assert fake_runner.calls == []
