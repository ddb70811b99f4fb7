# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Shared pytest fixtures for modpack tests.

Fixtures here are available to every test file automatically. The important
ones are `fake_runner`, which records commands instead of spawning them, and
`project_dir`, a minimal project tree with module/, Cargo.toml and compiled
binaries for every architecture.
"""

import logging
import textwrap
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Sequence

import pytest

from modpack.packaging.arch import Architecture
from modpack.packaging.runner import CommandResult

BINARY_NAME = "meta-hybrid"


@dataclass
class RecordedCommand:
    command: str
    args: tuple[str, ...]
    cwd: Optional[Path]
    env: Optional[dict[str, str]]
    capture: bool


@dataclass
class FakeRunner:
    """
    CommandRunner that records every call and answers from a script.

    `results` maps a key to a CommandResult. The key is tried as
    "command arg0 arg1 ...", then progressively shorter prefixes down to just
    the command name. Anything unmatched exits 0 with empty output, except
    `git`, which fails by default so version resolution falls through unless
    a test says otherwise.
    """

    results: dict[str, CommandResult] = field(default_factory=dict)
    calls: list[RecordedCommand] = field(default_factory=list)

    def run(
        self,
        command: str,
        args: Sequence[str] = (),
        cwd: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
        capture: bool = False,
    ) -> CommandResult:
        args = tuple(args)
        self.calls.append(
            RecordedCommand(command, args, cwd, dict(env) if env else None, capture)
        )
        words = [command, *args]
        for end in range(len(words), 0, -1):
            key = " ".join(words[:end])
            if key in self.results:
                return self.results[key]
        if command == "git":
            return CommandResult(returncode=128)
        return CommandResult(returncode=0)

    def commands(self) -> list[str]:
        return [" ".join([call.command, *call.args]) for call in self.calls]

    def invoked(self, command: str) -> bool:
        return any(call.command == command for call in self.calls)


@pytest.fixture()
def fake_runner() -> FakeRunner:
    return FakeRunner()


def write_binary(project: Path, arch: Architecture, release: bool = False) -> Path:
    profile = "release" if release else "debug"
    path = project / "target" / arch.triple / profile / BINARY_NAME
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(f"ELF-{arch.token}".encode("utf-8"))
    return path


@pytest.fixture()
def project_dir(tmp_path: Path) -> Path:
    """
    A minimal project laid out the way the build expects.

    module/ carries a manifest, an install script, a .gitignore marker and an
    empty directory. Debug binaries exist for every architecture.
    """
    project = tmp_path / "project"
    module = project / "module"
    (module / "webroot").mkdir(parents=True)
    (module / "webroot" / "index.html").write_text("<html></html>", encoding="utf-8")
    (module / "empty").mkdir()
    (module / "customize.sh").write_text("ui_print hello\n", encoding="utf-8")
    (module / ".gitignore").write_text("webroot/\n", encoding="utf-8")
    (module / "module.prop").write_text(
        textwrap.dedent("""\
            id=meta_hybrid
            name=Meta Hybrid
            version=0.0.0
            versionCode=1
            # comment
        """),
        encoding="utf-8",
    )
    (project / "Cargo.toml").write_text(
        textwrap.dedent("""\
            [package]
            name = "meta-hybrid"
            version = "0.4.2"
            edition = "2021"
        """),
        encoding="utf-8",
    )
    (project / "webui").mkdir()
    for arch in Architecture:
        write_binary(project, arch)
    return project


class ListHandler(logging.Handler):
    """Collects records so tests can assert on what was logged."""

    def __init__(self) -> None:
        super().__init__(level=logging.DEBUG)
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)

    def at_level(self, level: int) -> list[logging.LogRecord]:
        return [record for record in self.records if record.levelno == level]


@pytest.fixture()
def log_records():
    """Attach a ListHandler to every modpack.packaging logger for the test's duration."""
    handler = ListHandler()
    names = [
        "modpack.packaging.staging",
        "modpack.packaging.orchestrator",
        "modpack.packaging.version",
        "modpack.packaging.manifest",
        "modpack.packaging.archive",
        "modpack.packaging.toolchain",
    ]
    loggers = [logging.getLogger(name) for name in names]
    for logger in loggers:
        logger.addHandler(handler)
    yield handler
    for logger in loggers:
        logger.removeHandler(handler)


@pytest.fixture()
def tmp_config_file(tmp_path: Path) -> Path:
    """A small valid config YAML file in a temp directory."""
    config_content = textwrap.dedent("""\
        global:
          config_version: "1.0.0"
          log_level: "DEBUG"
        build:
          product_name: "Test-Module"
    """)
    config_file = tmp_path / "test_config.yaml"
    config_file.write_text(config_content, encoding="utf-8")
    return config_file


@pytest.fixture()
def broken_yaml_file(tmp_path: Path) -> Path:
    """A file that isn't valid YAML at all."""
    config_file = tmp_path / "broken.yaml"
    config_file.write_text("{{not: yaml: at: all:::", encoding="utf-8")
    return config_file
