# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Type-safe configuration schemas for modpack.

Every config section gets its own frozen pydantic model. Frozen means once you
create it, you cannot mutate it. The build reads its settings once and never
changes them halfway through a run.

The models use pydantic v2's ConfigDict with:
  - frozen=True: immutability after construction
  - extra="forbid": unknown fields cause immediate failure
  - validate_default=True: even defaults get type-checked

Every field has a default that matches the project layout the tool was written
for, so running without a config file is the normal case. A YAML file only needs
to list what differs.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from modpack.packaging.arch import Architecture


class GlobalConfig(BaseModel):
    """Cross-cutting settings: schema version and observability."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    config_version: str = Field(
        default="1.0.0",
        description="Schema version for compatibility tracking, e.g. '1.0.0'",
    )
    log_level: str = Field(
        default="INFO",
        description="One of DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )
    log_file: Optional[str] = Field(
        default=None,
        description="Optional path for file-based log output, relative to project root",
    )

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        upper = value.upper()
        if upper not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level '{value}'")
        return upper


class DirectoryConfig(BaseModel):
    """Paths the pipeline reads from and writes to, all relative to project root."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    module: str = Field(default="module", description="Packaging scripts and metadata overlay")
    webui: str = Field(default="webui", description="Web UI project built with pnpm")
    target: str = Field(default="target", description="Cargo build output root")
    output: str = Field(default="output", description="Wiped and rebuilt on every invocation")


class BuildConfig(BaseModel):
    """
    Everything the build pipeline needs to know about the project it packages.

    The env var names are configurable so that two projects sharing a CI runner
    don't have to share an override variable.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    product_name: str = Field(
        default="Meta-Hybrid",
        min_length=1,
        description="Archive file prefix: <product_name>-<version>.zip",
    )
    binary_name: str = Field(
        default="meta-hybrid",
        min_length=1,
        description="Name of the compiled executable, in target/ and in the staged tree",
    )
    directories: DirectoryConfig = Field(default_factory=DirectoryConfig)
    version_file: str = Field(
        default="Cargo.toml",
        description="Fallback source for the version string (first `version = \"...\"` line)",
    )
    manifest_name: str = Field(
        default="module.prop",
        description="Key/value manifest patched in the staging root",
    )
    version_env: str = Field(default="MODPACK_VERSION", min_length=1)
    version_code_env: str = Field(default="MODPACK_VERSION_CODE", min_length=1)
    exclusion_markers: list[str] = Field(
        default_factory=lambda: [".gitignore"],
        description="Development files removed from the staging root before archiving",
    )
    ndk_platform: int = Field(default=31, ge=21, description="Android API level passed to cargo ndk")
    architectures: list[str] = Field(
        default_factory=lambda: [arch.token for arch in Architecture],
        min_length=1,
        description="Architectures built when --arch is not given",
    )

    @field_validator("architectures")
    @classmethod
    def _check_architectures(cls, value: list[str]) -> list[str]:
        # Normalise aliases to tokens so the rest of the pipeline sees one spelling.
        return [Architecture.parse(name).token for name in value]

    def selected_architectures(self) -> list[Architecture]:
        return [Architecture.parse(token) for token in self.architectures]


class ModpackConfig(BaseModel):
    """
    Top-level config container.

    A YAML file may contain just `global:`, just `build:`, both, or nothing at
    all. Missing sections fall back to their defaults.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    global_config: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    build: BuildConfig = Field(default_factory=BuildConfig)
