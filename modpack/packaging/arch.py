# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Target architectures for the native core.

Each member carries two names:
  token  — the Android ABI name. Used for `cargo ndk -t`, for the staged
           `binaries/<token>/` directory the module installer looks in, and
           for CLI selection.
  triple — the Rust target triple, which is where cargo puts the build output.

Adding an architecture means adding one member here and nothing else.
"""

from enum import Enum


class Architecture(Enum):
    ARM64 = ("arm64-v8a", "aarch64-linux-android", "arm64")
    ARM = ("armeabi-v7a", "armv7-linux-androideabi", "arm")
    X86_64 = ("x86_64", "x86_64-linux-android", "x86_64")

    def __init__(self, token: str, triple: str, alias: str) -> None:
        self._token = token
        self._triple = triple
        self._alias = alias

    @property
    def token(self) -> str:
        return self._token

    @property
    def triple(self) -> str:
        return self._triple

    @property
    def alias(self) -> str:
        return self._alias

    @classmethod
    def parse(cls, name: str) -> "Architecture":
        """
        Look up an architecture by ABI token or short alias (`arm64`, `arm`, `x86_64`).

        Raises:
            ValueError: If the name matches no known architecture.
        """
        lowered = name.strip().lower()
        for arch in cls:
            if lowered in (arch.token, arch.alias):
                return arch
        raise ValueError(
            f"Unknown architecture '{name}'. Expected one of: {', '.join(choices())}"
        )


ALL_ARCHITECTURES: tuple[Architecture, ...] = tuple(Architecture)


def choices() -> list[str]:
    """Every name the CLI accepts, tokens first, then aliases not already listed."""
    names = [arch.token for arch in Architecture]
    names.extend(arch.alias for arch in Architecture if arch.alias not in names)
    return names
