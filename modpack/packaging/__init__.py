# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Build and packaging subsystem for modpack.

Resolves the release version, drives the external toolchain (web UI bundler,
cargo-ndk, clippy), assembles the staging tree, patches module.prop, and writes
the final module zip. Every run is a full clean rebuild. The same inputs give
the same archive bytes.
"""
