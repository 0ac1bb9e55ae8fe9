"""Build system for Duplicator.

This package builds a project for each configured target platform and
packages every build into a platform-appropriate archive.

Modules:
    builder: Pipeline that builds and packages a profile
    config: Build profiles, target platforms and packaging policies
    paths: Build root, settings and output path resolution
    engine: Build engine protocol, capability checks and invocation
    archiver: Zip and tarball packaging of finished builds
    scenes: Scene list lookup from project settings
    store: Loading and saving of build profiles
    cli: Command-line interface for the build system
"""

from __future__ import annotations

from duplicator.build.builder import Builder, PipelineResult, PipelineStage, PipelineState
from duplicator.build.config import BuildOption, BuildProfile, PlatformTarget
from duplicator.build.store import ProfileStore
from duplicator.build.cli import main as build_cli

__all__ = [
    "Builder",
    "PipelineResult",
    "PipelineStage",
    "PipelineState",
    "BuildOption",
    "BuildProfile",
    "PlatformTarget",
    "ProfileStore",
    "build_cli",
]
