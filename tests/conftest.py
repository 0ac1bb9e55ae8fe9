"""Pytest configuration and fixtures for Duplicator tests."""

from __future__ import annotations

import pathlib
from typing import Iterable, List, Optional

import pytest

from duplicator.build.builder import Builder
from duplicator.build.config import PlatformTarget
from duplicator.build.engine import BuildPlayerOptions, EngineResult
from duplicator.build.paths import get_build_root


def write_fake_build(options: BuildPlayerOptions) -> None:
    """Write the files an engine would produce for a build request."""
    if options.target == PlatformTarget.WEBGL:
        out = options.location
        (out / "Build").mkdir(parents=True)
        (out / "Build" / "game.wasm").write_bytes(b"\0asm")
        (out / "TemplateData").mkdir()
        (out / "TemplateData" / "style.css").write_text("body {}")
        (out / "index.html").write_text("<html></html>")
        return

    out = options.location.parent
    out.mkdir(parents=True, exist_ok=True)
    options.location.write_bytes(b"player")
    data = out / f"{options.location.stem}_Data"
    (data / "Managed").mkdir(parents=True)
    (data / "level0").write_bytes(b"level")
    (data / "Managed" / "Assembly.dll").write_bytes(b"dll")


class FakeEngine:
    """In-memory build engine that records requests."""

    def __init__(
            self,
            installed: Optional[Iterable[PlatformTarget]] = None,
            fail_message: Optional[str] = None,
            raise_error: Optional[Exception] = None,
    ) -> None:
        if installed is None:
            installed = [target for target in PlatformTarget if target != PlatformTarget.NONE]
        self.installed = set(installed)
        self.fail_message = fail_message
        self.raise_error = raise_error
        self.calls: List[BuildPlayerOptions] = []

    def is_module_installed(self, target: PlatformTarget) -> bool:
        return target in self.installed

    def build_player(self, options: BuildPlayerOptions) -> EngineResult:
        self.calls.append(options)
        if self.raise_error is not None:
            raise self.raise_error
        if self.fail_message is not None:
            return EngineResult(success=False, message=self.fail_message)
        write_fake_build(options)
        return EngineResult(success=True)


@pytest.fixture
def project_root(tmp_path: pathlib.Path) -> pathlib.Path:
    """Create an empty engine project."""
    root = tmp_path / "project"
    (root / "Assets").mkdir(parents=True)
    (root / "ProjectSettings").mkdir()
    return root


@pytest.fixture
def build_root(project_root: pathlib.Path) -> pathlib.Path:
    """Build folder of the test project (not created yet)."""
    return get_build_root(project_root)


@pytest.fixture
def engine() -> FakeEngine:
    """Engine with every target module installed."""
    return FakeEngine()


@pytest.fixture
def builder(engine: FakeEngine, build_root: pathlib.Path) -> Builder:
    """Builder wired to the fake engine."""
    return Builder(engine, build_root, scene_provider=lambda: ["Assets/Scenes/Main.unity"])


@pytest.fixture
def engine_factory():
    """Factory for engines with custom modules or failures."""
    return FakeEngine
