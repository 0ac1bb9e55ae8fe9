"""Builder that runs the build-and-package pipeline for build profiles.

This module contains the Builder class that checks the target module,
resolves output paths, cleans stale output, runs the build engine and
archives the result, turning a failure at any stage into a reported result.
"""

from __future__ import annotations

import enum
import logging
import pathlib
import shutil
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence, Union

from duplicator.build.archiver import archive_build, get_archive_path, remove_stale_archive
from duplicator.build.config import BuildProfile, PlatformTarget
from duplicator.build.engine import (
    BuildEngine,
    CommandBuildEngine,
    invoke_build,
    is_target_supported,
)
from duplicator.build.paths import get_build_root, resolve_build_location, resolve_output_path
from duplicator.build.scenes import SceneProvider
from duplicator.utils.exceptions import (
    ArchiveError,
    BuildError,
    CapabilityError,
    ConfigurationError,
    DuplicatorError,
)


class PipelineStage(str, enum.Enum):
    """Stage of the pipeline a failure is attributed to."""

    CAPABILITY_CHECK = "capability_check"
    CONFIGURATION = "configuration"
    BUILD = "build"
    ARCHIVE = "archive"


class PipelineState(str, enum.Enum):
    """States a profile moves through while it is built."""

    IDLE = "idle"
    CAPABILITY_CHECKED = "capability_checked"
    CONFIGURED = "configured"
    OUTPUT_CLEANED = "output_cleaned"
    BUILT = "built"
    ARCHIVE_CLEANED = "archive_cleaned"
    ARCHIVED = "archived"
    FAILED = "failed"


@dataclass
class PipelineResult:
    """Result of building and packaging one profile.

    Attributes:
        profile: Profile that was built
        state: Terminal state, ARCHIVED or FAILED
        reached: Last state reached before the pipeline stopped
        stage: Stage that failed, if any
        message: Error message, empty on success
        archive_path: Archive written on success
        error: Exception that stopped the pipeline
        build_time: Seconds spent on the profile
    """

    profile: BuildProfile
    state: PipelineState
    reached: PipelineState
    stage: Optional[PipelineStage] = None
    message: str = ""
    archive_path: Optional[pathlib.Path] = None
    error: Optional[Exception] = None
    build_time: float = 0.0

    @property
    def success(self) -> bool:
        """Whether the profile was built and archived."""
        return self.state == PipelineState.ARCHIVED


class Builder:
    """Runs the build-and-package pipeline.

    Profiles are built one at a time; the build engine is a single stateful
    resource and is never asked to run two builds at once.

    Attributes:
        engine: Build engine used for capability checks and builds
        build_root: Folder that receives every build and archive
        scene_provider: Callable returning the scenes to build
        logger: Logger for build progress
    """

    def __init__(
            self,
            engine: BuildEngine,
            build_root: Union[str, pathlib.Path],
            scene_provider: Optional[Callable[[], Sequence[str]]] = None,
            logger: Optional[Any] = None,
    ) -> None:
        """Initialize the Builder.

        Args:
            engine: Build engine used for capability checks and builds
            build_root: Folder that receives every build and archive
            scene_provider: Callable returning the scenes to build
            logger: Optional logger for build progress
        """
        self.engine = engine
        self.build_root = pathlib.Path(build_root).resolve()
        self.scene_provider = scene_provider or (lambda: [])
        self.logger = logger or logging.getLogger(__name__)

    def log(self, message: str, level: str = "info") -> None:
        """Log a message with the specified level.

        Args:
            message: Message to log
            level: Log level (info, warning, error, debug)
        """
        getattr(self.logger, level)(message)

    def _fail(
            self,
            profile: BuildProfile,
            stage: PipelineStage,
            reached: PipelineState,
            error: DuplicatorError,
            started: float,
    ) -> PipelineResult:
        error.details.setdefault("folder", profile.output_folder)
        error.details.setdefault("target", profile.target.name)
        self.log(str(error.message), "error")
        return PipelineResult(
            profile=profile,
            state=PipelineState.FAILED,
            reached=reached,
            stage=stage,
            message=error.message,
            error=error,
            build_time=time.monotonic() - started,
        )

    def clean_output(self, output_path: pathlib.Path) -> None:
        """Remove a previous build from the output directory.

        Also creates the build root if it does not exist yet.

        Args:
            output_path: Output directory of the profile
        """
        self.build_root.mkdir(parents=True, exist_ok=True)
        if output_path.is_dir() and not output_path.is_symlink():
            self.log(f"Removing previous build: {output_path}", "debug")
            shutil.rmtree(output_path)
        elif output_path.exists() or output_path.is_symlink():
            output_path.unlink()

    def build(self, profile: BuildProfile) -> PipelineResult:
        """Build and package a single profile.

        This is the main entry point of the pipeline. Errors from any stage
        are logged and returned in the result rather than raised.

        Args:
            profile: Profile to build

        Returns:
            Result of the run
        """
        started = time.monotonic()
        state = PipelineState.IDLE
        target = profile.target
        folder = profile.output_folder
        self.log(f"Starting build of {folder or '<unnamed>'} for {target.name}")

        if target == PlatformTarget.NONE:
            return self._fail(
                profile,
                PipelineStage.CONFIGURATION,
                state,
                ConfigurationError(
                    f"Failed to build {folder}; no target platform selected",
                    config_key="target",
                    folder=folder,
                    target=target.name,
                ),
                started,
            )

        try:
            supported = is_target_supported(self.engine, target)
        except Exception as e:
            error = CapabilityError(
                f"Failed to build {target.name}; {e}", folder=folder, target=target.name
            )
            return self._fail(profile, PipelineStage.CAPABILITY_CHECK, state, error, started)
        if not supported:
            return self._fail(
                profile,
                PipelineStage.CAPABILITY_CHECK,
                state,
                CapabilityError(
                    f"Failed to build {target.name}; {target.name} build module is not installed",
                    folder=folder,
                    target=target.name,
                ),
                started,
            )
        state = PipelineState.CAPABILITY_CHECKED

        try:
            output_path = resolve_output_path(self.build_root, profile)
            location = resolve_build_location(output_path, profile)
            archive_path = get_archive_path(output_path, target)
            scenes = list(self.scene_provider())
        except ConfigurationError as e:
            return self._fail(profile, PipelineStage.CONFIGURATION, state, e, started)
        except Exception as e:
            error = ConfigurationError(
                f"Failed to build {folder}; {e}", folder=folder, target=target.name
            )
            return self._fail(profile, PipelineStage.CONFIGURATION, state, error, started)
        state = PipelineState.CONFIGURED
        self.log(f"Building {len(scenes)} scene(s) to {location}", "debug")

        try:
            self.clean_output(output_path)
            state = PipelineState.OUTPUT_CLEANED
            invoke_build(self.engine, profile, location, scenes)
        except DuplicatorError as e:
            return self._fail(profile, PipelineStage.BUILD, state, e, started)
        except Exception as e:
            error = BuildError(f"Failed to build {folder}; {e}", folder=folder, target=target.name)
            return self._fail(profile, PipelineStage.BUILD, state, error, started)
        state = PipelineState.BUILT
        self.log(f"Build finished: {output_path}")

        try:
            if remove_stale_archive(archive_path):
                self.log(f"Removed previous archive: {archive_path}", "debug")
            state = PipelineState.ARCHIVE_CLEANED
            archive_build(output_path, target, self.build_root, folder=folder)
        except DuplicatorError as e:
            return self._fail(profile, PipelineStage.ARCHIVE, state, e, started)
        except Exception as e:
            error = ArchiveError(f"Failed to zip {folder}; {e}", folder=folder, target=target.name)
            return self._fail(profile, PipelineStage.ARCHIVE, state, error, started)

        elapsed = time.monotonic() - started
        self.log(f"Build completed successfully: {archive_path} ({elapsed:.1f}s)")
        return PipelineResult(
            profile=profile,
            state=PipelineState.ARCHIVED,
            reached=PipelineState.ARCHIVED,
            archive_path=archive_path,
            build_time=elapsed,
        )

    def build_index(self, profiles: Sequence[BuildProfile], index: int) -> PipelineResult:
        """Build the profile at a position in the stored list.

        Args:
            profiles: Profiles in stored order
            index: Zero-based position of the profile

        Returns:
            Result of the run

        Raises:
            IndexError: If there is no profile at the index
        """
        if index < 0 or index >= len(profiles):
            raise IndexError(f"No build config at index {index}; {len(profiles)} configured")
        return self.build(profiles[index])

    def build_defaults(self, profiles: Sequence[BuildProfile]) -> List[PipelineResult]:
        """Build every default profile in stored order.

        A failing profile does not stop the batch.

        Args:
            profiles: Profiles in stored order

        Returns:
            One result per default profile
        """
        defaults = [profile for profile in profiles if profile.is_default]
        self.log(f"Building {len(defaults)} default build config(s)")

        results = [self.build(profile) for profile in defaults]

        failed = sum(1 for result in results if not result.success)
        if failed:
            self.log(f"{failed} of {len(results)} default build(s) failed", "warning")
        return results

    @classmethod
    def from_config(cls, config_manager: Any, logger: Optional[Any] = None) -> Builder:
        """Create a Builder from the tool configuration.

        Args:
            config_manager: Initialized configuration manager
            logger: Optional logger for build progress

        Returns:
            Builder using a command-line build engine
        """
        project_root = pathlib.Path(config_manager.get("project.root", "."))
        engine = CommandBuildEngine(
            command=config_manager.get("engine.command", []) or [],
            project_root=project_root,
            playback_engines_dir=config_manager.get("engine.playback_engines_dir"),
            installed_modules=config_manager.get("engine.installed_modules", []) or [],
            logger=logger,
        )
        scenes = SceneProvider(
            project_root,
            scenes=config_manager.get("project.scenes", []),
            build_settings_asset=config_manager.get(
                "project.build_settings_asset", "ProjectSettings/EditorBuildSettings.asset"
            ),
            logger=logger,
        )
        return cls(engine, get_build_root(project_root), scene_provider=scenes, logger=logger)
