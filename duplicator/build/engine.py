"""Build engine integration.

The build engine is the external component that compiles a player for a
target platform. Duplicator never builds anything itself; it asks the engine
whether a target module is installed and hands it a fully resolved build
request. ``CommandBuildEngine`` drives an engine through a configured command
line, for example an editor running in batch mode.
"""

from __future__ import annotations

import collections
import logging
import pathlib
import subprocess
from dataclasses import dataclass, field
from typing import Any, Deque, Iterable, List, Optional, Protocol, Sequence, Tuple, Union

from duplicator.build.config import MODULE_NAMES, BuildOption, BuildProfile, PlatformTarget
from duplicator.utils.exceptions import BuildError, ConfigurationError


@dataclass(frozen=True)
class BuildPlayerOptions:
    """A fully resolved request for the build engine.

    Attributes:
        target: Target platform
        location: Executable path, or the output directory for web builds
        scenes: Scene paths to include, in build order
        options: Build flags
    """

    target: PlatformTarget
    location: pathlib.Path
    scenes: Tuple[str, ...] = ()
    options: frozenset = field(default_factory=frozenset)

    @property
    def options_mask(self) -> int:
        """Build flags as the engine bitmask."""
        return BuildOption.to_bitmask(self.options)


@dataclass(frozen=True)
class EngineResult:
    """Outcome reported by the build engine."""

    success: bool
    message: str = ""


class BuildEngine(Protocol):
    """Capabilities the host environment must provide."""

    def is_module_installed(self, target: PlatformTarget) -> bool:
        """Return True if the engine can build for the target."""
        ...

    def build_player(self, options: BuildPlayerOptions) -> EngineResult:
        """Build a player; blocks until the engine finishes."""
        ...


def is_target_supported(engine: BuildEngine, target: PlatformTarget) -> bool:
    """Check whether the build module for a target is installed.

    Args:
        engine: Build engine to query
        target: Target platform

    Returns:
        True if the engine can build the target. Always False for NONE.
    """
    if target == PlatformTarget.NONE:
        return False
    return bool(engine.is_module_installed(target))


def missing_module_warning(engine: BuildEngine, target: PlatformTarget) -> Optional[str]:
    """Get the warning to show for a target whose module is missing.

    No warning is produced for NONE, which only means no platform was chosen.

    Args:
        engine: Build engine to query
        target: Target platform

    Returns:
        Warning message, or None if there is nothing to warn about
    """
    if target == PlatformTarget.NONE or is_target_supported(engine, target):
        return None
    return f"Build module for {target.name} is not installed!"


def invoke_build(
        engine: BuildEngine,
        profile: BuildProfile,
        location: pathlib.Path,
        scenes: Sequence[str],
) -> None:
    """Run the build engine for a profile.

    The caller has already confirmed the target and removed any stale output.

    Args:
        engine: Build engine to run
        profile: Build profile being built
        location: Location to build to
        scenes: Scene paths to include

    Raises:
        BuildError: If the engine raises or reports a failed build
        ConfigurationError: If the engine itself is not configured
    """
    options = BuildPlayerOptions(
        target=profile.target,
        location=location,
        scenes=tuple(scenes),
        options=profile.options,
    )

    try:
        result = engine.build_player(options)
    except ConfigurationError:
        raise
    except Exception as e:
        raise BuildError(
            f"Failed to build {profile.output_folder}; {e}",
            folder=profile.output_folder,
            target=profile.target.name,
        ) from e

    if result is not None and not result.success:
        raise BuildError(
            f"Failed to build {profile.output_folder}; {result.message or 'build engine reported failure'}",
            folder=profile.output_folder,
            target=profile.target.name,
        )


class CommandBuildEngine:
    """Build engine driven through an external command.

    Each argument of the command may contain the placeholders ``{project}``,
    ``{target}``, ``{module}``, ``{location}``, ``{options}`` and
    ``{scenes}`` (scene paths joined with ``;``).

    Attributes:
        command: Command template
        project_root: Root directory of the engine project
        playback_engines_dir: Engine folder holding one directory per installed module
        installed_modules: Explicit list of installed targets or modules
    """

    def __init__(
            self,
            command: Sequence[str],
            project_root: Union[str, pathlib.Path],
            playback_engines_dir: Optional[Union[str, pathlib.Path]] = None,
            installed_modules: Optional[Iterable[str]] = None,
            logger: Optional[Any] = None,
    ) -> None:
        self.command = list(command)
        self.project_root = pathlib.Path(project_root)
        self.playback_engines_dir = (
            pathlib.Path(playback_engines_dir) if playback_engines_dir else None
        )
        self.installed_modules = {m.lower() for m in installed_modules or ()}
        self._logger = logger or logging.getLogger(__name__)

    def is_module_installed(self, target: PlatformTarget) -> bool:
        """Check the module registry for a target.

        An explicit module list wins over the playback engines folder. With
        neither configured every known target is assumed to be installed and
        the engine reports the problem itself.
        """
        module = MODULE_NAMES.get(target)
        if module is None:
            return False

        if self.installed_modules:
            return (
                target.name.lower() in self.installed_modules
                or module.lower() in self.installed_modules
            )

        if self.playback_engines_dir is not None:
            return any(
                (self.playback_engines_dir / f"{module}{suffix}").is_dir()
                for suffix in ("Support", "Player")
            )

        return True

    def format_command(self, options: BuildPlayerOptions) -> List[str]:
        """Fill the command template for a build request.

        Raises:
            ConfigurationError: If no command is configured or a placeholder is unknown
        """
        if not self.command:
            raise ConfigurationError(
                "No build engine command configured", config_key="engine.command"
            )

        values = {
            "project": str(self.project_root),
            "target": options.target.name,
            "module": MODULE_NAMES.get(options.target, options.target.name),
            "location": str(options.location),
            "options": str(options.options_mask),
            "scenes": ";".join(options.scenes),
        }
        try:
            return [part.format(**values) for part in self.command]
        except (KeyError, IndexError) as e:
            raise ConfigurationError(
                f"Invalid placeholder in build engine command: {e}",
                config_key="engine.command",
            ) from e

    def build_player(self, options: BuildPlayerOptions) -> EngineResult:
        """Run the engine command and wait for it to finish.

        Args:
            options: Build request

        Returns:
            Engine result; failure carries the last lines of output
        """
        cmd = self.format_command(options)
        self._logger.info(f"Running build engine: {' '.join(cmd)}")

        process = subprocess.Popen(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            bufsize=1,
            cwd=str(self.project_root),
        )

        tail: Deque[str] = collections.deque(maxlen=20)
        assert process.stdout is not None
        for line in process.stdout:
            line = line.rstrip()
            tail.append(line)
            self._logger.debug(line)

        process.wait()

        if process.returncode != 0:
            output = "\n".join(tail)
            return EngineResult(
                success=False,
                message=f"build engine exited with code {process.returncode}\n{output}".rstrip(),
            )
        return EngineResult(success=True)
