"""Build profile configuration for Duplicator.

This module contains the target platforms, build options and the per-target
packaging policy table, together with the ``BuildProfile`` model that
describes one user-defined build job.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, Optional

import pydantic
from pydantic import ConfigDict, Field


class PlatformTarget(enum.IntEnum):
    """Target platforms understood by the build engine.

    Values are the engine's own target identifiers, which is what the
    settings file stores. ``NONE`` means no platform has been chosen yet.
    """

    NONE = 0
    MACOS = 2
    WINDOWS = 5
    IOS = 9
    ANDROID = 13
    WINDOWS64 = 19
    WEBGL = 20
    LINUX64 = 24


class ArchiveStrategy(str, enum.Enum):
    """How a finished build directory is packaged."""

    ZIP_CONTENTS = "zip_contents"  # Zip the children of the output folder at the root
    ZIP_TREE = "zip_tree"  # Zip the output folder itself
    TAR_GZ = "tar_gz"  # Gzip tarball relative to the build root


@dataclass(frozen=True)
class TargetPolicy:
    """Per-target path and packaging rules.

    Attributes:
        extension: Canonical extension of the built executable
        archive_strategy: How the output directory is archived
        module_name: Name of the engine module that provides the target
        uses_executable_name: False when the engine picks the entry file itself
    """

    extension: str
    archive_strategy: ArchiveStrategy
    module_name: str
    uses_executable_name: bool = True

    @property
    def archive_suffix(self) -> str:
        """File suffix of archives produced for this target."""
        if self.archive_strategy == ArchiveStrategy.TAR_GZ:
            return ".tar.gz"
        return ".zip"


TARGET_POLICIES: Dict[PlatformTarget, TargetPolicy] = {
    PlatformTarget.ANDROID: TargetPolicy(".apk", ArchiveStrategy.TAR_GZ, "Android"),
    PlatformTarget.WINDOWS: TargetPolicy(".exe", ArchiveStrategy.ZIP_TREE, "WindowsStandalone"),
    PlatformTarget.WINDOWS64: TargetPolicy(".exe", ArchiveStrategy.ZIP_TREE, "WindowsStandalone"),
    PlatformTarget.MACOS: TargetPolicy(".app", ArchiveStrategy.TAR_GZ, "MacStandalone"),
    PlatformTarget.LINUX64: TargetPolicy(".x86_64", ArchiveStrategy.TAR_GZ, "LinuxStandalone"),
    # The engine always names the web entry file index.html
    PlatformTarget.WEBGL: TargetPolicy(
        ".html", ArchiveStrategy.ZIP_CONTENTS, "WebGL", uses_executable_name=False
    ),
}

# Engine module names for targets that can be installed but not packaged
MODULE_NAMES: Dict[PlatformTarget, str] = {
    PlatformTarget.IOS: "iOS",
    **{target: policy.module_name for target, policy in TARGET_POLICIES.items()},
}


def get_target_policy(target: PlatformTarget) -> Optional[TargetPolicy]:
    """Get the packaging policy for a target.

    Args:
        target: Target platform

    Returns:
        The target's policy, or None if the target has no known mapping
    """
    return TARGET_POLICIES.get(target)


class BuildOption(enum.Enum):
    """Independent build flags passed through to the build engine.

    Values are the engine's option bits. Not every option applies to every
    target; the engine ignores the ones that don't.
    """

    DEVELOPMENT = 1 << 0
    AUTO_RUN_PLAYER = 1 << 2
    SHOW_BUILT_PLAYER = 1 << 3
    BUILD_ADDITIONAL_STREAMED_SCENES = 1 << 4
    ACCEPT_EXTERNAL_MODIFICATIONS_TO_PLAYER = 1 << 5
    INSTALL_IN_BUILD_FOLDER = 1 << 6
    CONNECT_WITH_PROFILER = 1 << 8
    ALLOW_DEBUGGING = 1 << 9
    SYMLINK_LIBRARIES = 1 << 10
    UNCOMPRESSED_ASSET_BUNDLE = 1 << 11
    CONNECT_TO_HOST = 1 << 12
    ENABLE_HEADLESS_MODE = 1 << 14
    BUILD_SCRIPTS_ONLY = 1 << 15
    PATCH_PACKAGE = 1 << 16
    FORCE_ENABLE_ASSERTIONS = 1 << 17
    COMPRESS_WITH_LZ4 = 1 << 18
    COMPRESS_WITH_LZ4HC = 1 << 19
    COMPUTE_CRC = 1 << 20
    STRICT_MODE = 1 << 21
    INCLUDE_TEST_ASSEMBLIES = 1 << 22
    NO_UNIQUE_IDENTIFIER = 1 << 23
    WAIT_FOR_PLAYER_CONNECTION = 1 << 25
    ENABLE_CODE_COVERAGE = 1 << 26
    ENABLE_DEEP_PROFILING_SUPPORT = 1 << 28

    @property
    def label(self) -> str:
        """Human readable name of the option."""
        return OPTION_DESCRIPTIONS[self][0]

    @property
    def description(self) -> str:
        """One line explanation of the option."""
        return OPTION_DESCRIPTIONS[self][1]

    @classmethod
    def from_bitmask(cls, mask: int) -> FrozenSet[BuildOption]:
        """Expand an engine bitmask into a set of options.

        Bits that do not correspond to a known option are dropped.

        Args:
            mask: Integer bitmask

        Returns:
            Set of options whose bit is set in the mask
        """
        return frozenset(option for option in cls if mask & option.value)

    @staticmethod
    def to_bitmask(options: Iterable[BuildOption]) -> int:
        """Collapse a set of options into an engine bitmask."""
        mask = 0
        for option in options:
            mask |= option.value
        return mask


OPTION_DESCRIPTIONS: Dict[BuildOption, tuple] = {
    BuildOption.DEVELOPMENT: ("Development", "Build a development version of the player."),
    BuildOption.AUTO_RUN_PLAYER: ("Auto Run Player", "Run the built player."),
    BuildOption.SHOW_BUILT_PLAYER: ("Show Built Player", "Show the built player."),
    BuildOption.BUILD_ADDITIONAL_STREAMED_SCENES: (
        "Build Additional Streamed Scenes",
        "Build a compressed asset bundle that contains streamed scenes loadable at runtime.",
    ),
    BuildOption.ACCEPT_EXTERNAL_MODIFICATIONS_TO_PLAYER: (
        "Accept External Modifications To Player",
        "Used when building Xcode (iOS) or Eclipse (Android) projects.",
    ),
    BuildOption.INSTALL_IN_BUILD_FOLDER: (
        "Install In Build Folder",
        "Copy the web player loader alongside the build.",
    ),
    BuildOption.CONNECT_WITH_PROFILER: (
        "Connect With Profiler",
        "Start the player with a connection to the profiler in the editor.",
    ),
    BuildOption.ALLOW_DEBUGGING: (
        "Allow Debugging",
        "Allow script debuggers to attach to the player remotely.",
    ),
    BuildOption.SYMLINK_LIBRARIES: (
        "Symlink Libraries",
        "Symlink runtime libraries when generating an iOS Xcode project.",
    ),
    BuildOption.UNCOMPRESSED_ASSET_BUNDLE: (
        "Uncompressed Asset Bundle",
        "Don't compress the data when creating the asset bundle.",
    ),
    BuildOption.CONNECT_TO_HOST: ("Connect To Host", "Sets the player to connect to the editor."),
    BuildOption.ENABLE_HEADLESS_MODE: (
        "Enable Headless Mode",
        "Build the standalone player in headless mode.",
    ),
    BuildOption.BUILD_SCRIPTS_ONLY: ("Build Scripts Only", "Only build the scripts in a project."),
    BuildOption.PATCH_PACKAGE: (
        "Patch Package",
        "Patch a development app package rather than completely rebuilding it.",
    ),
    BuildOption.FORCE_ENABLE_ASSERTIONS: (
        "Force Enable Assertions",
        "Include assertions in the build. By default they are only in development builds.",
    ),
    BuildOption.COMPRESS_WITH_LZ4: (
        "Compress With Lz4",
        "Use chunk-based LZ4 compression when building the player.",
    ),
    BuildOption.COMPRESS_WITH_LZ4HC: (
        "Compress With Lz4HC",
        "Use chunk-based LZ4 high-compression when building the player.",
    ),
    BuildOption.COMPUTE_CRC: (
        "Compute CRC",
        "Compute the CRC of the built output and include it in the build report.",
    ),
    BuildOption.STRICT_MODE: (
        "Strict Mode",
        "Do not allow the build to succeed if any errors are reported during it.",
    ),
    BuildOption.INCLUDE_TEST_ASSEMBLIES: (
        "Include Test Assemblies",
        "Build will include assemblies for testing.",
    ),
    BuildOption.NO_UNIQUE_IDENTIFIER: ("No Unique Identifier", "Force the build GUID to all zeros."),
    BuildOption.WAIT_FOR_PLAYER_CONNECTION: (
        "Wait For Player Connection",
        "Sets the player to wait for a player connection on start.",
    ),
    BuildOption.ENABLE_CODE_COVERAGE: ("Enable Code Coverage", "Enables code coverage."),
    BuildOption.ENABLE_DEEP_PROFILING_SUPPORT: (
        "Enable Deep Profiling Support",
        "Enables deep profiling support in the player.",
    ),
}


class BuildProfile(pydantic.BaseModel):
    """One user-defined build job.

    Profiles are read-only once loaded; the pipeline never changes them.
    Field aliases match the keys of the settings file.

    Attributes:
        output_folder: Folder under the build root that receives the build
        executable_name: Base name of the executable (ignored for web builds)
        is_default: Whether "build defaults" includes this profile
        target: Target platform
        options: Build flags passed to the engine
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    output_folder: str = Field(default="", alias="folder")
    executable_name: str = Field(default="", alias="exeName")
    is_default: bool = Field(default=False, alias="defaultBuild")
    target: PlatformTarget = PlatformTarget.NONE
    options: FrozenSet[BuildOption] = Field(default_factory=frozenset)

    @pydantic.field_validator("output_folder", "executable_name", mode="before")
    @classmethod
    def validate_text(cls, v: Any) -> str:
        """Treat missing text fields as empty strings."""
        return "" if v is None else v

    @pydantic.field_validator("options", mode="before")
    @classmethod
    def validate_options(cls, v: Any) -> Any:
        """Accept an engine bitmask or a list of option names."""
        if v is None:
            return frozenset()
        if isinstance(v, bool):
            raise ValueError(f"Invalid build options: {v!r}")
        if isinstance(v, int):
            return BuildOption.from_bitmask(v)
        if isinstance(v, (list, tuple, set, frozenset)):
            options = set()
            for item in v:
                if isinstance(item, BuildOption):
                    options.add(item)
                elif isinstance(item, str):
                    try:
                        options.add(BuildOption[item.upper()])
                    except KeyError:
                        raise ValueError(f"Unknown build option: {item}") from None
                else:
                    options.add(BuildOption(item))
            return frozenset(options)
        return v

    @pydantic.field_serializer("options")
    def serialize_options(self, options: FrozenSet[BuildOption]) -> int:
        """Store options as the engine bitmask."""
        return BuildOption.to_bitmask(options)

    @pydantic.field_serializer("target")
    def serialize_target(self, target: PlatformTarget) -> int:
        """Store the target as its engine identifier."""
        return int(target)

    @property
    def options_mask(self) -> int:
        """Build options as the engine bitmask."""
        return BuildOption.to_bitmask(self.options)

    @property
    def policy(self) -> Optional[TargetPolicy]:
        """Packaging policy for this profile's target, if any."""
        return get_target_policy(self.target)

    @classmethod
    def from_dict(cls, profile_dict: Dict[str, Any]) -> BuildProfile:
        """Create a BuildProfile from a settings dictionary.

        Args:
            profile_dict: Dictionary using the settings file keys.

        Returns:
            BuildProfile instance.
        """
        return cls.model_validate(profile_dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the profile to a settings dictionary.

        Returns:
            Dictionary using the settings file keys.
        """
        return self.model_dump(by_alias=True)
