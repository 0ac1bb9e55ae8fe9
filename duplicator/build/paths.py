"""Path resolution for build outputs.

Computes the build root, the settings file location and, per profile, the
output directory and the location handed to the build engine.
"""

from __future__ import annotations

import pathlib
from typing import Union

from duplicator.build.config import BuildProfile, PlatformTarget, get_target_policy
from duplicator.utils.exceptions import ConfigurationError, UnknownTargetError

# Relative to the engine project's asset folder
ASSETS_DIR = "Assets"
BUILD_DIR = "../Builds/"
SETTINGS_FILE = "../ProjectSettings/Anchor/BuildSettings.json"


def get_build_root(project_root: Union[str, pathlib.Path]) -> pathlib.Path:
    """Get the absolute path to the build folder.

    Args:
        project_root: Root directory of the engine project

    Returns:
        Absolute path of the folder that receives every build
    """
    assets = pathlib.Path(project_root).resolve() / ASSETS_DIR
    return (assets / BUILD_DIR).resolve()


def get_settings_path(project_root: Union[str, pathlib.Path]) -> pathlib.Path:
    """Get the absolute path to the build settings file.

    Args:
        project_root: Root directory of the engine project

    Returns:
        Absolute path of the JSON file holding the build profiles
    """
    assets = pathlib.Path(project_root).resolve() / ASSETS_DIR
    return (assets / SETTINGS_FILE).resolve()


def get_executable_extension(target: PlatformTarget) -> str:
    """Get the canonical executable extension for a target.

    Args:
        target: Target platform

    Returns:
        Extension including the leading dot

    Raises:
        UnknownTargetError: If the target has no known mapping
    """
    policy = get_target_policy(target)
    if policy is None:
        raise UnknownTargetError(target)
    return policy.extension


def resolve_executable_filename(name: str, target: PlatformTarget) -> str:
    """Replace the extension of an executable name with the target's.

    Args:
        name: Executable base name, with or without an extension
        target: Target platform

    Returns:
        Filename with the platform-correct extension

    Raises:
        UnknownTargetError: If the target has no known mapping
        ConfigurationError: If the name is empty
    """
    extension = get_executable_extension(target)
    if not name or not name.strip():
        raise ConfigurationError(
            "Build profile has no executable name", config_key="exeName"
        )
    return str(pathlib.PurePath(name.strip()).with_suffix(extension))


def resolve_output_path(root: Union[str, pathlib.Path], profile: BuildProfile) -> pathlib.Path:
    """Get the output directory of a profile.

    Args:
        root: Build root directory
        profile: Build profile

    Returns:
        Directory under the build root that receives the build

    Raises:
        ConfigurationError: If the folder is empty or escapes the build root
    """
    folder = profile.output_folder.strip()
    if not folder:
        raise ConfigurationError(
            "Build profile has no output folder",
            config_key="folder",
            folder=profile.output_folder,
            target=profile.target.name,
        )

    root = pathlib.Path(root)
    path = (root / folder).resolve()
    if path == root.resolve() or root.resolve() not in path.parents:
        raise ConfigurationError(
            f"Output folder {profile.output_folder!r} is outside the build folder",
            config_key="folder",
            folder=profile.output_folder,
            target=profile.target.name,
        )
    return path


def resolve_build_location(output_path: pathlib.Path, profile: BuildProfile) -> pathlib.Path:
    """Get the location passed to the build engine.

    Web builds are given the output directory itself since the engine always
    writes index.html there. Every other target is given the executable path.

    Args:
        output_path: Resolved output directory of the profile
        profile: Build profile

    Returns:
        Location for the engine to build to

    Raises:
        UnknownTargetError: If the target has no known mapping
    """
    policy = profile.policy
    if policy is None:
        raise UnknownTargetError(profile.target)
    if not policy.uses_executable_name:
        return output_path
    return output_path / resolve_executable_filename(profile.executable_name, profile.target)
