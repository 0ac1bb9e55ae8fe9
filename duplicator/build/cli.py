"""Command-line interface for the Duplicator build system.

This module exposes the build commands: listing profiles, building one
profile or every default profile, and opening the build folder.
"""

from __future__ import annotations

import argparse
import os
import pathlib
import platform
import subprocess
import sys
from typing import Any, List, Optional, Sequence, Tuple

from duplicator.build.builder import Builder, PipelineResult
from duplicator.build.config import OPTION_DESCRIPTIONS, BuildOption, BuildProfile, PlatformTarget
from duplicator.build.engine import missing_module_warning
from duplicator.build.paths import get_build_root, get_executable_extension, get_settings_path
from duplicator.build.store import ProfileStore
from duplicator.core.config_manager import ConfigManager
from duplicator.core.logging_manager import LoggingManager
from duplicator.utils.exceptions import DuplicatorError, UnknownTargetError


def _setup(args: argparse.Namespace) -> Tuple[ConfigManager, LoggingManager, Any]:
    """Initialize configuration and logging for a command."""
    config_manager = ConfigManager(config_path=args.config)
    config_manager.initialize()
    if args.project:
        config_manager.set("project.root", args.project)
    if args.verbose:
        config_manager.set("logging.level", "DEBUG")
        config_manager.set("logging.console.level", "DEBUG")

    logging_manager = LoggingManager(config_manager)
    logging_manager.initialize()
    return config_manager, logging_manager, logging_manager.get_logger("duplicator.build")


def _project_root(config_manager: ConfigManager) -> pathlib.Path:
    return pathlib.Path(config_manager.get("project.root", "."))


def _report(results: Sequence[PipelineResult]) -> int:
    """Print a summary of pipeline results and return the exit code."""
    for result in results:
        folder = result.profile.output_folder
        if result.success:
            print(f"OK      {folder}: {result.archive_path}")
        else:
            stage = result.stage.value if result.stage else "unknown"
            print(f"FAILED  {folder} [{stage}]: {result.message}", file=sys.stderr)
    return 0 if all(result.success for result in results) else 1


def _parse_target(value: str) -> PlatformTarget:
    """Parse a target given by name or engine identifier."""
    try:
        if value.lstrip("-").isdigit():
            return PlatformTarget(int(value))
        return PlatformTarget[value.upper()]
    except (KeyError, ValueError):
        choices = ", ".join(target.name.lower() for target in PlatformTarget)
        raise argparse.ArgumentTypeError(f"invalid target {value!r} (choose from {choices})")


def _parse_option(value: str) -> BuildOption:
    """Parse a build option given by name."""
    try:
        return BuildOption[value.upper().replace("-", "_")]
    except KeyError:
        raise argparse.ArgumentTypeError(f"invalid build option {value!r}")


def list_command(args: argparse.Namespace) -> int:
    """Handle the list command.

    Args:
        args: Command-line arguments

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    config_manager, logging_manager, logger = _setup(args)
    try:
        root = _project_root(config_manager)
        store = ProfileStore(get_settings_path(root), logger=logger)
        builder = Builder.from_config(config_manager, logger)
        profiles = store.load()

        if not profiles:
            print(f"No build configs in {store.path}")
            return 0

        for index, profile in enumerate(profiles):
            marker = "*" if profile.is_default else " "
            if profile.target == PlatformTarget.WEBGL:
                exe = "index.html"
            else:
                try:
                    exe = f"{pathlib.PurePath(profile.executable_name or '?').stem}{get_executable_extension(profile.target)}"
                except UnknownTargetError:
                    exe = profile.executable_name or "-"
            print(f"{index:>3} {marker} {profile.output_folder:<30} {profile.target.name:<10} {exe}")
            if profile.options:
                names = ", ".join(sorted(option.label for option in profile.options))
                print(f"        options: {names}")
            warning = missing_module_warning(builder.engine, profile.target)
            if warning:
                print(f"        warning: {warning}")
        return 0
    finally:
        logging_manager.shutdown()


def build_command(args: argparse.Namespace) -> int:
    """Handle the build command.

    Args:
        args: Command-line arguments

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    config_manager, logging_manager, logger = _setup(args)
    try:
        store = ProfileStore(get_settings_path(_project_root(config_manager)), logger=logger)
        builder = Builder.from_config(config_manager, logger)
        try:
            result = builder.build_index(store.load(), args.index)
        except IndexError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        return _report([result])
    finally:
        logging_manager.shutdown()


def defaults_command(args: argparse.Namespace) -> int:
    """Handle the defaults command.

    Args:
        args: Command-line arguments

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    config_manager, logging_manager, logger = _setup(args)
    try:
        store = ProfileStore(get_settings_path(_project_root(config_manager)), logger=logger)
        builder = Builder.from_config(config_manager, logger)
        results = builder.build_defaults(store.load())
        if not results:
            print("No default build configs")
            return 0
        return _report(results)
    finally:
        logging_manager.shutdown()


def add_command(args: argparse.Namespace) -> int:
    """Handle the add command.

    Args:
        args: Command-line arguments

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    config_manager, logging_manager, logger = _setup(args)
    try:
        store = ProfileStore(get_settings_path(_project_root(config_manager)), logger=logger)
        profile = BuildProfile(
            output_folder=args.folder,
            executable_name=args.exe_name or "",
            is_default=args.default,
            target=args.target,
            options=frozenset(args.option or []),
        )
        try:
            store.add(profile)
        except DuplicatorError as e:
            print(f"Error adding build config: {e}", file=sys.stderr)
            return 1
        print(f"Added build config {profile.output_folder!r} to {store.path}")
        return 0
    finally:
        logging_manager.shutdown()


def options_command(args: argparse.Namespace) -> int:
    """Handle the options command.

    Args:
        args: Command-line arguments

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    for option, (label, description) in OPTION_DESCRIPTIONS.items():
        print(f"{option.name.lower():<42} {label}")
        print(f"{'':<42} {description}")
    return 0


def open_folder(path: pathlib.Path) -> None:
    """Open a folder in the platform's file manager.

    Args:
        path: Folder to open
    """
    system = platform.system()
    if system == "Windows":
        os.startfile(str(path))  # type: ignore[attr-defined]
    elif system == "Darwin":
        subprocess.Popen(["open", str(path)])
    else:
        subprocess.Popen(["xdg-open", str(path)])


def open_folder_command(args: argparse.Namespace) -> int:
    """Handle the open-folder command.

    Args:
        args: Command-line arguments

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    config_manager, logging_manager, logger = _setup(args)
    try:
        build_root = get_build_root(_project_root(config_manager))
        try:
            build_root.mkdir(parents=True, exist_ok=True)
            open_folder(build_root)
        except OSError as e:
            logger.error(f"Error opening folder: {str(e)}")
            print(f"Could not open folder {build_root}: {e}", file=sys.stderr)
            return 1
        print(build_root)
        return 0
    finally:
        logging_manager.shutdown()


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point for the command-line interface.

    Args:
        args: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    parser = argparse.ArgumentParser(
        description="Duplicator build and package tool",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument("--config", "-c", default="duplicator.yaml", help="Configuration file")
    parser.add_argument("--project", "-p", help="Engine project root (overrides project.root)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log debug output")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    subparsers.add_parser("list", help="List build configs")

    build_parser = subparsers.add_parser("build", help="Build one build config")
    build_parser.add_argument("index", type=int, help="Position of the build config (see list)")

    subparsers.add_parser("defaults", help="Build every default build config")

    subparsers.add_parser("open-folder", help="Open the build folder")

    subparsers.add_parser("options", help="List available build options")

    add_parser = subparsers.add_parser("add", help="Add a build config")
    add_parser.add_argument("--folder", default="New Build Config", help="Output folder under the build folder")
    add_parser.add_argument("--exe-name", help="Executable name")
    add_parser.add_argument("--target", type=_parse_target, default=PlatformTarget.NONE, help="Target platform")
    add_parser.add_argument("--default", action="store_true", help="Include in default builds")
    add_parser.add_argument("--option", type=_parse_option, action="append",
                            help="Build option (can be specified multiple times)")

    args = parser.parse_args(args)

    try:
        if args.command == "list":
            return list_command(args)
        elif args.command == "build":
            return build_command(args)
        elif args.command == "defaults":
            return defaults_command(args)
        elif args.command == "open-folder":
            return open_folder_command(args)
        elif args.command == "options":
            return options_command(args)
        elif args.command == "add":
            return add_command(args)
    except DuplicatorError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
