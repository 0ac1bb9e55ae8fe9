"""Packaging of finished builds.

Every target is archived according to its ``ArchiveStrategy``:

- ``ZIP_CONTENTS`` (WebGL): the children of the output folder sit at the
  root of the zip, so hosting sites find index.html without a nesting level.
- ``ZIP_TREE`` (Windows): the output folder itself is zipped and extracts to
  a folder of the same name.
- ``TAR_GZ`` (everything else): a gzip tarball whose entry names are
  relative to the build root, so the archive can be unpacked anywhere.

An archive left over from a previous run is always deleted first.
"""

from __future__ import annotations

import os
import pathlib
import tarfile
import zipfile
import zlib
from typing import Callable, Dict, Optional, Union

from duplicator.build.config import ArchiveStrategy, PlatformTarget, get_target_policy
from duplicator.utils.exceptions import ArchiveError, UnknownTargetError

PathLike = Union[str, pathlib.Path]


def get_archive_path(output_path: PathLike, target: PlatformTarget) -> pathlib.Path:
    """Get the archive destination for a build output directory.

    Args:
        output_path: Build output directory
        target: Target platform

    Returns:
        Path of the archive next to the output directory

    Raises:
        UnknownTargetError: If the target has no known mapping
    """
    policy = get_target_policy(target)
    if policy is None:
        raise UnknownTargetError(target)
    output_path = pathlib.Path(output_path)
    return output_path.with_name(output_path.name + policy.archive_suffix)


def remove_stale_archive(archive_path: PathLike) -> bool:
    """Delete an archive left over from a previous run.

    Args:
        archive_path: Archive destination

    Returns:
        True if a file was removed
    """
    archive_path = pathlib.Path(archive_path)
    if archive_path.is_file() or archive_path.is_symlink():
        archive_path.unlink()
        return True
    return False


def _add_to_zip(zf: zipfile.ZipFile, path: pathlib.Path, arcname: str) -> None:
    """Add a file or a directory tree to a zip under the given name."""
    if path.is_dir():
        zf.write(path, arcname)
        for child in sorted(path.iterdir()):
            _add_to_zip(zf, child, f"{arcname}/{child.name}")
    else:
        zf.write(path, arcname)


def _zip_contents(output_path: pathlib.Path, archive_path: pathlib.Path, build_root: pathlib.Path) -> None:
    with zipfile.ZipFile(archive_path, "w", zipfile.ZIP_DEFLATED, strict_timestamps=False) as zf:
        for child in sorted(output_path.iterdir()):
            _add_to_zip(zf, child, child.name)


def _zip_tree(output_path: pathlib.Path, archive_path: pathlib.Path, build_root: pathlib.Path) -> None:
    with zipfile.ZipFile(archive_path, "w", zipfile.ZIP_DEFLATED, strict_timestamps=False) as zf:
        _add_to_zip(zf, output_path, output_path.name)


def _tar_gz(output_path: pathlib.Path, archive_path: pathlib.Path, build_root: pathlib.Path) -> None:
    arcname = relative_entry_name(output_path, build_root)
    with tarfile.open(archive_path, "w:gz") as tar:
        tar.add(str(output_path), arcname=arcname, recursive=True)


_ARCHIVERS: Dict[ArchiveStrategy, Callable[[pathlib.Path, pathlib.Path, pathlib.Path], None]] = {
    ArchiveStrategy.ZIP_CONTENTS: _zip_contents,
    ArchiveStrategy.ZIP_TREE: _zip_tree,
    ArchiveStrategy.TAR_GZ: _tar_gz,
}


def relative_entry_name(path: pathlib.Path, build_root: pathlib.Path) -> str:
    """Get the archive entry name of a path with the build root stripped.

    Args:
        path: Path inside the build root
        build_root: Build root directory

    Returns:
        POSIX style name relative to the build root

    Raises:
        ValueError: If the path is not inside the build root
    """
    return path.resolve().relative_to(build_root.resolve()).as_posix()


def archive_build(
        output_path: PathLike,
        target: PlatformTarget,
        build_root: PathLike,
        folder: Optional[str] = None,
) -> pathlib.Path:
    """Compress a finished build into its platform archive.

    Args:
        output_path: Build output directory
        target: Target platform
        build_root: Build root directory
        folder: Profile folder reported with errors (defaults to the output name)

    Returns:
        Path of the written archive

    Raises:
        UnknownTargetError: If the target has no known mapping
        ArchiveError: If the output is missing or the archive cannot be written
    """
    output_path = pathlib.Path(output_path)
    build_root = pathlib.Path(build_root)
    folder = folder or output_path.name

    policy = get_target_policy(target)
    if policy is None:
        raise UnknownTargetError(target)

    archive_path = get_archive_path(output_path, target)

    try:
        remove_stale_archive(archive_path)

        if not output_path.is_dir():
            raise ArchiveError(
                f"Failed to zip {folder}; build output not found at {output_path}",
                folder=folder,
                target=target.name,
            )

        if policy.archive_strategy == ArchiveStrategy.TAR_GZ:
            try:
                relative_entry_name(output_path, build_root)
            except ValueError:
                raise ArchiveError(
                    f"Failed to zip {folder}; {output_path} is not inside {build_root}",
                    folder=folder,
                    target=target.name,
                ) from None

        _ARCHIVERS[policy.archive_strategy](output_path, archive_path, build_root)
    except ArchiveError:
        raise
    except (
            OSError,
            ValueError,
            zipfile.BadZipFile,
            zipfile.LargeZipFile,
            tarfile.TarError,
            zlib.error,
    ) as e:
        raise ArchiveError(
            f"Failed to zip {folder}; {e}",
            folder=folder,
            target=target.name,
            archive=os.fspath(archive_path),
        ) from e

    return archive_path
