"""Scene list lookup from the engine project's settings."""

from __future__ import annotations

import logging
import pathlib
import re
from typing import Any, List, Optional, Sequence, Union

import yaml

from duplicator.utils.exceptions import ConfigurationError

# Engine asset files carry custom YAML directives and tags that safe_load rejects
_DIRECTIVE_RE = re.compile(r"^%.*$", re.MULTILINE)
_DOCUMENT_TAG_RE = re.compile(r"^---\s+!u!\d+\s+&\d+.*$", re.MULTILINE)


def parse_build_settings(content: str) -> List[str]:
    """Extract scene paths from an EditorBuildSettings asset.

    Every listed scene is returned in build order, enabled or not.

    Args:
        content: Text of the asset file

    Returns:
        Scene paths relative to the project root

    Raises:
        ConfigurationError: If the asset cannot be parsed
    """
    cleaned = _DOCUMENT_TAG_RE.sub("---", _DIRECTIVE_RE.sub("", content))
    try:
        documents = [doc for doc in yaml.safe_load_all(cleaned) if doc]
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Error parsing build settings asset: {e}", config_key="project.build_settings_asset"
        ) from e

    scenes: List[str] = []
    for document in documents:
        settings = document.get("EditorBuildSettings") if isinstance(document, dict) else None
        if not isinstance(settings, dict):
            continue
        for entry in settings.get("m_Scenes") or []:
            if isinstance(entry, dict) and entry.get("path"):
                scenes.append(str(entry["path"]))
    return scenes


class SceneProvider:
    """Supplies the scene list handed to the build engine.

    A scene list in the configuration wins; otherwise the list is read from
    the project's build settings asset on every call, so edits made in the
    engine between batch builds are picked up.
    """

    def __init__(
            self,
            project_root: Union[str, pathlib.Path],
            scenes: Optional[Sequence[str]] = None,
            build_settings_asset: Union[str, pathlib.Path] = "ProjectSettings/EditorBuildSettings.asset",
            logger: Optional[Any] = None,
    ) -> None:
        self._project_root = pathlib.Path(project_root)
        self._scenes = list(scenes) if scenes else []
        self._asset_path = self._project_root / build_settings_asset
        self._logger = logger or logging.getLogger(__name__)

    @property
    def asset_path(self) -> pathlib.Path:
        """Location of the build settings asset."""
        return self._asset_path

    def __call__(self) -> List[str]:
        """Get the current scene list.

        Raises:
            ConfigurationError: If the build settings asset is malformed
        """
        if self._scenes:
            return list(self._scenes)

        if not self._asset_path.exists():
            self._logger.warning(f"Build settings asset not found: {self._asset_path}")
            return []

        try:
            content = self._asset_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigurationError(
                f"Failed to read build settings from \"{self._asset_path}\"; {e}",
                config_key="project.build_settings_asset",
            ) from e
        return parse_build_settings(content)
