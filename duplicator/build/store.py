"""Persistence of build profiles.

Profiles are kept in a single JSON document holding one object with a
``configs`` array, in the order the user arranged them.
"""

from __future__ import annotations

import json
import logging
import os
import pathlib
import tempfile
from typing import Any, List, Optional, Sequence, Tuple, Union

import pydantic

from duplicator.build.config import BuildProfile
from duplicator.utils.exceptions import ProfileStoreError

CONFIGS_KEY = "configs"
NEW_PROFILE_FOLDER = "New Build Config"


class ProfileStore:
    """Loads and saves the ordered list of build profiles.

    A missing settings file is an empty list. A file that cannot be parsed
    is logged and treated as an empty list as well, so the tool stays usable.
    Adding a profile to such a file is refused so its contents are not lost.
    """

    def __init__(self, path: Union[str, pathlib.Path], logger: Optional[Any] = None) -> None:
        """Initialize the store.

        Args:
            path: Location of the settings file
            logger: Logger for load and save problems
        """
        self._path = pathlib.Path(path)
        self._logger = logger or logging.getLogger(__name__)

    @property
    def path(self) -> pathlib.Path:
        """Location of the settings file."""
        return self._path

    def load(self) -> List[BuildProfile]:
        """Load all profiles in stored order.

        Entries that fail validation are skipped with an error in the log.

        Returns:
            List of profiles, empty if the file is missing or malformed
        """
        profiles, problems = self._read()
        for problem in problems:
            self._logger.error(problem)
        return profiles

    def _read(self) -> Tuple[List[BuildProfile], List[str]]:
        """Read the settings file.

        Returns:
            Profiles that loaded and a message for each problem found
        """
        if not self._path.exists():
            return [], []

        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            return [], [f"Failed to load settings from \"{self._path}\"; {e}"]

        if not isinstance(data, dict) or not isinstance(data.get(CONFIGS_KEY, []), list):
            return [], [
                f"Failed to load settings from \"{self._path}\"; expected an object with a '{CONFIGS_KEY}' list"
            ]

        profiles: List[BuildProfile] = []
        problems: List[str] = []
        for index, entry in enumerate(data.get(CONFIGS_KEY) or []):
            try:
                profiles.append(BuildProfile.from_dict(entry))
            except pydantic.ValidationError as e:
                problems.append(
                    f"Skipping build config {index} in \"{self._path}\"; {e.error_count()} invalid field(s): "
                    + ", ".join(
                        f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}" for err in e.errors()
                    )
                )
        return profiles, problems

    def save(self, profiles: Sequence[BuildProfile]) -> None:
        """Write all profiles, replacing the settings file atomically.

        Args:
            profiles: Profiles in the order to store them

        Raises:
            ProfileStoreError: If the file cannot be written
        """
        document = {CONFIGS_KEY: [profile.to_dict() for profile in profiles]}

        tmp_name: Optional[str] = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                    mode="w", encoding="utf-8", delete=False, dir=self._path.parent, suffix=".tmp"
            ) as tmp:
                tmp_name = tmp.name
                json.dump(document, tmp, indent=4)
            os.replace(tmp_name, self._path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            self._logger.error(f"Failed to write settings to \"{self._path}\"; {e}")
            raise ProfileStoreError(
                f"Failed to write settings to \"{self._path}\"; {e}", path=str(self._path)
            ) from e

    def add(self, profile: Optional[BuildProfile] = None) -> BuildProfile:
        """Append a profile and save the list.

        Args:
            profile: Profile to add; a blank "New Build Config" when omitted

        Returns:
            The profile that was added

        Raises:
            ProfileStoreError: If the existing file could not be read completely
                or the file cannot be written
        """
        profile = profile or BuildProfile(output_folder=NEW_PROFILE_FOLDER)
        profiles, problems = self._read()
        if problems:
            for problem in problems:
                self._logger.error(problem)
            raise ProfileStoreError(
                f"Not saving \"{self._path}\"; fix the existing build configs first ({problems[0]})",
                path=str(self._path),
            )
        profiles.append(profile)
        self.save(profiles)
        return profile
