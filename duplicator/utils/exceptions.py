from __future__ import annotations

from typing import Any, Optional


class DuplicatorError(Exception):
    """Base exception for all Duplicator errors."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        """
        Initialize exception.

        Args:
            message: Error message
            **kwargs: Additional error information
        """
        self.message = message
        self.details = kwargs
        super().__init__(message)

    def __str__(self) -> str:
        """String representation."""
        return f"{self.message}"


class ManagerError(DuplicatorError):
    """Base exception for manager-related errors."""

    def __init__(self, message: str, manager_name: Optional[str] = None, **kwargs: Any) -> None:
        """
        Initialize manager error.

        Args:
            message: Error message
            manager_name: Name of the affected manager
            **kwargs: Additional error information
        """
        super().__init__(message, manager_name=manager_name, **kwargs)
        self.manager_name = manager_name

    def __str__(self) -> str:
        """String representation."""
        if self.manager_name:
            return f"{self.message} (Manager: {self.manager_name})"
        return super().__str__()


class ManagerInitializationError(ManagerError):
    """Exception raised when a manager fails to initialize."""

    pass


class ManagerShutdownError(ManagerError):
    """Exception raised when a manager fails to shut down cleanly."""

    pass


class ConfigurationError(DuplicatorError):
    """Exception raised for configuration-related errors.

    Raised both for application configuration problems and for build
    profiles that cannot be turned into a build (no folder, unknown target).
    """

    def __init__(
            self, message: str, *, config_key: Optional[str] = None, **kwargs: Any
    ) -> None:
        """Initialize a ConfigurationError.

        Args:
            message: A descriptive error message.
            config_key: The configuration key that caused the error.
            **kwargs: Additional error information.
        """
        if config_key:
            kwargs["config_key"] = config_key
        super().__init__(message, **kwargs)
        self.config_key = config_key


class UnknownTargetError(ConfigurationError):
    """Exception raised when a target platform has no packaging policy."""

    def __init__(self, target: Any, **kwargs: Any) -> None:
        """Initialize an UnknownTargetError.

        Args:
            target: The target platform without a known mapping.
            **kwargs: Additional error information.
        """
        name = getattr(target, "name", target)
        super().__init__(f"Unknown target {name}", config_key="target", target=name, **kwargs)
        self.target = target


class ProfileError(DuplicatorError):
    """Base exception for errors tied to a single build profile."""

    def __init__(
            self,
            message: str,
            *,
            folder: Optional[str] = None,
            target: Optional[str] = None,
            **kwargs: Any
    ) -> None:
        """Initialize a ProfileError.

        Args:
            message: A descriptive error message.
            folder: Output folder of the originating profile.
            target: Target platform name of the originating profile.
            **kwargs: Additional error information.
        """
        super().__init__(message, folder=folder, target=target, **kwargs)
        self.folder = folder
        self.target = target

    def __str__(self) -> str:
        """String representation."""
        if self.folder:
            return f"{self.message} (Profile: {self.folder})"
        return super().__str__()


class CapabilityError(ProfileError):
    """Exception raised when the build module for a target is not installed."""

    pass


class BuildError(ProfileError):
    """Exception raised when the build engine fails to produce a build."""

    pass


class ArchiveError(ProfileError):
    """Exception raised when a finished build cannot be archived."""

    pass


class ProfileStoreError(DuplicatorError):
    """Exception raised when build profiles cannot be persisted."""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs: Any) -> None:
        """Initialize a ProfileStoreError.

        Args:
            message: A descriptive error message.
            path: Path of the settings file involved.
            **kwargs: Additional error information.
        """
        super().__init__(message, path=path, **kwargs)
        self.path = path
