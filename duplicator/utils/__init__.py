"""Utility functions and classes for Duplicator."""

from duplicator.utils.exceptions import (
    ArchiveError,
    BuildError,
    CapabilityError,
    ConfigurationError,
    DuplicatorError,
    ManagerError,
    ManagerInitializationError,
    ManagerShutdownError,
    ProfileError,
    ProfileStoreError,
    UnknownTargetError,
)
