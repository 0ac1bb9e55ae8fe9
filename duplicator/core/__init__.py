"""Core package containing the configuration and logging managers."""

from duplicator.core.base import DuplicatorManager
from duplicator.core.config_manager import ConfigManager, ConfigSchema
from duplicator.core.logging_manager import LoggingManager
