"""Unit tests for the Configuration Manager."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

from duplicator.core.config_manager import ConfigManager, ConfigSchema
from duplicator.utils.exceptions import ConfigurationError, ManagerInitializationError


def test_config_schema_default_values() -> None:
    """Test that ConfigSchema provides correct default values."""
    schema = ConfigSchema()

    assert schema.project["root"] == "."
    assert schema.project["scenes"] == []
    assert schema.project["build_settings_asset"] == "ProjectSettings/EditorBuildSettings.asset"
    assert schema.engine["command"] == []
    assert schema.engine["installed_modules"] == []
    assert schema.logging["level"] == "INFO"
    assert schema.logging["format"] == "text"
    assert schema.logging["file"]["enabled"] is False


def test_config_schema_validation_engine_command() -> None:
    """Test validation of the engine command."""
    schema = ConfigSchema(engine={"command": ["editor", "-batchmode"]})
    assert schema.engine["command"] == ["editor", "-batchmode"]

    with pytest.raises(ValueError, match="Engine command must be a list of strings"):
        ConfigSchema(engine={"command": "editor -batchmode"})


def test_config_schema_validation_scenes() -> None:
    """Test validation of the configured scene list."""
    with pytest.raises(ValueError, match="Project scenes must be a list"):
        ConfigSchema(project={"scenes": "Assets/Main.unity"})


def test_config_manager_defaults(tmp_path: Path) -> None:
    """Test that a missing config file leaves the defaults in place."""
    config_manager = ConfigManager(config_path=tmp_path / "missing.yaml")
    config_manager.initialize()

    assert config_manager.initialized
    assert config_manager.get("project.root") == "."
    assert config_manager.get("logging.console.enabled") is True
    assert config_manager.status()["loaded_from_file"] is False


def test_config_manager_yaml_file(tmp_path: Path) -> None:
    """Test loading configuration from a YAML file."""
    config_file = tmp_path / "duplicator.yaml"
    config_file.write_text(yaml.safe_dump({
        "project": {"root": "/projects/game"},
        "engine": {"command": ["editor", "-quit"], "installed_modules": ["webgl"]},
    }))

    config_manager = ConfigManager(config_path=config_file)
    config_manager.initialize()

    assert config_manager.get("project.root") == "/projects/game"
    assert config_manager.get("project.build_settings_asset") == "ProjectSettings/EditorBuildSettings.asset"
    assert config_manager.get("engine.command") == ["editor", "-quit"]
    assert config_manager.get("engine.installed_modules") == ["webgl"]
    assert config_manager.status()["loaded_from_file"] is True


def test_config_manager_json_file(tmp_path: Path) -> None:
    """Test loading configuration from a JSON file."""
    config_file = tmp_path / "duplicator.json"
    config_file.write_text(json.dumps({"logging": {"level": "DEBUG"}}))

    config_manager = ConfigManager(config_path=config_file)
    config_manager.initialize()

    assert config_manager.get("logging.level") == "DEBUG"
    assert config_manager.get("logging.format") == "text"


def test_config_manager_env_vars(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that environment variables override file values."""
    config_file = tmp_path / "duplicator.yaml"
    config_file.write_text(yaml.safe_dump({"logging": {"level": "INFO"}}))
    monkeypatch.setenv("DUPLICATOR_LOGGING_LEVEL", "WARNING")
    monkeypatch.setenv("DUPLICATOR_LOGGING_CONSOLE_ENABLED", "false")

    config_manager = ConfigManager(config_path=config_file)
    config_manager.initialize()

    assert config_manager.get("logging.level") == "WARNING"
    assert config_manager.get("logging.console.enabled") is False
    assert "DUPLICATOR_LOGGING_LEVEL" in config_manager.status()["env_vars_applied"]


@pytest.mark.parametrize(
    "value, expected",
    [("true", True), ("off", False), ("42", 42), ("-3", -3), ("1.5", 1.5), ("text", "text")],
)
def test_parse_env_value(value: str, expected: object) -> None:
    """Test parsing of environment variable values."""
    assert ConfigManager._parse_env_value(value) == expected


def test_config_manager_invalid_file(tmp_path: Path) -> None:
    """Test that an unparsable file fails initialization."""
    config_file = tmp_path / "duplicator.yaml"
    config_file.write_text("project: [unclosed")

    config_manager = ConfigManager(config_path=config_file)
    with pytest.raises(ManagerInitializationError, match="Error parsing config file"):
        config_manager.initialize()


def test_config_manager_unsupported_format(tmp_path: Path) -> None:
    """Test that unknown file formats are rejected."""
    config_file = tmp_path / "duplicator.ini"
    config_file.write_text("[project]")

    with pytest.raises(ManagerInitializationError, match="Unsupported config file format"):
        ConfigManager(config_path=config_file).initialize()


def test_config_manager_invalid_values(tmp_path: Path) -> None:
    """Test that values failing validation stop initialization."""
    config_file = tmp_path / "duplicator.yaml"
    config_file.write_text(yaml.safe_dump({"engine": {"command": [1, 2]}}))

    with pytest.raises(ManagerInitializationError, match="Invalid configuration"):
        ConfigManager(config_path=config_file).initialize()


def test_get_before_initialize() -> None:
    """Test that values cannot be read before initialization."""
    config_manager = ConfigManager()

    with pytest.raises(ConfigurationError):
        config_manager.get("project.root")
    with pytest.raises(ConfigurationError):
        config_manager.set("project.root", "/tmp")


def test_get_default(tmp_path: Path) -> None:
    """Test the default for missing keys."""
    config_manager = ConfigManager(config_path=tmp_path / "missing.yaml")
    config_manager.initialize()

    assert config_manager.get("project.missing", "fallback") == "fallback"
    assert config_manager.get("project.root.deeper", "fallback") == "fallback"


def test_set(tmp_path: Path) -> None:
    """Test overriding values for the current run."""
    config_manager = ConfigManager(config_path=tmp_path / "missing.yaml")
    config_manager.initialize()

    config_manager.set("project.root", "/projects/other")
    assert config_manager.get("project.root") == "/projects/other"

    with pytest.raises(ConfigurationError) as exc_info:
        config_manager.set("engine.command", "editor")
    assert exc_info.value.config_key == "engine.command"
    assert config_manager.get("engine.command") == []


def test_shutdown(tmp_path: Path) -> None:
    """Test shutting down the manager."""
    config_manager = ConfigManager(config_path=tmp_path / "missing.yaml")
    config_manager.initialize()
    config_manager.shutdown()

    assert not config_manager.initialized
    assert not config_manager.healthy
