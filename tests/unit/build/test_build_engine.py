"""Unit tests for build engine integration."""

from __future__ import annotations

import sys
from pathlib import Path
from unittest import mock

import pytest

from duplicator.build.config import BuildOption, BuildProfile, PlatformTarget
from duplicator.build.engine import (
    BuildPlayerOptions,
    CommandBuildEngine,
    EngineResult,
    invoke_build,
    is_target_supported,
    missing_module_warning,
)
from duplicator.utils.exceptions import BuildError, ConfigurationError


@pytest.fixture
def options(tmp_path: Path) -> BuildPlayerOptions:
    return BuildPlayerOptions(
        target=PlatformTarget.LINUX64,
        location=tmp_path / "Builds" / "linux" / "game.x86_64",
        scenes=("Assets/A.unity", "Assets/B.unity"),
        options=frozenset({BuildOption.DEVELOPMENT, BuildOption.ALLOW_DEBUGGING}),
    )


class TestCapabilities:
    """Tests for target capability checks."""

    def test_none_is_never_supported(self):
        engine = mock.MagicMock()
        engine.is_module_installed.return_value = True

        assert is_target_supported(engine, PlatformTarget.NONE) is False
        engine.is_module_installed.assert_not_called()

    def test_missing_module_warning(self):
        engine = mock.MagicMock()
        engine.is_module_installed.return_value = False

        assert missing_module_warning(engine, PlatformTarget.ANDROID) == (
            "Build module for ANDROID is not installed!"
        )
        assert missing_module_warning(engine, PlatformTarget.NONE) is None

        engine.is_module_installed.return_value = True
        assert missing_module_warning(engine, PlatformTarget.ANDROID) is None


class TestInvokeBuild:
    """Tests for running the engine for a profile."""

    def test_request(self, tmp_path):
        engine = mock.MagicMock()
        engine.build_player.return_value = EngineResult(success=True)
        profile = BuildProfile(
            output_folder="linux", executable_name="game", target=PlatformTarget.LINUX64, options=1
        )

        invoke_build(engine, profile, tmp_path / "game.x86_64", ["Assets/A.unity"])

        request = engine.build_player.call_args[0][0]
        assert request.target == PlatformTarget.LINUX64
        assert request.location == tmp_path / "game.x86_64"
        assert request.scenes == ("Assets/A.unity",)
        assert request.options_mask == 1

    def test_reported_failure(self, tmp_path):
        engine = mock.MagicMock()
        engine.build_player.return_value = EngineResult(success=False, message="out of disk")
        profile = BuildProfile(output_folder="linux", target=PlatformTarget.LINUX64)

        with pytest.raises(BuildError, match="Failed to build linux; out of disk"):
            invoke_build(engine, profile, tmp_path, [])

    def test_engine_exception(self, tmp_path):
        engine = mock.MagicMock()
        engine.build_player.side_effect = RuntimeError("editor crashed")
        profile = BuildProfile(output_folder="linux", target=PlatformTarget.LINUX64)

        with pytest.raises(BuildError) as exc_info:
            invoke_build(engine, profile, tmp_path, [])

        assert "editor crashed" in exc_info.value.message
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_configuration_errors_pass_through(self, tmp_path):
        engine = mock.MagicMock()
        engine.build_player.side_effect = ConfigurationError("no command")
        profile = BuildProfile(output_folder="linux", target=PlatformTarget.LINUX64)

        with pytest.raises(ConfigurationError):
            invoke_build(engine, profile, tmp_path, [])


class TestCommandBuildEngine:
    """Tests for the command-line build engine."""

    def test_installed_modules_list(self, tmp_path):
        engine = CommandBuildEngine(["engine"], tmp_path, installed_modules=["Linux64", "webgl"])

        assert engine.is_module_installed(PlatformTarget.LINUX64)
        assert engine.is_module_installed(PlatformTarget.WEBGL)
        assert not engine.is_module_installed(PlatformTarget.WINDOWS)

    def test_module_names_in_list(self, tmp_path):
        engine = CommandBuildEngine(["engine"], tmp_path, installed_modules=["WindowsStandalone"])

        assert engine.is_module_installed(PlatformTarget.WINDOWS)
        assert engine.is_module_installed(PlatformTarget.WINDOWS64)

    def test_playback_engines_dir(self, tmp_path):
        engines = tmp_path / "PlaybackEngines"
        (engines / "AndroidPlayer").mkdir(parents=True)
        (engines / "LinuxStandaloneSupport").mkdir()
        engine = CommandBuildEngine(["engine"], tmp_path, playback_engines_dir=engines)

        assert engine.is_module_installed(PlatformTarget.ANDROID)
        assert engine.is_module_installed(PlatformTarget.LINUX64)
        assert not engine.is_module_installed(PlatformTarget.WEBGL)

    def test_no_module_information(self, tmp_path):
        engine = CommandBuildEngine(["engine"], tmp_path)

        assert engine.is_module_installed(PlatformTarget.MACOS)
        assert not engine.is_module_installed(PlatformTarget.NONE)

    def test_format_command(self, tmp_path, options):
        engine = CommandBuildEngine(
            ["engine", "-projectPath", "{project}", "-buildTarget", "{module}",
             "-target={target}", "-out", "{location}", "-options", "{options}", "-scenes", "{scenes}"],
            tmp_path,
        )

        assert engine.format_command(options) == [
            "engine", "-projectPath", str(tmp_path), "-buildTarget", "LinuxStandalone",
            "-target=LINUX64", "-out", str(options.location), "-options",
            str(BuildOption.DEVELOPMENT.value | BuildOption.ALLOW_DEBUGGING.value),
            "-scenes", "Assets/A.unity;Assets/B.unity",
        ]

    def test_no_command(self, tmp_path, options):
        with pytest.raises(ConfigurationError, match="No build engine command"):
            CommandBuildEngine([], tmp_path).format_command(options)

    def test_unknown_placeholder(self, tmp_path, options):
        with pytest.raises(ConfigurationError) as exc_info:
            CommandBuildEngine(["engine", "{unknown}"], tmp_path).format_command(options)

        assert exc_info.value.config_key == "engine.command"

    def test_build_player_success(self, tmp_path, options):
        script = (
            "import os, sys; p = sys.argv[1]; "
            "os.makedirs(os.path.dirname(p), exist_ok=True); open(p, 'w').write('player')"
        )
        logger = mock.MagicMock()
        engine = CommandBuildEngine([sys.executable, "-c", script, "{location}"], tmp_path, logger=logger)

        result = engine.build_player(options)

        assert result.success
        assert options.location.read_text() == "player"
        logger.info.assert_called_once()

    def test_build_player_failure(self, tmp_path, options):
        script = "import sys; print('line one'); print('error CS1002'); sys.exit(3)"
        engine = CommandBuildEngine([sys.executable, "-c", script], tmp_path)

        result = engine.build_player(options)

        assert not result.success
        assert result.message.startswith("build engine exited with code 3")
        assert result.message.endswith("error CS1002")

    def test_build_player_keeps_last_lines(self, tmp_path, options):
        script = "import sys\nfor i in range(50): print(f'line {i}')\nsys.exit(1)"
        engine = CommandBuildEngine([sys.executable, "-c", script], tmp_path)

        message = engine.build_player(options).message

        assert "line 49" in message
        assert "line 29" not in message
        assert "line 30" in message

    def test_missing_executable(self, tmp_path, options):
        engine = CommandBuildEngine([str(tmp_path / "no-such-engine")], tmp_path)
        profile = BuildProfile(output_folder="linux", executable_name="game", target=PlatformTarget.LINUX64)

        with pytest.raises(BuildError, match="Failed to build linux"):
            invoke_build(engine, profile, options.location, options.scenes)
