"""
Tests for the settings loader.
"""

import pytest

from hidalgo.core.packager import DEFAULT_ARCHIVE_COMMAND, DEFAULT_CHANNEL_CAPACITY
from hidalgo.core.settings import (
    DEFAULT_SETTINGS_PATH,
    SETTINGS_ENV_VAR,
    BuildSettings,
    SettingsError,
    load_settings,
    settings_path,
)


class TestBuildSettings:
    """Tests for the BuildSettings model."""

    def test_defaults(self):
        """Built-in defaults build a static linux/amd64 image FROM scratch."""
        settings = BuildSettings()
        assert settings.docker == "docker"
        assert settings.base_image == "scratch"
        assert settings.compiler == "go"
        assert settings.archive_command == list(DEFAULT_ARCHIVE_COMMAND)
        assert settings.channel_capacity == DEFAULT_CHANNEL_CAPACITY

    def test_compiler_env(self):
        """Target platform settings become compiler environment overrides."""
        settings = BuildSettings(target_arch="arm64", cgo_enabled=True)
        assert settings.compiler_env() == {"GOOS": "linux", "GOARCH": "arm64", "CGO_ENABLED": "1"}

    def test_unknown_key_rejected(self):
        """Typos are reported instead of silently ignored."""
        with pytest.raises(ValueError):
            BuildSettings(dockr="podman")

    @pytest.mark.parametrize("docker", ["   ", "docker '", "\"\""])
    def test_unusable_docker_command_rejected(self, docker):
        """Blank or unsplittable docker commands fail validation."""
        with pytest.raises(ValueError):
            BuildSettings(docker=docker)

    def test_docker_command_with_arguments(self):
        """A docker command may carry its own arguments."""
        assert BuildSettings(docker="sudo docker --context remote").docker == "sudo docker --context remote"

    def test_empty_archive_command_rejected(self):
        with pytest.raises(ValueError):
            BuildSettings(archive_command=[])

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValueError):
            BuildSettings(channel_capacity=0)


class TestSettingsPath:
    """Tests for picking the settings file."""

    def test_explicit_wins(self, tmp_path, monkeypatch):
        monkeypatch.setenv(SETTINGS_ENV_VAR, str(tmp_path / "env.yaml"))
        assert settings_path(tmp_path / "cli.yaml") == tmp_path / "cli.yaml"

    def test_env_var(self, tmp_path, monkeypatch):
        monkeypatch.setenv(SETTINGS_ENV_VAR, str(tmp_path / "env.yaml"))
        assert settings_path() == tmp_path / "env.yaml"

    def test_default(self, monkeypatch):
        monkeypatch.delenv(SETTINGS_ENV_VAR, raising=False)
        assert settings_path() == DEFAULT_SETTINGS_PATH


class TestLoadSettings:
    """Tests for load_settings."""

    def test_missing_file_gives_defaults(self, tmp_path):
        """No settings file is fine."""
        assert load_settings(tmp_path / "missing.yaml") == BuildSettings()

    def test_loads_yaml(self, tmp_path):
        """Values in the file override the defaults."""
        path = tmp_path / "settings.yaml"
        path.write_text("docker: sdocker\nbase_image: alpine:3.20\nchannel_capacity: 4\n")
        settings = load_settings(path)
        assert settings.docker == "sdocker"
        assert settings.base_image == "alpine:3.20"
        assert settings.channel_capacity == 4
        assert settings.compiler == "go"

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("")
        assert load_settings(path) == BuildSettings()

    def test_invalid_yaml(self, tmp_path):
        """Broken YAML is a SettingsError."""
        path = tmp_path / "settings.yaml"
        path.write_text("docker: [unclosed\n")
        with pytest.raises(SettingsError):
            load_settings(path)

    def test_not_a_mapping(self, tmp_path):
        """A YAML list is a SettingsError."""
        path = tmp_path / "settings.yaml"
        path.write_text("- docker\n- go\n")
        with pytest.raises(SettingsError) as exc_info:
            load_settings(path)
        assert "mapping" in str(exc_info.value)

    @pytest.mark.parametrize(
        "content", ['docker: "   "\n', "docker: \"docker '\"\n", "archive_command: []\n"]
    )
    def test_unusable_commands(self, tmp_path, content):
        """Commands that could never be started are reported as SettingsError."""
        path = tmp_path / "settings.yaml"
        path.write_text(content)
        with pytest.raises(SettingsError):
            load_settings(path)

    def test_invalid_value(self, tmp_path):
        """Values failing validation are a SettingsError."""
        path = tmp_path / "settings.yaml"
        path.write_text("chunk_size: -5\n")
        with pytest.raises(SettingsError):
            load_settings(path)
